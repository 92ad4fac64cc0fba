"""Global options shared by every atomc command."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer

from atomc import __version__
from atomc.cli.utils import LogLevel
from atomc.config import ResolvedConfig, resolve_config
from atomc.logging_utils import configure_logging


@dataclass
class CliState:
    """Options given before the subcommand."""

    config_path: Optional[Path] = None
    log_level: LogLevel = LogLevel.INFO
    quiet: bool = False

    def resolve(self, **overrides: Any) -> ResolvedConfig:
        """Resolve the configuration with CLI overrides applied last."""
        return resolve_config(cli_path=self.config_path, overrides=overrides)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"atomc {__version__}")
        raise typer.Exit()


def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Config file (overrides LOCAL_COMMIT_AGENT_CONFIG and ~/.atomc/config.yaml)",
    ),
    log_level: LogLevel = typer.Option(
        LogLevel.INFO,
        "--log-level",
        case_sensitive=False,
        help="Log verbosity on stderr",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Plan and safely apply atomic commits with a local LLM."""
    configure_logging(log_level.value, quiet)
    ctx.obj = CliState(config_path=config, log_level=log_level, quiet=quiet)


def get_state(ctx: typer.Context) -> CliState:
    """Return the global options, tolerating direct command invocation."""
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    return CliState()
