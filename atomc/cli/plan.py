"""CLI command for generating a commit plan."""

from pathlib import Path
from typing import Optional

import typer

from atomc.cli.main import get_state
from atomc.cli.utils import OutputFormat, emit_error, emit_payload, read_diff_input
from atomc.config import DiffMode
from atomc.engine import PlanRequest, new_request_id, plan_request
from atomc.errors import AtomcError, ExecutionCancelled


def plan_command(
    ctx: typer.Context,
    repo: Optional[Path] = typer.Option(
        None,
        "--repo",
        help="Repository to compute the diff from",
    ),
    diff_file: Optional[str] = typer.Option(
        None,
        "--diff-file",
        help="Read the diff from a file ('-' for stdin)",
    ),
    diff_mode: Optional[DiffMode] = typer.Option(
        None,
        "--diff-mode",
        case_sensitive=False,
        help="Which changes to include: worktree, staged or all",
    ),
    include_untracked: Optional[bool] = typer.Option(
        None,
        "--include-untracked/--no-include-untracked",
        help="Include untracked files as whole-file additions",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.JSON,
        "--format",
        case_sensitive=False,
        help="Output format",
    ),
    log_diff: Optional[bool] = typer.Option(
        None,
        "--log-diff/--no-log-diff",
        help="Allow raw diff text in logs",
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model name"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Plan Generator timeout in seconds"
    ),
) -> None:
    """Propose an atomic commit plan. Never modifies the repository."""
    state = get_state(ctx)
    request_id = new_request_id()

    try:
        config = state.resolve(model=model, llm_timeout_secs=timeout, log_diff=log_diff)
        request = PlanRequest(
            repo=repo,
            diff_text=read_diff_input(diff_file),
            diff_mode=diff_mode,
            include_untracked=include_untracked,
        )
        response = plan_request(request, config, request_id=request_id)
    except AtomcError as e:
        raise typer.Exit(emit_error(e, output_format, request_id))
    except KeyboardInterrupt:
        raise typer.Exit(
            emit_error(ExecutionCancelled("interrupted"), output_format, request_id)
        )

    emit_payload(response, output_format)
