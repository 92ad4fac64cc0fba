"""CLI entry point for atomc.

This module provides the main CLI application that combines the plan and
apply commands into a single interface.
"""

import typer

from atomc.cli.apply import apply_command
from atomc.cli.main import CliState, main_callback
from atomc.cli.plan import plan_command

# Main application
app = typer.Typer(
    name="atomc",
    help="atomc: plan and safely apply atomic commits with a local LLM",
    add_completion=False,
    no_args_is_help=True,
)

# Add individual commands
app.command("plan")(plan_command)
app.command("apply")(apply_command)

# Global options
app.callback()(main_callback)


__all__ = [
    "app",
    "CliState",
    "main_callback",
    "plan_command",
    "apply_command",
]
