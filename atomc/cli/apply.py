"""CLI command for applying a commit plan."""

from pathlib import Path
from typing import Optional

import typer

from atomc.cli.main import get_state
from atomc.cli.utils import (
    OutputFormat,
    cancel_on_interrupt,
    emit_error,
    emit_payload,
    exit_code_for_results,
    read_diff_input,
    read_plan_file,
)
from atomc.config import DiffMode
from atomc.engine import ApplyRequest, apply_request, new_request_id
from atomc.errors import AtomcError, ExecutionCancelled
from atomc.plan.locks import CancelToken


def apply_command(
    ctx: typer.Context,
    repo: Path = typer.Option(
        ...,
        "--repo",
        help="Repository to commit into",
    ),
    execute: bool = typer.Option(
        False,
        "--execute",
        help="Create commits (default is a dry run)",
    ),
    cleanup_on_error: bool = typer.Option(
        False,
        "--cleanup-on-error",
        help="Unstage the failing commit's files on error",
    ),
    plan_file: Optional[Path] = typer.Option(
        None,
        "--plan-file",
        help="Apply a stored plan instead of generating one",
    ),
    assisted_by: Optional[str] = typer.Option(
        None,
        "--assisted-by",
        help="Append 'Assisted by: <value>' to each commit message",
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
    """Apply a commit plan. Dry run unless --execute is given."""
    state = get_state(ctx)
    request_id = new_request_id()
    cancel = CancelToken()

    try:
        config = state.resolve(model=model, llm_timeout_secs=timeout, log_diff=log_diff)
        request = ApplyRequest(
            repo=repo,
            diff_text=read_diff_input(diff_file),
            diff_mode=diff_mode,
            include_untracked=include_untracked,
            execute=execute,
            cleanup_on_error=cleanup_on_error,
            assisted_by=assisted_by,
        )
        plan = read_plan_file(plan_file) if plan_file is not None else None
        with cancel_on_interrupt(cancel):
            response = apply_request(
                request, config, plan=plan, request_id=request_id, cancel=cancel
            )
    except AtomcError as e:
        raise typer.Exit(emit_error(e, output_format, request_id))
    except KeyboardInterrupt:
        raise typer.Exit(
            emit_error(ExecutionCancelled("interrupted"), output_format, request_id)
        )

    emit_payload(response, output_format)
    exit_code = exit_code_for_results(response.results)
    if exit_code:
        raise typer.Exit(exit_code)
