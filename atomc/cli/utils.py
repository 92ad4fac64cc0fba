"""Shared utility functions for CLI commands."""

import json
import signal
import sys
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

import typer

from atomc.errors import (
    EXIT_CODES,
    EXIT_INTERRUPTED,
    AtomcError,
    ErrorCode,
    InputInvalidError,
    UsageError,
)
from atomc.plan.executor import PlanConflictError
from atomc.plan.formatters import (
    format_error_human,
    format_plan_human,
    format_report_human,
)
from atomc.plan.locks import CancelToken
from atomc.plan.models import (
    ApplyStatus,
    CommitApplyResponse,
    CommitPlanResponse,
    ErrorDetail,
    ErrorResponse,
    ExecutionResult,
)


class OutputFormat(str, Enum):
    """Output rendering of payloads."""

    JSON = "json"
    HUMAN = "human"


class LogLevel(str, Enum):
    """Accepted --log-level values."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


STDIN_PATH = "-"


def _read_stdin() -> str:
    return sys.stdin.read()


def _stdin_is_piped() -> bool:
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def read_diff_input(diff_file: Optional[str]) -> Optional[str]:
    """Read an explicit diff from ``--diff-file`` or piped stdin.

    Args:
        diff_file: Path given with --diff-file, ``-`` for stdin, or None.

    Returns:
        The diff text, or None when no explicit diff was supplied.

    Raises:
        UsageError: If a diff is piped and --diff-file names a file too.
        InputInvalidError: If the diff file cannot be read.
    """
    if diff_file == STDIN_PATH:
        return _read_stdin()

    piped = _read_stdin() if _stdin_is_piped() else ""

    if diff_file is not None:
        if piped.strip():
            raise UsageError("pass the diff either on stdin or with --diff-file, not both")
        path = Path(diff_file)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InputInvalidError(
                f"cannot read diff file {path}: {e}", details={"path": str(path)}
            )

    # An empty pipe is the same as no pipe
    return piped if piped.strip() else None


def read_plan_file(plan_file: Path) -> str:
    """Read a stored plan document."""
    try:
        return plan_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputInvalidError(
            f"cannot read plan file {plan_file}: {e}", details={"path": str(plan_file)}
        )


def exit_code_for(code: str) -> int:
    """Map an envelope or per-unit error code to a process exit code."""
    if code == PlanConflictError.code:
        return PlanConflictError.exit_code
    if code == "interrupted":
        return EXIT_INTERRUPTED
    try:
        return EXIT_CODES[ErrorCode(code)]
    except ValueError:
        return EXIT_CODES[ErrorCode.GIT_ERROR]


def exit_code_for_results(results: list[ExecutionResult]) -> int:
    """Exit code of an apply report.

    A failed unit decides the exit code; otherwise an interrupted run exits
    130 and a complete run exits 0.
    """
    for result in results:
        if result.status == ApplyStatus.FAILED and result.error:
            return exit_code_for(result.error.code)
    for result in results:
        if result.error and result.error.code == "interrupted":
            return EXIT_INTERRUPTED
    return 0


def _dump(model) -> str:
    return json.dumps(model.model_dump(mode="json", exclude_none=True), indent=2)


def emit_payload(
    payload: Union[CommitPlanResponse, CommitApplyResponse],
    output_format: OutputFormat,
) -> None:
    """Print a success payload on stdout."""
    if output_format == OutputFormat.JSON:
        typer.echo(_dump(payload))
    elif isinstance(payload, CommitApplyResponse):
        typer.echo(format_report_human(payload))
    else:
        typer.echo(format_plan_human(payload))


def emit_error(
    error: AtomcError,
    output_format: OutputFormat,
    request_id: Optional[str] = None,
) -> int:
    """Print the error envelope and return the exit code to use.

    JSON output goes to stdout so callers always parse one document; human
    output goes to stderr.
    """
    envelope = ErrorResponse(request_id=request_id, error=ErrorDetail(**error.to_detail()))
    if output_format == OutputFormat.JSON:
        typer.echo(_dump(envelope))
    else:
        typer.echo(format_error_human(envelope), err=True)
        violations = (error.details or {}).get("violations") or []
        for violation in violations:
            typer.echo(f"  - {violation}", err=True)
    return error.exit_code


@contextmanager
def cancel_on_interrupt(cancel: CancelToken) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancellation request.

    A second Ctrl-C raises KeyboardInterrupt as usual.
    """
    try:
        previous = signal.getsignal(signal.SIGINT)
    except ValueError:
        yield
        return

    def handler(signum, frame):
        if cancel.cancelled:
            raise KeyboardInterrupt
        cancel.cancel()
        typer.echo("Cancelling after the current commit...", err=True)

    try:
        signal.signal(signal.SIGINT, handler)
    except ValueError:
        # Not the main thread; leave interrupts alone
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
