"""Commit message formatting and report rendering."""

from typing import Optional

from atomc.plan.models import (
    ApplyStatus,
    CommitApplyResponse,
    CommitPlanResponse,
    CommitUnit,
    ErrorResponse,
    PlanWarning,
)

ASSISTED_BY_PREFIX = "Assisted by: "


def render_commit_header(unit: CommitUnit) -> str:
    """Render the first line of a commit message.

    Args:
        unit: The commit unit.

    Returns:
        ``type[scope]: summary``, or ``type: summary`` for a global unit.
    """
    if unit.scope:
        return f"{unit.type.value}[{unit.scope}]: {unit.summary.strip()}"
    return f"{unit.type.value}: {unit.summary.strip()}"


def render_commit_message(unit: CommitUnit, assisted_by: Optional[str] = None) -> str:
    """Render a CommitUnit into a formatted commit message string.

    Args:
        unit: The commit unit to render.
        assisted_by: Model name supplied by the caller for the trailer line.

    Returns:
        A formatted commit message with header, blank line and body lines.

    Example output:
        docs[readme]: Describe local setup steps for new contributors

        Explain how to install the toolchain and run the tests.

        Assisted by: deepseek-coder
    """
    header = render_commit_header(unit)
    body = "\n".join(line.strip() for line in unit.body)
    message = f"{header}\n\n{body}"

    if assisted_by and assisted_by.strip():
        message += f"\n\n{ASSISTED_BY_PREFIX}{assisted_by.strip()}"

    return message + "\n"


def _format_warnings(warnings: list[PlanWarning]) -> list[str]:
    return [f"  warning [{w.code}]: {w.message}" for w in warnings]


def format_plan_human(response: CommitPlanResponse) -> str:
    """Render a plan for terminal output.

    Args:
        response: The plan payload.

    Returns:
        Multi-line text listing each unit's header, body and files.
    """
    lines: list[str] = []
    if response.input and response.input.diff_hash:
        lines.append(f"diff: {response.input.diff_hash}")
        lines.append("")

    for index, unit in enumerate(response.plan, start=1):
        lines.append(f"{index}. [{unit.id}] {render_commit_header(unit)}")
        for body_line in unit.body:
            lines.append(f"     {body_line}")
        lines.append(f"     files: {', '.join(unit.files)}")

    if response.warnings:
        lines.append("")
        lines.extend(_format_warnings(response.warnings))

    return "\n".join(lines)


_STATUS_LABELS = {
    ApplyStatus.PLANNED: "planned",
    ApplyStatus.APPLIED: "applied",
    ApplyStatus.SKIPPED: "skipped",
    ApplyStatus.FAILED: "FAILED",
}


def format_report_human(response: CommitApplyResponse) -> str:
    """Render an apply report for terminal output.

    Args:
        response: The apply payload.

    Returns:
        Multi-line text with one status line per unit.
    """
    units = {unit.id: unit for unit in response.plan}
    lines: list[str] = []

    for result in response.results:
        unit = units.get(result.id)
        header = render_commit_header(unit) if unit else result.id
        line = f"{_STATUS_LABELS[result.status]:>8}  {header}"
        if result.commit_hash:
            line += f"  ({result.commit_hash[:12]})"
        lines.append(line)
        if result.error:
            lines.append(f"          error [{result.error.code}]: {result.error.message}")

    if response.warnings:
        lines.append("")
        lines.extend(_format_warnings(response.warnings))

    return "\n".join(lines)


def format_error_human(response: ErrorResponse) -> str:
    """Render an error envelope as a single line for stderr."""
    return f"error [{response.error.code}]: {response.error.message}"
