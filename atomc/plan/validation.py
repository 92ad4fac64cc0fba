"""Plan validation for atomc.

Validation runs in two phases. Structural validation turns raw generator
output into a CommitPlan; semantic validation checks the plan against the
snapshot it was generated for. Every violation is reported, not only the
first, so a correction request can name all of them.

Contains:
- PlanValidationError: Exception carrying the violated rules
- ValidatedPlan: An execution-ready plan and its warnings
- validate_structure: Parse and schema-check raw plan output
- validate_semantics: Business-rule checks against a snapshot
- validate_plan: Both phases in order
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import ValidationError

from atomc.config import ScopePolicy
from atomc.errors import EXIT_CODES, AtomcError, ErrorCode
from atomc.llm.exceptions import LLMParseError
from atomc.llm.parsing import parse_json_response
from atomc.plan.models import CommitPlan, CommitType, PlanWarning
from atomc.snapshot import DiffSnapshot

_TYPE_NAMES = "|".join(t.value for t in CommitType)

# "feat[api]: ...", "fix(core): ...", "docs: ..." at the start of a summary
_HEADER_PREFIX_RE = re.compile(
    rf"^\s*({_TYPE_NAMES})\s*(\[[^\]]*\]|\([^)]*\))?\s*!?\s*:", re.IGNORECASE
)

_LIST_MARKER_RE = re.compile(r"^\s*([-*+•]|\d+[.)])(\s|$)")

_META_LABEL_RE = re.compile(
    r"^\s*(summary|body|title|subject|why|what|how|changes?|reason|rationale|"
    r"description|context|notes?|details|impact|scope|type)\s*:",
    re.IGNORECASE,
)


class PlanValidationError(AtomcError):
    """Error during plan validation."""

    code = ErrorCode.LLM_PARSE_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.LLM_PARSE_ERROR]

    def __init__(
        self,
        message: str,
        violations: list[str],
        details: Optional[dict[str, Any]] = None,
    ):
        merged = {"violations": list(violations)}
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.violations = list(violations)


@dataclass(frozen=True)
class ValidatedPlan:
    """A plan that passed both validation phases."""

    plan: CommitPlan
    warnings: list[PlanWarning] = field(default_factory=list)


def _format_location(loc: tuple) -> str:
    """Render a pydantic error location as ``plan[0].summary``."""
    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text += f".{part}" if text else str(part)
    return text or "plan"


def validate_structure(raw: Union[str, dict]) -> CommitPlan:
    """Parse raw generator output and check it against the plan schema.

    Args:
        raw: Raw response text, or an already-decoded JSON object.

    Returns:
        The structurally valid plan.

    Raises:
        PlanValidationError: If the output is not JSON or breaks the schema.
    """
    if isinstance(raw, str):
        try:
            data = parse_json_response(raw)
        except LLMParseError as e:
            raise PlanValidationError(
                "plan is not valid JSON", violations=[e.message]
            ) from e
    else:
        data = raw

    try:
        return CommitPlan.model_validate(data)
    except ValidationError as e:
        violations = [
            f"{_format_location(err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise PlanValidationError(
            "plan does not match the CommitPlan schema", violations=violations
        ) from e


def validate_semantics(
    plan: CommitPlan,
    snapshot: DiffSnapshot,
    scope_policy: ScopePolicy = ScopePolicy.WARN,
) -> list[PlanWarning]:
    """Validate a structurally valid plan against its snapshot.

    Args:
        plan: The plan to validate.
        snapshot: The snapshot the plan was generated for.
        scope_policy: How to treat units without a scope.

    Returns:
        Warnings produced by validation (the plan's own warnings excluded).

    Raises:
        PlanValidationError: If any rule is violated.
    """
    errors: list[str] = []
    warnings: list[PlanWarning] = []

    snapshot_files = set(snapshot.files)
    seen_ids: set[str] = set()
    owners: dict[str, str] = {}
    conflicts: dict[str, list[str]] = {}

    for unit in plan.plan:
        if not unit.id.strip():
            errors.append("commit id must not be blank")
        elif unit.id in seen_ids:
            errors.append(f"commit id {unit.id} is used more than once")
        seen_ids.add(unit.id)

        listed: set[str] = set()
        for path in unit.files:
            if path in listed:
                errors.append(f"commit {unit.id} lists {path} more than once")
                continue
            listed.add(path)

            if path not in snapshot_files:
                errors.append(f"commit {unit.id} references file not in diff: {path}")
            if path in owners:
                conflicts.setdefault(path, [owners[path]]).append(unit.id)
                errors.append(
                    f"file {path} is claimed by commits {owners[path]} and {unit.id}"
                )
            else:
                owners[path] = unit.id

        if _HEADER_PREFIX_RE.match(unit.summary):
            errors.append(
                f"commit {unit.id} summary must not start with a type[scope]: prefix"
            )

        for index, line in enumerate(unit.body):
            if not line.strip():
                errors.append(f"commit {unit.id} body line {index} is empty")
            elif _LIST_MARKER_RE.match(line):
                errors.append(f"commit {unit.id} body line {index} starts with a list marker")
            elif _META_LABEL_RE.match(line):
                errors.append(f"commit {unit.id} body line {index} contains a meta label")

        if unit.scope is None:
            if scope_policy == ScopePolicy.REQUIRE:
                errors.append(f"commit {unit.id} scope is missing")
            elif scope_policy == ScopePolicy.WARN:
                warnings.append(
                    PlanWarning(
                        code="scope_missing",
                        message=f"commit {unit.id} has no scope (global change)",
                        details={"id": unit.id},
                    )
                )

    if errors:
        details = {"conflicts": conflicts} if conflicts else None
        raise PlanValidationError(
            "plan failed semantic validation", violations=errors, details=details
        )

    return warnings


def validate_plan(
    raw: Union[str, dict],
    snapshot: DiffSnapshot,
    scope_policy: ScopePolicy = ScopePolicy.WARN,
) -> ValidatedPlan:
    """Run structural then semantic validation.

    Args:
        raw: Raw response text or decoded JSON object.
        snapshot: The governing snapshot.
        scope_policy: How to treat units without a scope.

    Returns:
        The validated plan with its warnings followed by validation warnings.

    Raises:
        PlanValidationError: If either phase fails.
    """
    plan = validate_structure(raw)
    warnings = validate_semantics(plan, snapshot, scope_policy)
    return ValidatedPlan(plan=plan, warnings=list(plan.warnings) + warnings)
