"""Data models for atomc commit plans and reports.

Contains:
- CommitType: The ten conventional commit kinds
- Hunk: Hunk reference (must stay empty until hunk-level staging exists)
- CommitUnit: A single planned atomic commit
- PlanWarning: Non-fatal annotation on a plan or report
- CommitPlan: The plan document exchanged with the Plan Generator
- InputMeta, ErrorDetail: Report metadata
- ApplyStatus, ExecutionResult: Per-unit execution outcome
- CommitApplyResponse, ErrorResponse: Top-level payloads
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from atomc import SCHEMA_VERSION
from atomc.config import DiffMode
from atomc.snapshot import InputSource

SCOPE_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"

SUMMARY_MIN_CHARS = 50
SUMMARY_MAX_CHARS = 72
BODY_MIN_LINES = 1
BODY_MAX_LINES = 3


class CommitType(str, Enum):
    """Conventional commit types accepted in a plan."""

    FEAT = "feat"
    FIX = "fix"
    REFACTOR = "refactor"
    STYLE = "style"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"
    BUILD = "build"
    PERF = "perf"
    CI = "ci"


class Hunk(BaseModel):
    """Reference to a hunk within a file."""

    model_config = ConfigDict(frozen=True)

    file: str
    header: str
    id: Optional[str] = None


class CommitUnit(BaseModel):
    """A single commit in the plan."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    type: CommitType
    scope: Optional[str] = Field(default=None, pattern=SCOPE_PATTERN)
    summary: str = Field(min_length=SUMMARY_MIN_CHARS, max_length=SUMMARY_MAX_CHARS)
    body: list[str] = Field(min_length=BODY_MIN_LINES, max_length=BODY_MAX_LINES)
    files: list[str] = Field(min_length=1)
    hunks: list[Hunk] = Field(default_factory=list, max_length=0)


class PlanWarning(BaseModel):
    """Non-fatal annotation attached to a plan or report."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class CommitPlan(BaseModel):
    """The plan document: an ordered, non-empty list of commit units."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = SCHEMA_VERSION
    request_id: Optional[str] = None
    warnings: list[PlanWarning] = Field(default_factory=list)
    plan: list[CommitUnit] = Field(min_length=1)

    @field_validator("schema_version")
    @classmethod
    def schema_version_must_match(cls, v: str) -> str:
        """Only the current schema version is understood."""
        if v != SCHEMA_VERSION:
            raise ValueError(f"schema_version must be {SCHEMA_VERSION!r}")
        return v

    @field_validator("warnings", mode="before")
    @classmethod
    def coerce_string_warnings(cls, v: Any) -> Any:
        """Accept bare strings from the generator as plan warnings."""
        if v is None:
            return []
        if isinstance(v, list):
            return [
                {"code": "generator_note", "message": item} if isinstance(item, str) else item
                for item in v
            ]
        return v

    @property
    def units(self) -> list[CommitUnit]:
        return self.plan


class InputMeta(BaseModel):
    """Where the diff came from and how it was captured."""

    source: InputSource
    diff_mode: Optional[DiffMode] = None
    include_untracked: Optional[bool] = None
    diff_hash: Optional[str] = None


class ErrorDetail(BaseModel):
    """Error body shared by envelopes and per-unit results."""

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ApplyStatus(str, Enum):
    """Outcome of a single commit unit."""

    PLANNED = "planned"
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class ExecutionResult(BaseModel):
    """Per-unit result; finalized once and never rewritten."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: ApplyStatus
    commit_hash: Optional[str] = None
    error: Optional[ErrorDetail] = None


class CommitPlanResponse(BaseModel):
    """Success payload of ``atomc plan``."""

    schema_version: str = SCHEMA_VERSION
    request_id: Optional[str] = None
    input: Optional[InputMeta] = None
    plan: list[CommitUnit]
    warnings: list[PlanWarning] = Field(default_factory=list)


class CommitApplyResponse(BaseModel):
    """Success payload of ``atomc apply``."""

    schema_version: str = SCHEMA_VERSION
    request_id: Optional[str] = None
    input: Optional[InputMeta] = None
    plan: list[CommitUnit]
    results: list[ExecutionResult]
    warnings: list[PlanWarning] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error envelope, mutually exclusive with any success payload."""

    schema_version: str = SCHEMA_VERSION
    request_id: Optional[str] = None
    error: ErrorDetail


Payload = Union[CommitPlanResponse, CommitApplyResponse, ErrorResponse]
