"""Commit planning and execution for atomc.

This package turns untrusted Plan Generator output into commits:
- models: CommitUnit, CommitPlan, results and report payloads
- validation: Structural and semantic validation
- prompt: Plan and correction prompts
- planner: Generator calls with a deadline and a single correction
- formatters: Commit message and report rendering
- locks: Per-repository apply locks and cancellation
- executor: The execution orchestrator
"""

# Models
from atomc.plan.models import (
    ApplyStatus,
    CommitApplyResponse,
    CommitPlan,
    CommitPlanResponse,
    CommitType,
    CommitUnit,
    ErrorDetail,
    ErrorResponse,
    ExecutionResult,
    Hunk,
    InputMeta,
    PlanWarning,
)

# Validation
from atomc.plan.validation import (
    PlanValidationError,
    ValidatedPlan,
    validate_plan,
    validate_semantics,
    validate_structure,
)

# Prompts
from atomc.plan.prompt import (
    CORRECTION_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    PromptContext,
    build_correction_prompt,
    build_plan_prompt,
)

# Plan generation
from atomc.plan.planner import (
    MAX_CORRECTIONS,
    PlanGenerator,
    call_generator,
    generate_plan,
)

# Formatting
from atomc.plan.formatters import (
    format_error_human,
    format_plan_human,
    format_report_human,
    render_commit_header,
    render_commit_message,
)

# Locks
from atomc.plan.locks import (
    DEFAULT_REGISTRY,
    CancelToken,
    RepoLockRegistry,
)

# Execution
from atomc.plan.executor import (
    ExecutionMode,
    ExecutionReport,
    ExecutionState,
    Orchestrator,
    PlanConflictError,
)


__all__ = [
    # Models
    "ApplyStatus",
    "CommitApplyResponse",
    "CommitPlan",
    "CommitPlanResponse",
    "CommitType",
    "CommitUnit",
    "ErrorDetail",
    "ErrorResponse",
    "ExecutionResult",
    "Hunk",
    "InputMeta",
    "PlanWarning",
    # Validation
    "PlanValidationError",
    "ValidatedPlan",
    "validate_plan",
    "validate_semantics",
    "validate_structure",
    # Prompts
    "SYSTEM_PROMPT",
    "CORRECTION_SYSTEM_PROMPT",
    "PromptContext",
    "build_plan_prompt",
    "build_correction_prompt",
    # Plan generation
    "MAX_CORRECTIONS",
    "PlanGenerator",
    "call_generator",
    "generate_plan",
    # Formatting
    "render_commit_header",
    "render_commit_message",
    "format_plan_human",
    "format_report_human",
    "format_error_human",
    # Locks
    "DEFAULT_REGISTRY",
    "CancelToken",
    "RepoLockRegistry",
    # Execution
    "ExecutionMode",
    "ExecutionReport",
    "ExecutionState",
    "Orchestrator",
    "PlanConflictError",
]
