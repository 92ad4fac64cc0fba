"""Library entry points for planning and applying commits.

Contains:
- PlanRequest: Diff sourcing options for a plan call
- ApplyRequest: PlanRequest plus execution options
- capture_snapshot: Resolve the diff source and capture a snapshot
- plan_request: Generate and validate a plan (read-only)
- apply_request: Plan (or take a stored plan) and run the orchestrator
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from atomc.config import DiffMode, ResolvedConfig
from atomc.errors import InputInvalidError
from atomc.git.diff import short_status
from atomc.git.exceptions import GitError
from atomc.git.runner import get_repo_root
from atomc.llm import get_provider
from atomc.plan.executor import ExecutionMode, Orchestrator
from atomc.plan.locks import DEFAULT_REGISTRY, CancelToken, RepoLockRegistry
from atomc.plan.models import CommitApplyResponse, CommitPlan, CommitPlanResponse, InputMeta
from atomc.plan.planner import PlanGenerator, generate_plan
from atomc.plan.validation import ValidatedPlan, validate_plan
from atomc.snapshot import DiffSnapshot, capture_repo, capture_text

logger = logging.getLogger(__name__)


@dataclass
class PlanRequest:
    """Where the diff comes from.

    An explicit ``diff_text`` always wins over computing a diff from ``repo``.
    ``diff_mode`` and ``include_untracked`` fall back to the configuration.
    """

    repo: Optional[Path] = None
    diff_text: Optional[str] = None
    diff_mode: Optional[DiffMode] = None
    include_untracked: Optional[bool] = None


@dataclass
class ApplyRequest(PlanRequest):
    """Apply options; the default is a dry run."""

    execute: bool = False
    cleanup_on_error: bool = False
    assisted_by: Optional[str] = None


def new_request_id() -> str:
    return uuid.uuid4().hex


def _resolve_repo(path: Path) -> Path:
    if not Path(path).is_dir():
        raise InputInvalidError(
            f"repository path does not exist: {path}", details={"repo": str(path)}
        )
    try:
        return get_repo_root(Path(path))
    except GitError as e:
        raise InputInvalidError(
            f"not a git repository: {path}", details={"repo": str(path)}
        ) from e


def capture_snapshot(
    request: PlanRequest,
    config: ResolvedConfig,
    repo_root: Optional[Path] = None,
) -> DiffSnapshot:
    """Capture the snapshot a request describes.

    Args:
        request: Diff sourcing options.
        config: Resolved configuration.
        repo_root: Already resolved repository root, if any.

    Returns:
        The captured snapshot.

    Raises:
        InputInvalidError: If there is no diff source, or the diff is empty or
            too large.
        GitError: If computing the repository diff fails.
    """
    mode = request.diff_mode or config.diff_mode
    include_untracked = (
        request.include_untracked
        if request.include_untracked is not None
        else config.include_untracked
    )

    if request.diff_text is not None:
        return capture_text(
            request.diff_text,
            mode=mode,
            include_untracked=include_untracked,
            max_diff_bytes=config.max_diff_bytes,
            repo_root=repo_root,
            log_diff=config.log_diff,
        )

    if repo_root is None and request.repo is None:
        raise InputInvalidError("no diff input: pipe a diff, pass --diff-file or --repo")

    root = repo_root or _resolve_repo(request.repo)
    return capture_repo(
        root,
        mode,
        include_untracked,
        max_diff_bytes=config.max_diff_bytes,
        log_diff=config.log_diff,
    )


def _input_meta(snapshot: DiffSnapshot) -> InputMeta:
    return InputMeta(
        source=snapshot.source,
        diff_mode=snapshot.mode,
        include_untracked=snapshot.include_untracked,
        diff_hash=snapshot.diff_hash,
    )


def _git_status(repo_root: Optional[Path]) -> Optional[str]:
    if repo_root is None:
        return None
    try:
        return short_status(repo_root)
    except GitError as e:
        logger.debug("git status unavailable: %s", e.message)
        return None


def _generate(
    snapshot: DiffSnapshot,
    config: ResolvedConfig,
    generator: Optional[PlanGenerator],
    repo_root: Optional[Path],
    cancel: Optional[CancelToken],
) -> ValidatedPlan:
    return generate_plan(
        generator or get_provider(config),
        snapshot,
        timeout_secs=config.llm_timeout_secs,
        scope_policy=config.scope_policy,
        git_status=_git_status(repo_root),
        cancel=cancel,
    )


def plan_request(
    request: PlanRequest,
    config: ResolvedConfig,
    generator: Optional[PlanGenerator] = None,
    request_id: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> CommitPlanResponse:
    """Generate a validated commit plan. Never touches the repository.

    Args:
        request: Diff sourcing options.
        config: Resolved configuration.
        generator: Plan Generator; defaults to the configured runtime.
        request_id: Identifier echoed in the response.
        cancel: Token checked while waiting on the generator.

    Returns:
        The plan payload.

    Raises:
        InputInvalidError: For missing, empty or oversized input.
        LLMError: If the generator fails or times out.
        PlanValidationError: If no valid plan was produced.
    """
    repo_root = _resolve_repo(request.repo) if request.repo is not None else None
    snapshot = capture_snapshot(request, config, repo_root)
    validated = _generate(snapshot, config, generator, repo_root, cancel)

    return CommitPlanResponse(
        request_id=request_id or new_request_id(),
        input=_input_meta(snapshot),
        plan=validated.plan.plan,
        warnings=validated.warnings,
    )


def apply_request(
    request: ApplyRequest,
    config: ResolvedConfig,
    generator: Optional[PlanGenerator] = None,
    plan: Optional[Union[CommitPlan, dict, str]] = None,
    locks: RepoLockRegistry = DEFAULT_REGISTRY,
    request_id: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> CommitApplyResponse:
    """Plan (or take a stored plan) and apply it to a repository.

    A stored plan is validated against the fresh snapshot without any
    correction attempt. The repository lock is held from preflight until the
    last unit is finished.

    Args:
        request: Diff sourcing and execution options; ``repo`` is required.
        config: Resolved configuration.
        generator: Plan Generator; defaults to the configured runtime.
        plan: Stored plan to apply instead of generating one.
        locks: Registry holding the per-repository locks.
        request_id: Identifier echoed in the response.
        cancel: Token checked while waiting on the generator and between units.

    Returns:
        The apply report.

    Raises:
        InputInvalidError: For a missing repository or bad input.
        LLMError: If the generator fails or times out.
        PlanValidationError: If the plan is invalid.
        RepoBusyError: If another apply holds the repository.
        WorktreeDriftError: If the repository changed since the snapshot.
    """
    if request.repo is None:
        raise InputInvalidError("apply requires a repository path")

    repo_root = _resolve_repo(request.repo)
    snapshot = capture_snapshot(request, config, repo_root)

    if plan is None:
        validated = _generate(snapshot, config, generator, repo_root, cancel)
    else:
        raw = plan.model_dump(mode="json") if isinstance(plan, CommitPlan) else plan
        validated = validate_plan(raw, snapshot, config.scope_policy)

    mode = ExecutionMode.EXECUTE if request.execute else ExecutionMode.SIMULATE
    with locks.hold(repo_root):
        orchestrator = Orchestrator(
            repo_root,
            snapshot,
            validated.plan,
            mode=mode,
            cleanup_on_error=request.cleanup_on_error,
            assisted_by=request.assisted_by,
            cancel=cancel,
        )
        report = orchestrator.run()

    logger.info(
        "Apply %s finished in state %s (%d commits)",
        mode.value,
        report.state.value,
        len(report.commit_hashes),
    )

    return CommitApplyResponse(
        request_id=request_id or new_request_id(),
        input=_input_meta(snapshot),
        plan=validated.plan.plan,
        results=report.results,
        warnings=validated.warnings + report.warnings,
    )
