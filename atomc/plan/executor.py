"""Execution orchestrator for validated commit plans.

The orchestrator is a per-apply state machine:

    Idle -> PreflightVerify -> Staging(i) -> VerifyStaged(i) -> Committing(i)
         -> ... -> Completed

Drift found during preflight aborts the whole run before any mutation. A
failing unit ends the run: earlier commits are kept, the failing unit is
reported as failed and every later unit as skipped.

In staged mode each unit commits the index entries captured with the
snapshot, never the working tree. Files not yet committed when a run stops
get those entries back.

Contains:
- ExecutionMode: Simulate (dry run) or Execute
- ExecutionState: States of the orchestrator
- PlanConflictError: A file already committed by an earlier unit
- ExecutionReport: Per-unit results of one run
- Orchestrator: Drives the git adapter unit by unit
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from atomc.config import DiffMode
from atomc.errors import EXIT_CODES, AtomcError, ErrorCode
from atomc.git.diff import parse_diff_sections
from atomc.git.exceptions import GitError, StagedDiffMismatchError, WorktreeDriftError
from atomc.git.index import (
    commit_staged,
    index_entries,
    removal_entry,
    reset_paths,
    stage_paths,
    staged_diff,
    staged_files,
    write_index_entries,
)
from atomc.plan.formatters import render_commit_message
from atomc.plan.locks import CancelToken
from atomc.plan.models import (
    ApplyStatus,
    CommitPlan,
    CommitUnit,
    ErrorDetail,
    ExecutionResult,
    PlanWarning,
)
from atomc.snapshot import DiffSnapshot, compute_diff_hash, recompute_diff

logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    """Whether an apply run may touch the repository."""

    SIMULATE = "simulate"
    EXECUTE = "execute"


class ExecutionState(str, Enum):
    """States of one apply run."""

    IDLE = "idle"
    PREFLIGHT_VERIFY = "preflight_verify"
    STAGING = "staging"
    VERIFY_STAGED = "verify_staged"
    COMMITTING = "committing"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


class PlanConflictError(AtomcError):
    """Raised when a unit lists a file an earlier unit already consumed."""

    code = "plan_conflict"
    exit_code = EXIT_CODES[ErrorCode.LLM_PARSE_ERROR]


@dataclass
class ExecutionReport:
    """Results of one run, one entry per unit in plan order."""

    mode: ExecutionMode
    state: ExecutionState
    results: list[ExecutionResult] = field(default_factory=list)
    warnings: list[PlanWarning] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> Optional[ExecutionResult]:
        """The failed unit's result, if any."""
        for result in self.results:
            if result.status == ApplyStatus.FAILED:
                return result
        return None

    @property
    def commit_hashes(self) -> list[str]:
        return [r.commit_hash for r in self.results if r.commit_hash]


class Orchestrator:
    """Apply a validated plan to a repository.

    The caller is responsible for holding the repository lock for the whole
    lifetime of ``run``.
    """

    def __init__(
        self,
        repo_root: Path,
        snapshot: DiffSnapshot,
        plan: CommitPlan,
        mode: ExecutionMode = ExecutionMode.SIMULATE,
        cleanup_on_error: bool = False,
        assisted_by: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.repo_root = Path(repo_root)
        self.snapshot = snapshot
        self.plan = plan
        self.mode = mode
        self.cleanup_on_error = cleanup_on_error
        self.assisted_by = assisted_by
        self.cancel = cancel
        self.state = ExecutionState.IDLE
        self.results: list[ExecutionResult] = []
        self._consumed: dict[str, str] = {}
        self._touched: list[str] = []
        self._index_cleared = False
        # Staged mode: index entries of plan files as found before the first unit
        self._saved_entries: Optional[dict[str, list[str]]] = None
        self._committed: set[str] = set()

    def _transition(self, state: ExecutionState, unit: Optional[CommitUnit] = None) -> None:
        if unit is not None:
            logger.debug("%s -> %s (%s)", self.state.value, state.value, unit.id)
        else:
            logger.debug("%s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Preflight
    # ------------------------------------------------------------------

    def preflight(self) -> None:
        """Recompute the diff with the snapshot's settings and compare hashes.

        Raises:
            WorktreeDriftError: If the repository changed since the snapshot.
            GitError: If the diff cannot be computed.
        """
        self._transition(ExecutionState.PREFLIGHT_VERIFY)
        current = recompute_diff(self.snapshot, self.repo_root)
        actual = compute_diff_hash(current)
        if actual != self.snapshot.diff_hash:
            logger.error(
                "Worktree drift: expected %s, actual %s", self.snapshot.diff_hash, actual
            )
            raise WorktreeDriftError(self.snapshot.diff_hash, actual)
        logger.debug("Preflight hash verified: %s", actual)

    # ------------------------------------------------------------------
    # Per-unit checks
    # ------------------------------------------------------------------

    def _check_conflicts(self, unit: CommitUnit) -> None:
        """Reject files consumed by an earlier unit before any git command runs."""
        for path in unit.files:
            owner = self._consumed.get(path)
            if owner is not None:
                raise PlanConflictError(
                    f"commit {unit.id} lists {path}, already consumed by commit {owner}",
                    details={"kind": "plan_conflict", "file": path, "unit": unit.id,
                             "claimed_by": owner},
                )

    def _check_membership(self, unit: CommitUnit) -> None:
        missing = [path for path in unit.files if self.snapshot.section_for(path) is None]
        if missing:
            raise StagedDiffMismatchError(
                f"commit {unit.id} lists files not in the snapshot",
                details={"kind": "file_not_in_snapshot", "unit": unit.id, "files": missing},
            )

    def _verify_staged(self, unit: CommitUnit) -> None:
        """Verify the index holds exactly the unit's files and snapshot content.

        Raises:
            StagedDiffMismatchError: If the file set or any file's diff differs.
        """
        expected = sorted(set(unit.files))
        actual = staged_files(self.repo_root)
        if actual != expected:
            raise StagedDiffMismatchError(
                f"staged files do not match commit {unit.id}",
                details={
                    "kind": "staged_files_mismatch",
                    "unit": unit.id,
                    "expected": expected,
                    "actual": actual,
                    "extra": sorted(set(actual) - set(expected)),
                    "missing": sorted(set(expected) - set(actual)),
                },
            )

        sections = parse_diff_sections(staged_diff(self.repo_root, expected))
        mismatched = [
            path for path in expected
            if sections.get(path) != self.snapshot.section_for(path)
        ]
        if mismatched:
            raise StagedDiffMismatchError(
                f"staged diff for commit {unit.id} differs from the snapshot",
                details={"kind": "staged_diff_mismatch", "unit": unit.id, "files": mismatched},
            )

    # ------------------------------------------------------------------
    # Per-unit sequences
    # ------------------------------------------------------------------

    def _simulate_unit(self, unit: CommitUnit) -> ExecutionResult:
        self._check_conflicts(unit)
        self._check_membership(unit)
        for path in unit.files:
            self._consumed[path] = unit.id
        return ExecutionResult(id=unit.id, status=ApplyStatus.PLANNED)

    def _execute_unit(self, unit: CommitUnit) -> ExecutionResult:
        self._check_conflicts(unit)
        self._check_membership(unit)
        for path in unit.files:
            self._consumed[path] = unit.id

        self._transition(ExecutionState.STAGING, unit)
        if not self._index_cleared:
            plan_files = sorted({p for u in self.plan.plan for p in u.files})
            if self.snapshot.mode == DiffMode.STAGED:
                self._saved_entries = index_entries(self.repo_root, plan_files)
            # Staged entries of later units must not ride along in this commit
            reset_paths(self.repo_root, plan_files)
            self._index_cleared = True
        self._touched = list(unit.files)
        if self._saved_entries is not None:
            self._restore_entries(unit.files, stage_untracked=True)
        else:
            reset_paths(self.repo_root, unit.files)
            stage_paths(self.repo_root, unit.files)

        self._transition(ExecutionState.VERIFY_STAGED, unit)
        self._verify_staged(unit)

        self._transition(ExecutionState.COMMITTING, unit)
        message = render_commit_message(unit, self.assisted_by)
        commit_hash = commit_staged(self.repo_root, message)
        self._committed.update(unit.files)
        self._touched = []
        return ExecutionResult(id=unit.id, status=ApplyStatus.APPLIED, commit_hash=commit_hash)

    def _restore_entries(self, paths: list[str], stage_untracked: bool) -> None:
        """Put back the index entries ``paths`` had before the run.

        A path without a saved entry was either untracked (its snapshot
        section is a whole-file addition) or deleted from the index.
        """
        entries: list[str] = []
        untracked: list[str] = []
        for path in paths:
            saved = self._saved_entries.get(path)
            if saved:
                entries.extend(saved)
            elif "\nnew file mode " in (self.snapshot.section_for(path) or ""):
                untracked.append(path)
            else:
                entries.append(removal_entry(path))
        write_index_entries(self.repo_root, entries)
        if stage_untracked:
            stage_paths(self.repo_root, untracked)
        else:
            reset_paths(self.repo_root, untracked)

    def _restore_pending(self) -> None:
        """Return uncommitted plan files to their pre-run index state."""
        if self._saved_entries is None:
            return
        pending = sorted(
            {p for u in self.plan.plan for p in u.files} - self._committed
        )
        try:
            self._restore_entries(pending, stage_untracked=False)
            logger.info("Restored staged changes of %d uncommitted files", len(pending))
        except GitError as e:
            logger.warning("Restoring staged changes failed: %s", e.message)

    def _cleanup(self, unit: CommitUnit) -> None:
        """Unstage only what the failing unit's attempt touched."""
        if not self._touched:
            return
        try:
            reset_paths(self.repo_root, self._touched)
            logger.info("Unstaged files of failed commit %s", unit.id)
        except GitError as e:
            logger.warning("Cleanup after commit %s failed: %s", unit.id, e.message)

    def _skip_rest(self, start: int, error: Optional[ErrorDetail] = None) -> None:
        for unit in self.plan.plan[start:]:
            self.results.append(
                ExecutionResult(id=unit.id, status=ApplyStatus.SKIPPED, error=error)
            )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> ExecutionReport:
        """Run preflight and every unit in order.

        Returns:
            The execution report.

        Raises:
            WorktreeDriftError: If preflight finds drift (nothing was changed).
            GitError: If preflight cannot compute the current diff.
        """
        if self.state != ExecutionState.IDLE:
            raise AtomcError("orchestrator has already run")

        try:
            self.preflight()
        except GitError:
            self._transition(ExecutionState.ABORTED)
            raise

        report = ExecutionReport(mode=self.mode, state=self.state, results=self.results)
        run_unit = self._execute_unit if self.mode == ExecutionMode.EXECUTE else self._simulate_unit

        for index, unit in enumerate(self.plan.plan):
            if self.cancel is not None and self.cancel.cancelled:
                logger.warning("Cancellation requested, stopping before commit %s", unit.id)
                self._skip_rest(
                    index, ErrorDetail(code="interrupted", message="apply was cancelled")
                )
                self._restore_pending()
                report.cancelled = True
                report.warnings.append(
                    PlanWarning(
                        code="cancelled",
                        message=f"apply cancelled before commit {unit.id}",
                        details={"applied": index},
                    )
                )
                self._transition(ExecutionState.ABORTED)
                break

            try:
                result = run_unit(unit)
            except (GitError, PlanConflictError) as e:
                logger.error("Commit %s failed: %s", unit.id, e.message)
                if self._saved_entries is not None:
                    # Uncommitted files go back to their pre-run entries
                    self._restore_pending()
                elif self.mode == ExecutionMode.EXECUTE and self.cleanup_on_error:
                    self._cleanup(unit)
                self.results.append(
                    ExecutionResult(
                        id=unit.id,
                        status=ApplyStatus.FAILED,
                        error=ErrorDetail(**e.to_detail()),
                    )
                )
                self._skip_rest(index + 1)
                self._transition(ExecutionState.FAILED)
                break

            self.results.append(result)
            if result.commit_hash:
                logger.info("Committed %s as %s", unit.id, result.commit_hash[:12])
            else:
                logger.info("Planned %s (%s)", unit.id, ", ".join(unit.files))
        else:
            self._transition(ExecutionState.COMPLETED)

        report.state = self.state
        return report
