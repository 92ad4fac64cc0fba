"""Plan generation with a deadline and a single bounded retry.

Contains:
- PlanGenerator: The interface of the external Plan Generator
- MAX_CORRECTIONS: Number of correction requests allowed per call
- call_generator: One generator call bounded by a timeout
- generate_plan: Generate, validate and correct a plan at most once
"""

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Optional, Protocol

from atomc.config import ScopePolicy
from atomc.errors import AtomcError, ExecutionCancelled
from atomc.llm.exceptions import LLMError, LLMTimeoutError
from atomc.plan.locks import CancelToken
from atomc.plan.prompt import (
    CORRECTION_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    PromptContext,
    build_correction_prompt,
    build_plan_prompt,
)
from atomc.plan.validation import PlanValidationError, ValidatedPlan, validate_plan
from atomc.snapshot import DiffSnapshot

logger = logging.getLogger(__name__)

MAX_CORRECTIONS = 1

# How often a pending call checks for cancellation
_POLL_INTERVAL_SECS = 0.1


class PlanGenerator(Protocol):
    """Untrusted function from prompts to raw plan text."""

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        ...


def call_generator(
    generator: PlanGenerator,
    system_prompt: str,
    user_prompt: str,
    timeout_secs: float,
    cancel: Optional[CancelToken] = None,
) -> str:
    """Call the generator on a worker thread and wait at most ``timeout_secs``.

    Args:
        generator: The Plan Generator.
        system_prompt: System prompt.
        user_prompt: User prompt.
        timeout_secs: Deadline for the call.
        cancel: Token checked while waiting.

    Returns:
        The raw response text.

    Raises:
        LLMTimeoutError: If the deadline passes first.
        ExecutionCancelled: If cancellation is requested while waiting.
        LLMError: If the generator fails.
    """
    results: "queue.Queue[tuple[bool, object]]" = queue.Queue(maxsize=1)

    def worker() -> None:
        try:
            results.put((True, generator.generate(system_prompt, user_prompt)))
        except Exception as e:
            results.put((False, e))

    # Daemon thread: an abandoned call never keeps the process alive
    thread = threading.Thread(target=worker, name="atomc-generator", daemon=True)
    thread.start()
    deadline = time.monotonic() + timeout_secs
    while True:
        if cancel is not None and cancel.cancelled:
            raise ExecutionCancelled("plan generation cancelled")
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise LLMTimeoutError(
                f"plan generator did not answer within {timeout_secs}s",
                details={"timeout_secs": timeout_secs},
            )
        try:
            ok, value = results.get(timeout=min(remaining, _POLL_INTERVAL_SECS))
        except queue.Empty:
            continue
        if ok:
            return value
        if isinstance(value, AtomcError):
            raise value
        raise LLMError(f"plan generator failed: {value}") from value


def generate_plan(
    generator: PlanGenerator,
    snapshot: DiffSnapshot,
    timeout_secs: float,
    scope_policy: ScopePolicy = ScopePolicy.WARN,
    git_status: Optional[str] = None,
    cancel: Optional[CancelToken] = None,
) -> ValidatedPlan:
    """Generate a plan for a snapshot and validate it.

    A rejected plan triggers exactly one correction request naming the
    violated rules. A second rejection is final.

    Args:
        generator: The Plan Generator.
        snapshot: The governing snapshot.
        timeout_secs: Deadline for each generator call.
        scope_policy: How to treat units without a scope.
        git_status: Short status output shown to the model.
        cancel: Token checked while waiting on the generator.

    Returns:
        The validated plan and its warnings.

    Raises:
        PlanValidationError: If the corrected plan is still invalid.
        LLMTimeoutError: If a generator call exceeds the deadline.
        LLMError: If the generator fails.
    """
    context = PromptContext(
        diff=snapshot.diff_text,
        repo_path=Path(snapshot.repo_root) if snapshot.repo_root else None,
        diff_mode=snapshot.mode,
        include_untracked=snapshot.include_untracked,
        git_status=git_status,
    )

    attempts = 0
    system_prompt = SYSTEM_PROMPT
    user_prompt = build_plan_prompt(context)

    while True:
        logger.debug("Requesting plan (attempt %d)", attempts + 1)
        raw = call_generator(generator, system_prompt, user_prompt, timeout_secs, cancel)
        try:
            validated = validate_plan(raw, snapshot, scope_policy)
        except PlanValidationError as e:
            if attempts >= MAX_CORRECTIONS:
                raise PlanValidationError(
                    f"plan still invalid after correction: {e.message}",
                    violations=e.violations,
                    details={"attempts": attempts + 1},
                ) from e
            attempts += 1
            logger.warning(
                "Plan rejected (%d violations), requesting correction", len(e.violations)
            )
            for violation in e.violations:
                logger.debug("violation: %s", violation)
            system_prompt = CORRECTION_SYSTEM_PROMPT
            user_prompt = build_correction_prompt(context, e.violations, raw)
            continue

        logger.info(
            "Plan accepted with %d commits after %d attempt(s)",
            len(validated.plan.plan),
            attempts + 1,
        )
        return validated
