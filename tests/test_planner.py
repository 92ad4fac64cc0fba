"""Tests for atomc.plan.planner and atomc.plan.prompt modules."""

import threading

import pytest

from conftest import FakeGenerator, make_plan, make_unit

from atomc.errors import ExecutionCancelled
from atomc.llm import LLMError, LLMTimeoutError
from atomc.plan import (
    CORRECTION_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    CancelToken,
    PlanValidationError,
    PromptContext,
    build_correction_prompt,
    build_plan_prompt,
    call_generator,
    generate_plan,
)
from atomc.snapshot import capture_text

DIFF = """diff --git a/README.md b/README.md
index 1111111..2222222 100644
--- a/README.md
+++ b/README.md
@@ -1 +1,2 @@
 # Demo
+Run the app.
"""


@pytest.fixture
def snapshot():
    return capture_text(DIFF)


class SlowGenerator:
    """Generator that blocks until released."""

    def __init__(self):
        self.release = threading.Event()

    def generate(self, system_prompt, user_prompt):
        self.release.wait(5)
        return "{}"


class TestPrompts:
    """Tests for prompt construction."""

    def test_system_prompt_rules(self):
        assert "type[scope]: summary" in SYSTEM_PROMPT
        assert "50-72" in SYSTEM_PROMPT

    def test_plan_prompt_includes_context_and_diff(self):
        from atomc.config import DiffMode

        prompt = build_plan_prompt(
            PromptContext(
                diff=DIFF,
                diff_mode=DiffMode.STAGED,
                include_untracked=False,
                git_status=" M README.md",
            )
        )

        assert "- diff_mode: staged" in prompt
        assert "- include_untracked: false" in prompt
        assert "- git_status: M README.md" in prompt
        assert '"schema_version": "v1"' in prompt
        assert prompt.endswith(DIFF)

    def test_correction_prompt_lists_violations(self):
        prompt = build_correction_prompt(
            PromptContext(diff=DIFF),
            ["commit c1 references file not in diff: ghost.py"],
            '{"plan": []}',
        )

        assert "  - commit c1 references file not in diff: ghost.py" in prompt
        assert '{"plan": []}' in prompt


class TestGeneratePlan:
    """Tests for generation with a single bounded retry."""

    def test_valid_first_response(self, snapshot):
        generator = FakeGenerator(make_plan())

        validated = generate_plan(generator, snapshot, timeout_secs=5)

        assert validated.plan.plan[0].files == ["README.md"]
        assert len(generator.calls) == 1
        assert generator.calls[0][0] == SYSTEM_PROMPT

    def test_one_correction_then_success(self, snapshot):
        bad = make_plan(make_unit(files=["ghost.py"]))
        generator = FakeGenerator(bad, make_plan())

        validated = generate_plan(generator, snapshot, timeout_secs=5)

        assert validated.plan.plan[0].files == ["README.md"]
        assert len(generator.calls) == 2
        system_prompt, user_prompt = generator.calls[1]
        assert system_prompt == CORRECTION_SYSTEM_PROMPT
        assert "references file not in diff: ghost.py" in user_prompt

    def test_malformed_json_is_retried(self, snapshot):
        generator = FakeGenerator("I cannot help with that", make_plan())

        generate_plan(generator, snapshot, timeout_secs=5)

        assert len(generator.calls) == 2

    def test_second_failure_is_final(self, snapshot):
        bad = make_plan(make_unit(files=["ghost.py"]))
        generator = FakeGenerator(bad, bad, make_plan())

        with pytest.raises(PlanValidationError) as exc_info:
            generate_plan(generator, snapshot, timeout_secs=5)

        assert len(generator.calls) == 2
        assert exc_info.value.details["attempts"] == 2
        assert exc_info.value.exit_code == 5

    def test_generator_error_is_not_retried(self, snapshot):
        generator = FakeGenerator(LLMError("connection refused"), make_plan())

        with pytest.raises(LLMError, match="connection refused"):
            generate_plan(generator, snapshot, timeout_secs=5)

        assert len(generator.calls) == 1

    def test_unexpected_exception_becomes_llm_error(self, snapshot):
        generator = FakeGenerator(RuntimeError("boom"))

        with pytest.raises(LLMError) as exc_info:
            generate_plan(generator, snapshot, timeout_secs=5)

        assert exc_info.value.code == "llm_runtime_error"


class TestCallGenerator:
    """Tests for the generator deadline and cancellation."""

    def test_timeout(self):
        generator = SlowGenerator()
        try:
            with pytest.raises(LLMTimeoutError) as exc_info:
                call_generator(generator, "s", "u", timeout_secs=0.2)
        finally:
            generator.release.set()

        assert exc_info.value.code == "timeout"
        assert exc_info.value.exit_code == 4

    def test_cancel_while_waiting(self):
        generator = SlowGenerator()
        cancel = CancelToken()
        timer = threading.Timer(0.1, cancel.cancel)
        timer.start()
        try:
            with pytest.raises(ExecutionCancelled):
                call_generator(generator, "s", "u", timeout_secs=5, cancel=cancel)
        finally:
            generator.release.set()
            timer.cancel()

    def test_returns_response(self):
        assert call_generator(FakeGenerator("text"), "s", "u", timeout_secs=5) == "text"

    def test_abandoned_call_runs_on_daemon_thread(self):
        generator = SlowGenerator()
        try:
            with pytest.raises(LLMTimeoutError):
                call_generator(generator, "s", "u", timeout_secs=0.1)
            workers = [t for t in threading.enumerate() if t.name == "atomc-generator"]
            assert workers
            assert all(t.daemon for t in workers)
        finally:
            generator.release.set()

    def test_generator_exception_is_wrapped(self):
        class BrokenGenerator:
            def generate(self, system_prompt, user_prompt):
                raise ValueError("boom")

        with pytest.raises(LLMError) as exc_info:
            call_generator(BrokenGenerator(), "s", "u", timeout_secs=5)

        assert "boom" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ValueError)
