"""Tests for atomc.plan.executor module."""

import pytest

from conftest import (
    NOTES_SUMMARY,
    README_SUMMARY,
    commit_count,
    git,
    make_plan,
    make_unit,
)

from atomc.config import DiffMode
from atomc.git import (
    WorktreeDriftError,
    compute_diff,
    head_commit,
    parse_diff_sections,
    staged_diff,
    staged_files,
)
from atomc.plan import (
    ApplyStatus,
    CancelToken,
    CommitPlan,
    ExecutionMode,
    ExecutionState,
    Orchestrator,
)
from atomc.plan import executor as executor_module
from atomc.snapshot import capture_repo, capture_text


def run(repo, plan_dict, mode=ExecutionMode.EXECUTE, diff_mode=DiffMode.ALL,
        untracked=False, **kwargs):
    snapshot = capture_repo(repo, diff_mode, untracked)
    plan = CommitPlan.model_validate(plan_dict)
    orchestrator = Orchestrator(repo, snapshot, plan, mode=mode, **kwargs)
    return orchestrator, orchestrator.run()


def tamper_unit(mocker, path):
    """Make the staged diff of one unit differ from the snapshot."""
    real = executor_module.staged_diff

    def fake(repo_root, paths=None):
        text = real(repo_root, paths)
        if paths == [path]:
            return text + "\n+tampered"
        return text

    return mocker.patch("atomc.plan.executor.staged_diff", side_effect=fake)


class TestSingleUnit:
    """The README scenario."""

    def test_commits_readme(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nRun `python app.py`.\n")
        before = commit_count(temp_repo)

        orchestrator, report = run(temp_repo, make_plan())

        assert len(README_SUMMARY) == 52
        result = report.results[0]
        assert result.status == ApplyStatus.APPLIED
        assert result.commit_hash
        assert result.commit_hash == head_commit(temp_repo)
        assert commit_count(temp_repo) == before + 1
        assert git(temp_repo, "log", "-1", "--pretty=%s").strip() == (
            f"docs[readme]: {README_SUMMARY}"
        )
        assert git(temp_repo, "show", "--name-only", "--pretty=", "HEAD").split() == [
            "README.md"
        ]
        assert report.state == ExecutionState.COMPLETED
        assert orchestrator.state == ExecutionState.COMPLETED

    def test_global_scope_header(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")

        run(temp_repo, make_plan(make_unit(scope=None)))

        assert git(temp_repo, "log", "-1", "--pretty=%s").strip() == f"docs: {README_SUMMARY}"

    def test_assisted_by_trailer(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")

        run(temp_repo, make_plan(), assisted_by="qwen2.5-coder:14b")

        message = git(temp_repo, "log", "-1", "--pretty=%B")
        assert message.strip().endswith("Assisted by: qwen2.5-coder:14b")
        assert "Document the local setup steps." in message

    def test_no_trailer_by_default(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")

        run(temp_repo, make_plan())

        assert "Assisted by" not in git(temp_repo, "log", "-1", "--pretty=%B")

    def test_untracked_file(self, temp_repo):
        (temp_repo / "CHANGELOG.md").write_text("# Changelog\n")

        _, report = run(
            temp_repo,
            make_plan(make_unit(scope="changelog", files=["CHANGELOG.md"])),
            untracked=True,
        )

        assert report.results[0].status == ApplyStatus.APPLIED
        assert "CHANGELOG.md" in git(temp_repo, "ls-files")


class TestMultipleUnits:
    """Plans with several units."""

    def test_three_units_in_order(self, changed_repo, three_unit_plan):
        before = commit_count(changed_repo)

        _, report = run(changed_repo, three_unit_plan)

        assert [r.status for r in report.results] == [ApplyStatus.APPLIED] * 3
        assert commit_count(changed_repo) == before + 3
        subjects = git(changed_repo, "log", "-3", "--pretty=%s").splitlines()
        assert [s.split(":")[0] for s in subjects] == ["docs[notes]", "feat[app]", "docs[readme]"]
        assert git(changed_repo, "status", "--porcelain").strip() == ""

    def test_staged_mode_does_not_leak_later_units(self, changed_repo, three_unit_plan):
        git(changed_repo, "add", "README.md", "app.py", "NOTES.md")

        _, report = run(changed_repo, three_unit_plan, diff_mode=DiffMode.STAGED)

        assert [r.status for r in report.results] == [ApplyStatus.APPLIED] * 3
        first = report.results[0].commit_hash
        assert git(changed_repo, "show", "--name-only", "--pretty=", first).split() == [
            "README.md"
        ]

    def test_unrelated_changes_stay_in_worktree(self, changed_repo):
        _, report = run(changed_repo, make_plan())

        assert report.results[0].status == ApplyStatus.APPLIED
        assert sorted(git(changed_repo, "diff", "--name-only").split()) == [
            "NOTES.md", "app.py"
        ]


class TestFailures:
    """Drift, partial failure and conflicts."""

    def test_drift_aborts_before_any_commit(self, changed_repo, three_unit_plan):
        snapshot = capture_repo(changed_repo, DiffMode.ALL, False)
        (changed_repo / "app.py").write_text("edited after planning\n")
        before = commit_count(changed_repo)
        orchestrator = Orchestrator(
            changed_repo,
            snapshot,
            CommitPlan.model_validate(three_unit_plan),
            mode=ExecutionMode.EXECUTE,
        )

        with pytest.raises(WorktreeDriftError) as exc_info:
            orchestrator.run()

        assert exc_info.value.expected == snapshot.diff_hash
        assert exc_info.value.actual != snapshot.diff_hash
        assert commit_count(changed_repo) == before
        assert staged_files(changed_repo) == []
        assert orchestrator.state == ExecutionState.ABORTED
        assert orchestrator.results == []

    def test_partial_failure_containment(self, mocker, changed_repo, three_unit_plan):
        tamper_unit(mocker, "app.py")
        before = commit_count(changed_repo)

        _, report = run(changed_repo, three_unit_plan)

        statuses = [r.status for r in report.results]
        assert statuses == [ApplyStatus.APPLIED, ApplyStatus.FAILED, ApplyStatus.SKIPPED]
        assert report.results[0].commit_hash
        assert report.results[1].commit_hash is None
        assert report.results[1].error.code == "git_error"
        assert report.results[1].error.details["kind"] == "staged_diff_mismatch"
        assert report.results[1].error.details["files"] == ["app.py"]
        assert report.results[2].error is None
        assert commit_count(changed_repo) == before + 1
        assert report.state == ExecutionState.FAILED
        assert report.failed.id == "c2"
        # Without cleanup the failed attempt stays staged
        assert staged_files(changed_repo) == ["app.py"]

    def test_cleanup_on_error_unstages_failing_unit(self, mocker, changed_repo, three_unit_plan):
        tamper_unit(mocker, "app.py")

        _, report = run(changed_repo, three_unit_plan, cleanup_on_error=True)

        assert report.results[1].status == ApplyStatus.FAILED
        assert staged_files(changed_repo) == []
        assert "app.py" in git(changed_repo, "diff", "--name-only")

    def test_extra_staged_file_fails_unit(self, temp_repo):
        (temp_repo / "extra.txt").write_text("extra\n")
        git(temp_repo, "add", "extra.txt")
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")
        before = commit_count(temp_repo)

        _, report = run(
            temp_repo, make_plan(), diff_mode=DiffMode.WORKTREE, cleanup_on_error=True
        )

        error = report.results[0].error
        assert report.results[0].status == ApplyStatus.FAILED
        assert error.details["kind"] == "staged_files_mismatch"
        assert error.details["extra"] == ["extra.txt"]
        assert commit_count(temp_repo) == before
        # Cleanup touches only the unit's own files
        assert staged_files(temp_repo) == ["extra.txt"]

    def test_plan_conflict_before_git_commands(self, mocker, changed_repo):
        stage = mocker.spy(executor_module, "stage_paths")
        plan = make_plan(
            make_unit(),
            make_unit(
                id="c2",
                type="feat",
                scope="app",
                files=["app.py", "README.md"],
            ),
        )

        _, report = run(changed_repo, plan)

        assert [r.status for r in report.results] == [ApplyStatus.APPLIED, ApplyStatus.FAILED]
        assert report.results[1].error.code == "plan_conflict"
        assert report.results[1].error.details["claimed_by"] == "c1"
        assert stage.call_count == 1

    def test_git_failure_in_commit(self, mocker, temp_repo):
        from atomc.git import GitError

        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")
        mocker.patch(
            "atomc.plan.executor.commit_staged",
            side_effect=GitError("hook rejected commit", details={"exit_code": 1}),
        )

        _, report = run(temp_repo, make_plan())

        assert report.results[0].status == ApplyStatus.FAILED
        assert report.results[0].error.message == "hook rejected commit"

    def test_orchestrator_runs_once(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")
        orchestrator, _ = run(temp_repo, make_plan(), mode=ExecutionMode.SIMULATE)

        with pytest.raises(Exception, match="already run"):
            orchestrator.run()


class TestSimulate:
    """Dry-run mode."""

    def test_dry_run_is_idempotent(self, changed_repo, three_unit_plan):
        git(changed_repo, "add", "README.md")
        head = head_commit(changed_repo)
        status = git(changed_repo, "status", "--porcelain")
        staged = git(changed_repo, "diff", "--staged")

        for _ in range(2):
            _, report = run(changed_repo, three_unit_plan, mode=ExecutionMode.SIMULATE)
            assert [r.status for r in report.results] == [ApplyStatus.PLANNED] * 3
            assert all(r.commit_hash is None for r in report.results)

        assert head_commit(changed_repo) == head
        assert git(changed_repo, "status", "--porcelain") == status
        assert git(changed_repo, "diff", "--staged") == staged

    def test_simulate_reports_conflicts(self, changed_repo):
        plan = make_plan(make_unit(), make_unit(id="c2", files=["README.md"]))

        _, report = run(changed_repo, plan, mode=ExecutionMode.SIMULATE)

        assert [r.status for r in report.results] == [ApplyStatus.PLANNED, ApplyStatus.FAILED]

    def test_simulate_checks_drift(self, changed_repo, three_unit_plan):
        snapshot = capture_repo(changed_repo, DiffMode.ALL, False)
        (changed_repo / "README.md").write_text("drifted\n")

        with pytest.raises(WorktreeDriftError):
            Orchestrator(
                changed_repo, snapshot, CommitPlan.model_validate(three_unit_plan)
            ).run()


class TestExplicitDiff:
    """Snapshots taken from caller-supplied diff text."""

    def test_matching_explicit_diff_applies(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")
        diff = compute_diff(temp_repo, DiffMode.WORKTREE, False)
        snapshot = capture_text(diff, mode=DiffMode.WORKTREE, include_untracked=False)

        report = Orchestrator(
            temp_repo,
            snapshot,
            CommitPlan.model_validate(make_plan()),
            mode=ExecutionMode.EXECUTE,
        ).run()

        assert report.results[0].status == ApplyStatus.APPLIED

    def test_mismatching_explicit_diff_is_drift(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")
        diff = compute_diff(temp_repo, DiffMode.WORKTREE, False).replace("More.", "Less.")
        snapshot = capture_text(diff, mode=DiffMode.WORKTREE, include_untracked=False)

        with pytest.raises(WorktreeDriftError):
            Orchestrator(
                temp_repo,
                snapshot,
                CommitPlan.model_validate(make_plan()),
                mode=ExecutionMode.EXECUTE,
            ).run()


class TestCancellation:
    """Cancellation is honored between units only."""

    def test_cancel_after_first_commit(self, mocker, changed_repo, three_unit_plan):
        cancel = CancelToken()
        real = executor_module.commit_staged

        def commit_then_cancel(repo_root, message):
            commit_hash = real(repo_root, message)
            cancel.cancel()
            return commit_hash

        mocker.patch("atomc.plan.executor.commit_staged", side_effect=commit_then_cancel)
        before = commit_count(changed_repo)

        _, report = run(changed_repo, three_unit_plan, cancel=cancel)

        assert [r.status for r in report.results] == [
            ApplyStatus.APPLIED, ApplyStatus.SKIPPED, ApplyStatus.SKIPPED
        ]
        assert report.results[1].error.code == "interrupted"
        assert report.cancelled is True
        assert report.state == ExecutionState.ABORTED
        assert commit_count(changed_repo) == before + 1
        assert staged_files(changed_repo) == []


class TestMessagesAndPaths:
    """Commit messages and file names are passed to git unchanged."""

    def test_body_line_starting_with_hash_is_kept(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\n\nMore.\n")

        _, report = run(
            temp_repo, make_plan(make_unit(body=["#42 regression is documented here."]))
        )

        assert report.results[0].status == ApplyStatus.APPLIED
        message = git(temp_repo, "log", "-1", "--pretty=%B")
        assert "#42 regression is documented here." in message.splitlines()

    def test_bracketed_name_commits_only_itself(self, temp_repo):
        (temp_repo / "file[1].txt").write_text("bracketed\n")
        (temp_repo / "file1.txt").write_text("plain\n")
        plan = make_plan(
            make_unit(id="c1", scope="files", files=["file[1].txt"]),
            make_unit(id="c2", scope="files", summary=NOTES_SUMMARY, files=["file1.txt"]),
        )

        _, report = run(temp_repo, plan, untracked=True)

        assert [r.status for r in report.results] == [ApplyStatus.APPLIED] * 2
        first = report.results[0].commit_hash
        assert git(temp_repo, "show", "--name-only", "--pretty=", first).split() == [
            "file[1].txt"
        ]
        assert git(temp_repo, "status", "--porcelain").strip() == ""


class TestStagedMode:
    """Staged mode commits what was staged, never the working tree."""

    def test_unstaged_edit_stays_out_of_commit(self, temp_repo):
        (temp_repo / "README.md").write_text("# Demo\nstaged line\n")
        git(temp_repo, "add", "README.md")
        (temp_repo / "README.md").write_text("# Demo\nstaged line\nunstaged line\n")

        _, report = run(temp_repo, make_plan(), diff_mode=DiffMode.STAGED)

        assert report.results[0].status == ApplyStatus.APPLIED
        assert git(temp_repo, "show", "HEAD:README.md") == "# Demo\nstaged line\n"
        assert "+unstaged line" in git(temp_repo, "diff")
        assert staged_files(temp_repo) == []

    def test_failure_restores_staged_entries(self, mocker, changed_repo, three_unit_plan):
        git(changed_repo, "add", "README.md", "app.py", "NOTES.md")
        (changed_repo / "NOTES.md").write_text("# Notes\n\n- 0.2.0: greeting helper\nwip\n")
        tamper_unit(mocker, "app.py")

        orchestrator, report = run(changed_repo, three_unit_plan, diff_mode=DiffMode.STAGED)

        statuses = [r.status for r in report.results]
        assert statuses == [ApplyStatus.APPLIED, ApplyStatus.FAILED, ApplyStatus.SKIPPED]
        assert staged_files(changed_repo) == ["NOTES.md", "app.py"]
        for path in ("NOTES.md", "app.py"):
            restored = parse_diff_sections(staged_diff(changed_repo, [path]))
            assert restored[path] == orchestrator.snapshot.section_for(path)
        assert "+wip" in git(changed_repo, "diff", "NOTES.md")

    def test_failure_restore_ignores_cleanup_flag(self, mocker, changed_repo, three_unit_plan):
        git(changed_repo, "add", "README.md", "app.py", "NOTES.md")
        tamper_unit(mocker, "app.py")

        _, report = run(
            changed_repo, three_unit_plan, diff_mode=DiffMode.STAGED, cleanup_on_error=True
        )

        assert report.results[1].status == ApplyStatus.FAILED
        assert staged_files(changed_repo) == ["NOTES.md", "app.py"]

    def test_cancel_restores_staged_entries(self, mocker, changed_repo, three_unit_plan):
        git(changed_repo, "add", "README.md", "app.py", "NOTES.md")
        cancel = CancelToken()
        real = executor_module.commit_staged

        def commit_then_cancel(repo_root, message):
            commit_hash = real(repo_root, message)
            cancel.cancel()
            return commit_hash

        mocker.patch("atomc.plan.executor.commit_staged", side_effect=commit_then_cancel)

        _, report = run(changed_repo, three_unit_plan, diff_mode=DiffMode.STAGED, cancel=cancel)

        assert report.cancelled is True
        assert staged_files(changed_repo) == ["NOTES.md", "app.py"]
