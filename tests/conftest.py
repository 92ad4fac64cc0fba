"""Shared test fixtures and configuration."""

import json
import subprocess
import tempfile
from pathlib import Path

import pytest

from atomc.config import ENV_VARS, CONFIG_PATH_ENV_VAR, ResolvedConfig

# Summaries inside the 50-72 character window
README_SUMMARY = "Explain how to run the project locally in the readme"
APP_SUMMARY = "Add a greeting helper that formats the user name nicely"
NOTES_SUMMARY = "Record release notes for the upcoming minor version bump"


def git(repo: Path, *args: str) -> str:
    """Run git in a test repository and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


def commit_count(repo: Path) -> int:
    return int(git(repo, "rev-list", "--count", "HEAD").strip())


def make_unit(
    id: str = "c1",
    type: str = "docs",
    scope="readme",
    summary: str = README_SUMMARY,
    body=None,
    files=None,
    **extra,
) -> dict:
    """Build a valid commit unit dictionary."""
    unit = {
        "id": id,
        "type": type,
        "scope": scope,
        "summary": summary,
        "body": body if body is not None else ["Document the local setup steps."],
        "files": files if files is not None else ["README.md"],
        "hunks": [],
    }
    unit.update(extra)
    return unit


def make_plan(*units: dict, **extra) -> dict:
    plan = {"schema_version": "v1", "plan": list(units) or [make_unit()], "warnings": []}
    plan.update(extra)
    return plan


class FakeGenerator:
    """Plan Generator returning canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, str]] = []

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep user config files and LOCAL_COMMIT_* variables out of tests."""
    for key in list(ENV_VARS.values()) + [CONFIG_PATH_ENV_VAR]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("atomc.config._CONFIG_DIR", tmp_path / ".atomc-home")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    """Default configuration with untracked files excluded."""
    return ResolvedConfig(include_untracked=False)


@pytest.fixture
def temp_repo(tmp_path):
    """Create a temporary git repository with one commit."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    git(repo_dir, "init", "-q")
    git(repo_dir, "config", "user.email", "test@example.com")
    git(repo_dir, "config", "user.name", "Test User")
    git(repo_dir, "config", "commit.gpgsign", "false")

    (repo_dir / "README.md").write_text("# Demo\n")
    (repo_dir / "app.py").write_text("def main():\n    return 0\n")
    (repo_dir / "NOTES.md").write_text("# Notes\n")
    git(repo_dir, "add", "README.md", "app.py", "NOTES.md")
    git(repo_dir, "commit", "-q", "-m", "Initial commit")

    return repo_dir


@pytest.fixture
def changed_repo(temp_repo):
    """Repository with unstaged edits to README.md, app.py and NOTES.md."""
    (temp_repo / "README.md").write_text("# Demo\n\nRun `python app.py`.\n")
    (temp_repo / "app.py").write_text(
        "def greet(name):\n    return f'Hello, {name}'\n\n\ndef main():\n    return 0\n"
    )
    (temp_repo / "NOTES.md").write_text("# Notes\n\n- 0.2.0: greeting helper\n")
    return temp_repo


@pytest.fixture
def three_unit_plan():
    """Plan committing README.md, app.py and NOTES.md separately."""
    return make_plan(
        make_unit(),
        make_unit(
            id="c2",
            type="feat",
            scope="app",
            summary=APP_SUMMARY,
            body=["Introduce greet() for the command entry point."],
            files=["app.py"],
        ),
        make_unit(
            id="c3",
            type="docs",
            scope="notes",
            summary=NOTES_SUMMARY,
            body=["Note the greeting helper in the changelog."],
            files=["NOTES.md"],
        ),
    )
