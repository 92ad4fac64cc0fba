"""Git command runner and repository utilities.

Contains:
- run_git: Run a git command in a repository and return its raw output
- get_repo_root: Get the root directory of the git repository at a path
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from atomc.git.exceptions import GitError

logger = logging.getLogger(__name__)

# Options applied to every invocation so output is stable across user configs.
# Paths are always matched literally, never as globs.
_GIT_BASE = [
    "git",
    "--literal-pathspecs",
    "-c",
    "core.quotepath=false",
    "-c",
    "color.ui=never",
]


def run_git(
    repo_root: Path,
    args: list[str],
    allow_exit_1: bool = False,
    input_text: Optional[str] = None,
) -> str:
    """Run a git command and return its stdout unmodified.

    Args:
        repo_root: Directory to run git in.
        args: List of arguments to pass to git.
        allow_exit_1: Treat exit status 1 as success (``git diff --no-index``
            exits 1 when differences are found).
        input_text: Text to feed on stdin.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails or git is not available.
    """
    cmd = " ".join(["git"] + args)
    logger.debug("Running %s in %s", cmd, repo_root)
    try:
        result = subprocess.run(
            _GIT_BASE + args,
            cwd=repo_root,
            input=input_text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            # Own session: a terminal Ctrl-C reaches atomc, not git mid-command
            start_new_session=True,
        )
    except FileNotFoundError:
        if not Path(repo_root).is_dir():
            raise GitError(
                f"Repository path does not exist: {repo_root}",
                details={"cmd": cmd, "path": str(repo_root)},
            )
        raise GitError("Git is not installed or not in PATH.", details={"cmd": cmd})
    except UnicodeDecodeError:
        raise GitError("git output was not utf-8", details={"cmd": cmd})

    if result.returncode == 0 or (allow_exit_1 and result.returncode == 1):
        return result.stdout

    raise GitError(
        f"Git command failed: {cmd}",
        details={
            "cmd": cmd,
            "exit_code": result.returncode,
            "stderr": result.stderr.strip(),
        },
    )


def get_repo_root(path: Path) -> Path:
    """Get the root directory of the git repository containing ``path``.

    Args:
        path: Any directory inside the repository.

    Returns:
        Path to the repository root.

    Raises:
        GitError: If ``path`` is not inside a git repository.
    """
    try:
        root = run_git(path, ["rev-parse", "--show-toplevel"]).strip()
    except GitError as e:
        raise GitError(
            f"Not a git repository: {path}",
            details={"path": str(path), **(e.details or {})},
        )
    return Path(root)
