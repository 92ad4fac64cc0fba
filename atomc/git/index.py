"""Git index and commit primitives.

All mutation of repository state performed by atomc goes through these
functions.

Contains:
- reset_paths: Remove index entries for paths (restore them to HEAD)
- stage_paths: Add paths to the index
- staged_files: List files with staged changes
- staged_diff: Diff of the index against HEAD
- commit_staged: Commit the index with a message
- head_commit: Current HEAD commit hash
- index_entries: Raw index entries for paths
- write_index_entries: Write raw index entries back
- removal_entry: Index entry line that removes a path
"""

from pathlib import Path
from typing import Optional

from atomc.git.diff import DIFF_ARGS
from atomc.git.exceptions import GitError
from atomc.git.runner import run_git


def reset_paths(repo_root: Path, paths: list[str]) -> None:
    """Unstage the given paths without touching the working tree."""
    if not paths:
        return
    run_git(repo_root, ["reset", "-q", "--"] + paths)


def stage_paths(repo_root: Path, paths: list[str]) -> None:
    """Stage the given paths, including deletions and untracked files."""
    if not paths:
        return
    run_git(repo_root, ["add", "-A", "--"] + paths)


def staged_files(repo_root: Path) -> list[str]:
    """Get list of staged file paths.

    Returns:
        Repo-relative paths with staged changes, sorted.
    """
    output = run_git(repo_root, DIFF_ARGS + ["--staged", "--name-only", "-z"])
    return sorted(entry for entry in output.split("\0") if entry)


def staged_diff(repo_root: Path, paths: Optional[list[str]] = None) -> str:
    """Get the staged diff, optionally limited to ``paths``."""
    args = DIFF_ARGS + ["--staged"]
    if paths:
        args += ["--"] + paths
    return run_git(repo_root, args)


def commit_staged(repo_root: Path, message: str) -> str:
    """Commit the index and return the new commit hash.

    Args:
        repo_root: Repository root path.
        message: Full commit message.

    Returns:
        The hash of the created commit.

    Raises:
        GitError: If the commit fails.
    """
    # Message goes over stdin so nothing is written into the working tree
    run_git(repo_root, ["commit", "-q", "--cleanup=verbatim", "-F", "-"], input_text=message)
    commit_hash = head_commit(repo_root)
    if not commit_hash:
        raise GitError("Commit succeeded but HEAD could not be resolved")
    return commit_hash


def head_commit(repo_root: Path) -> Optional[str]:
    """Get the current HEAD commit hash, or None on an unborn branch."""
    try:
        return run_git(repo_root, ["rev-parse", "--verify", "-q", "HEAD"]).strip() or None
    except GitError:
        return None


# Object id used by update-index to drop an entry
_NULL_OID = "0" * 40


def index_entries(repo_root: Path, paths: list[str]) -> dict[str, list[str]]:
    """Get the raw index entries of ``paths``.

    Args:
        repo_root: Repository root path.
        paths: Repo-relative paths.

    Returns:
        Mapping of path to its ``<mode> <object> <stage>\\t<path>`` lines.
        Paths without an index entry are absent.
    """
    if not paths:
        return {}
    output = run_git(repo_root, ["ls-files", "-s", "-z", "--"] + paths)
    entries: dict[str, list[str]] = {}
    for entry in output.split("\0"):
        if not entry:
            continue
        path = entry.split("\t", 1)[1]
        entries.setdefault(path, []).append(entry)
    return entries


def removal_entry(path: str) -> str:
    """Index entry line that removes ``path`` from the index."""
    return f"0 {_NULL_OID}\t{path}"


def write_index_entries(repo_root: Path, entries: list[str]) -> None:
    """Write raw index entries as produced by :func:`index_entries`."""
    if not entries:
        return
    run_git(
        repo_root,
        ["update-index", "-z", "--index-info"],
        input_text="\0".join(entries) + "\0",
    )
