"""Git diff utilities.

Contains:
- compute_diff: Compute the diff for a repository in a given diff mode
- list_untracked_files: List untracked, non-ignored files
- parse_diff_sections: Split a unified diff into per-file sections (C-quoted
  paths are decoded)
- diff_files: List the file paths a unified diff touches
- short_status: Short status output for prompt context
"""

from pathlib import Path
from typing import Optional

from atomc.config import DiffMode
from atomc.git.exceptions import GitError
from atomc.git.runner import run_git

# Flags shared by every diff so snapshot and staged output are comparable
DIFF_ARGS = ["diff", "--no-color", "--no-ext-diff", "--no-renames"]

_DIFF_HEADER = "diff --git "


def _has_head(repo_root: Path) -> bool:
    try:
        run_git(repo_root, ["rev-parse", "--verify", "-q", "HEAD"])
        return True
    except GitError:
        return False


def _push_if_non_empty(parts: list[str], diff: str) -> None:
    if diff.strip():
        parts.append(diff)


def list_untracked_files(repo_root: Path) -> list[str]:
    """List untracked files that are not ignored.

    Args:
        repo_root: Repository root path.

    Returns:
        Repo-relative paths, sorted.
    """
    output = run_git(repo_root, ["ls-files", "--others", "--exclude-standard", "-z"])
    return sorted(entry for entry in output.split("\0") if entry)


def untracked_file_diff(repo_root: Path, path: str) -> str:
    """Render an untracked file as a whole-file addition.

    Args:
        repo_root: Repository root path.
        path: Repo-relative path of the untracked file.

    Returns:
        The synthetic unified diff for the file.
    """
    # --no-index exits 1 when the files differ, which is always the case here
    return run_git(
        repo_root, DIFF_ARGS + ["--no-index", "--", "/dev/null", path], allow_exit_1=True
    )


def compute_diff(repo_root: Path, mode: DiffMode, include_untracked: bool) -> str:
    """Compute the diff of a repository.

    Worktree covers unstaged changes, Staged covers the index against HEAD and
    All covers HEAD against the working tree, so a file changed in both places
    appears once. Untracked files are appended as whole-file additions when
    ``include_untracked`` is set.

    Args:
        repo_root: Repository root path.
        mode: Which changes to include.
        include_untracked: Whether to include untracked files.

    Returns:
        The diff text (empty string when there are no changes).

    Raises:
        GitError: If a git command fails.
    """
    parts: list[str] = []

    if mode == DiffMode.WORKTREE:
        _push_if_non_empty(parts, run_git(repo_root, DIFF_ARGS))
    elif mode == DiffMode.STAGED:
        _push_if_non_empty(parts, run_git(repo_root, DIFF_ARGS + ["--staged"]))
    elif _has_head(repo_root):
        _push_if_non_empty(parts, run_git(repo_root, DIFF_ARGS + ["HEAD"]))
    else:
        # Unborn branch: nothing to diff against, fall back to index + worktree
        _push_if_non_empty(parts, run_git(repo_root, DIFF_ARGS + ["--staged"]))
        _push_if_non_empty(parts, run_git(repo_root, DIFF_ARGS))

    if include_untracked:
        for path in list_untracked_files(repo_root):
            _push_if_non_empty(parts, untracked_file_diff(repo_root, path))

    return "\n".join(parts)


# Escapes git uses in C-quoted paths
_C_ESCAPES = {
    "a": 7,
    "b": 8,
    "t": 9,
    "n": 10,
    "v": 11,
    "f": 12,
    "r": 13,
    '"': 34,
    "\\": 92,
}


def _unquote_path(token: str) -> str:
    """Decode a path git printed as a C-quoted string."""
    body = token[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt in "01234567":
                # Octal escapes carry the raw bytes of non-printable characters
                out.append(int(body[i + 1:i + 4], 8))
                i += 4
                continue
            out.append(_C_ESCAPES.get(nxt, ord(nxt)))
            i += 2
            continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", errors="replace")


def _section_path(header_line: str) -> Optional[str]:
    """Extract the repo-relative path from a ``diff --git a/x b/x`` line."""
    rest = header_line[len(_DIFF_HEADER):]
    if rest.endswith('"'):
        # Quoted b-side; a quote inside the path is always escaped
        start = rest.rfind(' "b/')
        candidate = _unquote_path(rest[start + 1:]) if start != -1 else ""
    else:
        tokens = rest.split(" b/")
        if len(tokens) >= 2:
            candidate = "b/" + tokens[-1]
        else:
            candidate = rest.split()[-1] if rest.split() else ""

    for prefix in ("b/", "a/"):
        if candidate.startswith(prefix):
            candidate = candidate[len(prefix):]
            break
    if not candidate or candidate == "/dev/null":
        return None
    return candidate


def parse_diff_sections(diff_text: str) -> dict[str, str]:
    """Split a unified diff into per-file sections.

    A file that appears more than once has its sections joined in order.
    Trailing blank lines of each section are dropped so sections taken from
    differently joined diffs compare equal.

    Args:
        diff_text: Unified diff text.

    Returns:
        Ordered mapping of repo-relative path to its diff text.
    """
    sections: dict[str, list[str]] = {}
    current_path: Optional[str] = None
    current_lines: list[str] = []

    def flush() -> None:
        if current_path is not None:
            text = "\n".join(current_lines).rstrip("\n")
            sections.setdefault(current_path, []).append(text)

    for line in diff_text.split("\n"):
        if line.startswith(_DIFF_HEADER):
            flush()
            current_path = _section_path(line)
            current_lines = [line]
        elif current_path is not None:
            current_lines.append(line)
    flush()

    return {path: "\n".join(texts) for path, texts in sections.items()}


def diff_files(diff_text: str) -> list[str]:
    """List the file paths touched by a unified diff, in order of appearance.

    Args:
        diff_text: Unified diff text.

    Returns:
        De-duplicated list of repo-relative paths.
    """
    return list(parse_diff_sections(diff_text).keys())


def short_status(repo_root: Path) -> str:
    """Get ``git status --short`` output for prompt context."""
    return run_git(repo_root, ["status", "--short", "--untracked-files=all"])
