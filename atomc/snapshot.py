"""Diff snapshot service.

A snapshot is the frozen diff a plan is generated against. Its hash is the
single source of truth used to detect drift before execution.

Contains:
- InputSource: Where the diff came from
- DiffSnapshot: Immutable diff text, settings and hash
- compute_diff_hash: sha256 of diff text
- capture_repo: Capture a snapshot from a repository
- capture_text: Capture a snapshot from explicit diff text
- recompute_diff: Recompute the current diff with a snapshot's settings
"""

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from atomc.config import DEFAULT_MAX_DIFF_BYTES, DiffMode
from atomc.errors import InputInvalidError
from atomc.git.diff import compute_diff, parse_diff_sections
from atomc.logging_utils import describe_diff

logger = logging.getLogger(__name__)


class InputSource(str, Enum):
    """Origin of the diff text."""

    REPO = "repo"
    DIFF = "diff"


def compute_diff_hash(diff_text: str) -> str:
    """Compute the snapshot hash of a diff.

    Args:
        diff_text: The exact diff text.

    Returns:
        ``sha256:<hex>``
    """
    return "sha256:" + hashlib.sha256(diff_text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DiffSnapshot:
    """Diff captured once per plan/apply call.

    For ``InputSource.DIFF`` the mode and untracked flag did not shape the
    diff text; they are kept for audit and are the settings a repository diff
    is recomputed with when the snapshot is verified against a checkout.
    """

    source: InputSource
    mode: DiffMode
    include_untracked: bool
    diff_text: str
    diff_hash: str
    repo_root: Optional[Path] = None
    sections: dict[str, str] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.sections:
            object.__setattr__(self, "sections", parse_diff_sections(self.diff_text))

    @property
    def files(self) -> list[str]:
        """Repo-relative paths touched by the snapshot, in diff order."""
        return list(self.sections.keys())

    def section_for(self, path: str) -> Optional[str]:
        """Return the snapshot's diff text for one file."""
        return self.sections.get(path)


def _check_diff(diff_text: str, max_diff_bytes: int) -> None:
    """Reject empty or oversized diffs before they are hashed or forwarded."""
    if not diff_text.strip():
        raise InputInvalidError("diff input is empty")
    size = len(diff_text.encode("utf-8"))
    if size > max_diff_bytes:
        raise InputInvalidError(
            "diff exceeds max_diff_bytes",
            details={"max_diff_bytes": max_diff_bytes, "diff_bytes": size},
        )


def capture_text(
    diff_text: str,
    mode: DiffMode = DiffMode.ALL,
    include_untracked: bool = False,
    max_diff_bytes: int = DEFAULT_MAX_DIFF_BYTES,
    repo_root: Optional[Path] = None,
    log_diff: bool = False,
) -> DiffSnapshot:
    """Capture a snapshot from explicitly supplied diff text.

    Args:
        diff_text: The diff supplied by the caller.
        mode: Diff mode recorded for audit and later verification.
        include_untracked: Untracked flag recorded for audit and verification.
        max_diff_bytes: Size ceiling in bytes.
        repo_root: Repository the diff belongs to, if any.
        log_diff: Whether raw diff text may be logged.

    Returns:
        The frozen snapshot.

    Raises:
        InputInvalidError: If the diff is empty or too large.
    """
    _check_diff(diff_text, max_diff_bytes)
    snapshot = DiffSnapshot(
        source=InputSource.DIFF,
        mode=mode,
        include_untracked=include_untracked,
        diff_text=diff_text,
        diff_hash=compute_diff_hash(diff_text),
        repo_root=repo_root,
    )
    logger.info("Captured explicit diff snapshot: %s", describe_diff(diff_text, log_diff))
    return snapshot


def capture_repo(
    repo_root: Path,
    mode: DiffMode,
    include_untracked: bool,
    max_diff_bytes: int = DEFAULT_MAX_DIFF_BYTES,
    log_diff: bool = False,
) -> DiffSnapshot:
    """Capture a snapshot by computing the diff of a repository.

    Args:
        repo_root: Repository root path.
        mode: Which changes to include.
        include_untracked: Whether untracked files become whole-file additions.
        max_diff_bytes: Size ceiling in bytes.
        log_diff: Whether raw diff text may be logged.

    Returns:
        The frozen snapshot.

    Raises:
        InputInvalidError: If the diff is empty or too large.
        GitError: If computing the diff fails.
    """
    diff_text = compute_diff(repo_root, mode, include_untracked)
    _check_diff(diff_text, max_diff_bytes)
    snapshot = DiffSnapshot(
        source=InputSource.REPO,
        mode=mode,
        include_untracked=include_untracked,
        diff_text=diff_text,
        diff_hash=compute_diff_hash(diff_text),
        repo_root=repo_root,
    )
    logger.info(
        "Captured %s diff snapshot (untracked=%s): %s",
        mode.value,
        include_untracked,
        describe_diff(diff_text, log_diff),
    )
    return snapshot


def recompute_diff(snapshot: DiffSnapshot, repo_root: Path) -> str:
    """Recompute the current repository diff using a snapshot's settings."""
    return compute_diff(repo_root, snapshot.mode, snapshot.include_untracked)
