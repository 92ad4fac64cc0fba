"""Git-related exception classes.

Contains all exception classes for Git operations:
- GitError: Base exception for git-related errors
- WorktreeDriftError: The repository changed between planning and execution
- StagedDiffMismatchError: The staged diff does not match the planned unit
- RepoBusyError: Another apply already holds the repository
"""

from atomc.errors import EXIT_CODES, AtomcError, ErrorCode


class GitError(AtomcError):
    """Custom exception for git-related errors."""

    code = ErrorCode.GIT_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.GIT_ERROR]


class WorktreeDriftError(GitError):
    """Raised when the recomputed diff hash differs from the snapshot hash."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"diff hash mismatch: expected {expected}, actual {actual}",
            details={"kind": "worktree_drift", "expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class StagedDiffMismatchError(GitError):
    """Raised when staged changes differ from what the unit should commit."""

    pass


class RepoBusyError(GitError):
    """Raised when a second apply targets a repository that is already locked."""

    pass
