"""Git command adapter for atomc.

This package provides the only path through which atomc reads or mutates a
repository:
- exceptions: GitError, WorktreeDriftError, StagedDiffMismatchError, RepoBusyError
- runner: run_git, get_repo_root
- diff: compute_diff, list_untracked_files, parse_diff_sections, diff_files,
        short_status
- index: reset_paths, stage_paths, staged_files, staged_diff, commit_staged,
         head_commit, index_entries, removal_entry, write_index_entries
"""

# Exceptions
from atomc.git.exceptions import (
    GitError,
    RepoBusyError,
    StagedDiffMismatchError,
    WorktreeDriftError,
)

# Runner utilities
from atomc.git.runner import (
    get_repo_root,
    run_git,
)

# Diff utilities
from atomc.git.diff import (
    DIFF_ARGS,
    compute_diff,
    diff_files,
    list_untracked_files,
    parse_diff_sections,
    short_status,
    untracked_file_diff,
)

# Index and commit primitives
from atomc.git.index import (
    commit_staged,
    head_commit,
    index_entries,
    removal_entry,
    reset_paths,
    stage_paths,
    staged_diff,
    staged_files,
    write_index_entries,
)


__all__ = [
    # Exceptions
    "GitError",
    "WorktreeDriftError",
    "StagedDiffMismatchError",
    "RepoBusyError",
    # Runner
    "run_git",
    "get_repo_root",
    # Diff
    "DIFF_ARGS",
    "compute_diff",
    "list_untracked_files",
    "untracked_file_diff",
    "parse_diff_sections",
    "diff_files",
    "short_status",
    # Index
    "reset_paths",
    "stage_paths",
    "staged_files",
    "staged_diff",
    "commit_staged",
    "head_commit",
    "index_entries",
    "removal_entry",
    "write_index_entries",
]
