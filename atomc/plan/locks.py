"""Per-repository apply locks and cancellation.

Contains:
- CancelToken: Cooperative cancellation flag shared with a running apply
- RepoLockRegistry: Mutual exclusion of apply runs per repository path
- DEFAULT_REGISTRY: Process-wide registry used by the library entry points
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from atomc.git.exceptions import RepoBusyError

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancellation flag checked at safe points only."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RepoLockRegistry:
    """Registry of one lock per repository path.

    Apply runs against the same checkout share the git index, so a second run
    fails fast instead of waiting or interleaving index mutations.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @staticmethod
    def _key(repo_root: Path) -> str:
        return str(Path(repo_root).resolve())

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def is_locked(self, repo_root: Path) -> bool:
        """Check whether an apply currently holds ``repo_root``."""
        return self._lock_for(self._key(repo_root)).locked()

    @contextmanager
    def hold(self, repo_root: Path) -> Iterator[None]:
        """Hold the repository lock for the duration of the block.

        Args:
            repo_root: Repository root path.

        Raises:
            RepoBusyError: If another apply already holds the repository.
        """
        key = self._key(repo_root)
        lock = self._lock_for(key)
        if not lock.acquire(blocking=False):
            raise RepoBusyError(
                f"another apply is already running for {key}",
                details={"kind": "repo_busy", "repo": key},
            )
        logger.debug("Acquired apply lock for %s", key)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released apply lock for %s", key)


DEFAULT_REGISTRY = RepoLockRegistry()
