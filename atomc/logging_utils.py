"""Logging helpers for atomc.

Contains:
- configure_logging: Configure the root logger for CLI runs
- describe_diff: Render a diff for log output without leaking its content
"""

import hashlib
import logging
import sys

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "info", quiet: bool = False) -> None:
    """Configure the root logger to write to stderr.

    Args:
        level: One of trace, debug, info, warn, error.
        quiet: Only report errors, whatever the level.
    """
    numeric = logging.ERROR if quiet else LOG_LEVELS.get(level.lower(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def describe_diff(diff_text: str, log_diff: bool = False) -> str:
    """Describe a diff for a log line.

    Raw diff text is only returned when ``log_diff`` is explicitly enabled.

    Args:
        diff_text: The diff to describe.
        log_diff: Whether raw diff logging was opted in.

    Returns:
        The diff itself, or a size/file-count/hash summary.
    """
    if log_diff:
        return diff_text
    files = sum(1 for line in diff_text.splitlines() if line.startswith("diff --git "))
    digest = hashlib.sha256(diff_text.encode("utf-8")).hexdigest()[:12]
    return f"bytes={len(diff_text.encode('utf-8'))} files={files} hash={digest}"
