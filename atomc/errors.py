"""Error taxonomy shared by every atomc layer.

Contains:
- ErrorCode: Stable machine-readable error codes used in envelopes
- AtomcError: Base exception carrying a code, exit code and details
- UsageError, InputInvalidError, ConfigError: Fail-fast input errors
- ExecutionCancelled: Raised when an apply run is interrupted
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes reported in the error envelope."""

    USAGE_ERROR = "usage_error"
    INPUT_INVALID = "input_invalid"
    CONFIG_ERROR = "config_error"
    LLM_RUNTIME_ERROR = "llm_runtime_error"
    LLM_PARSE_ERROR = "llm_parse_error"
    GIT_ERROR = "git_error"
    TIMEOUT = "timeout"


# Process exit codes per error code
EXIT_CODES = {
    ErrorCode.USAGE_ERROR: 2,
    ErrorCode.INPUT_INVALID: 3,
    ErrorCode.LLM_RUNTIME_ERROR: 4,
    ErrorCode.TIMEOUT: 4,
    ErrorCode.LLM_PARSE_ERROR: 5,
    ErrorCode.GIT_ERROR: 6,
    ErrorCode.CONFIG_ERROR: 7,
}

EXIT_INTERRUPTED = 130


class AtomcError(Exception):
    """Base exception for all atomc errors."""

    code: str = ErrorCode.USAGE_ERROR.value
    exit_code: int = 2

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self) -> dict[str, Any]:
        """Return the ``{code, message, details}`` body of an error envelope."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UsageError(AtomcError):
    """Malformed invocation, raised before any core logic runs."""

    code = ErrorCode.USAGE_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.USAGE_ERROR]


class InputInvalidError(AtomcError):
    """Empty, oversized or missing diff input."""

    code = ErrorCode.INPUT_INVALID.value
    exit_code = EXIT_CODES[ErrorCode.INPUT_INVALID]


class ConfigError(AtomcError):
    """Invalid configuration file, environment value or override."""

    code = ErrorCode.CONFIG_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.CONFIG_ERROR]


class ExecutionCancelled(AtomcError):
    """Cancellation was requested and honored at a unit boundary."""

    code = "interrupted"
    exit_code = EXIT_INTERRUPTED
