"""LLM-related exception classes.

Contains all exception classes for Plan Generator operations:
- LLMError: Transport or availability failure of the local runtime
- LLMTimeoutError: The runtime did not answer within the deadline
- LLMParseError: The response is not a usable plan document
"""

from atomc.errors import EXIT_CODES, AtomcError, ErrorCode


class LLMError(AtomcError):
    """Base exception for LLM-related errors."""

    code = ErrorCode.LLM_RUNTIME_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.LLM_RUNTIME_ERROR]


class LLMTimeoutError(LLMError):
    """Raised when the Plan Generator exceeds its deadline."""

    code = ErrorCode.TIMEOUT.value
    exit_code = EXIT_CODES[ErrorCode.TIMEOUT]


class LLMParseError(LLMError):
    """Raised when the LLM response cannot be parsed as valid JSON."""

    code = ErrorCode.LLM_PARSE_ERROR.value
    exit_code = EXIT_CODES[ErrorCode.LLM_PARSE_ERROR]
