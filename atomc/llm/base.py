"""Base classes shared by Plan Generator providers."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class LLMResult:
    """Result from an LLM generation call, including token usage."""

    raw_response: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class BaseLLMProvider(ABC):
    """Abstract base class for local LLM runtimes.

    Providers only move text. They never interpret the plan; all trust in the
    response is established by the plan validator.
    """

    def __init__(
        self,
        model: str,
        base_url: str,
        temperature: float,
        max_tokens: int,
        timeout_secs: float,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_secs = timeout_secs

    @abstractmethod
    def generate_raw(self, system_prompt: str, user_prompt: str) -> LLMResult:
        """Send one prompt to the runtime.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The request, including the diff.

        Returns:
            An LLMResult holding the raw response text.

        Raises:
            LLMTimeoutError: If the runtime does not answer in time.
            LLMParseError: If the transport response has no text.
            LLMError: For other transport or runtime errors.
        """
        pass

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Generate raw plan text; the Plan Generator interface."""
        result = self.generate_raw(system_prompt, user_prompt)
        logger.info(
            "%s answered (input_tokens=%d output_tokens=%d chars=%d)",
            result.model,
            result.input_tokens,
            result.output_tokens,
            len(result.raw_response),
        )
        return result.raw_response
