"""llama.cpp provider implementation.

llama.cpp's server exposes an OpenAI-compatible API, so the OpenAI client is
pointed at ``<url>/v1``.
"""

import logging

import openai
from openai import OpenAI

from atomc.llm.base import BaseLLMProvider, LLMResult
from atomc.llm.exceptions import LLMError, LLMParseError, LLMTimeoutError
from atomc.llm.parsing import strip_thinking_tags

logger = logging.getLogger(__name__)

# llama.cpp ignores the key but the client requires one
LOCAL_API_KEY = "sk-no-key-required"


class LlamaCppProvider(BaseLLMProvider):
    """llama.cpp LLM provider (OpenAI-compatible local server)."""

    def _client(self) -> OpenAI:
        return OpenAI(
            api_key=LOCAL_API_KEY,
            base_url=f"{self.base_url}/v1",
            timeout=self.timeout_secs,
            max_retries=0,
        )

    def generate_raw(self, system_prompt: str, user_prompt: str) -> LLMResult:
        """Generate a plan using a llama.cpp server.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The request, including the diff.

        Returns:
            An LLMResult containing the response text and token usage.

        Raises:
            LLMTimeoutError: If the request times out.
            LLMParseError: If the completion has no content.
            LLMError: For other API errors.
        """
        client = self._client()
        logger.debug("Sending chat completion to %s/v1 (model=%s)", self.base_url, self.model)

        try:
            response = client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=False,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(
                f"llama.cpp request timed out after {self.timeout_secs}s",
                details={"url": self.base_url, "timeout_secs": self.timeout_secs},
            ) from e
        except openai.OpenAIError as e:
            raise LLMError(
                f"llama.cpp API call failed: {e}", details={"url": self.base_url}
            ) from e

        choices = response.choices or []
        raw_response = choices[0].message.content if choices else None
        if not raw_response:
            raise LLMParseError(
                "llama.cpp response has no message content", details={"url": self.base_url}
            )

        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0

        return LLMResult(
            raw_response=strip_thinking_tags(raw_response),
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
