"""Ollama provider implementation.

Talks to a local Ollama server through its ``/api/generate`` endpoint.
"""

import logging
from typing import Any

import requests

from atomc.llm.base import BaseLLMProvider, LLMResult
from atomc.llm.exceptions import LLMError, LLMParseError, LLMTimeoutError
from atomc.llm.parsing import strip_thinking_tags

logger = logging.getLogger(__name__)


class OllamaProvider(BaseLLMProvider):
    """Ollama LLM provider (local runtime)."""

    def _endpoint(self) -> str:
        return f"{self.base_url}/api/generate"

    def generate_raw(self, system_prompt: str, user_prompt: str) -> LLMResult:
        """Generate a plan using Ollama.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The request, including the diff.

        Returns:
            An LLMResult containing the response text and token usage.

        Raises:
            LLMTimeoutError: If the request times out.
            LLMParseError: If the response has no ``response`` field.
            LLMError: For connection errors, error statuses or error payloads.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": user_prompt,
            "system": system_prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        url = self._endpoint()
        logger.debug("Sending generate request to %s (model=%s)", url, self.model)

        try:
            response = requests.post(url, json=payload, timeout=self.timeout_secs)
        except requests.Timeout as e:
            raise LLMTimeoutError(
                f"Ollama request timed out after {self.timeout_secs}s",
                details={"url": url, "timeout_secs": self.timeout_secs},
            ) from e
        except requests.RequestException as e:
            raise LLMError(f"Ollama request failed: {e}", details={"url": url}) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            message = data.get("error") if isinstance(data, dict) else None
            raise LLMError(
                f"Ollama returned status {response.status_code}: {message or response.text}",
                details={"url": url, "status": response.status_code},
            )

        if not isinstance(data, dict):
            raise LLMParseError(
                "Ollama returned a non-JSON response", details={"url": url}
            )

        if data.get("error"):
            raise LLMError(f"Ollama error: {data['error']}", details={"url": url})

        raw_response = data.get("response")
        if not isinstance(raw_response, str):
            raise LLMParseError(
                "Ollama response is missing the 'response' field", details={"url": url}
            )

        return LLMResult(
            raw_response=strip_thinking_tags(raw_response),
            model=self.model,
            input_tokens=data.get("prompt_eval_count") or 0,
            output_tokens=data.get("eval_count") or 0,
        )
