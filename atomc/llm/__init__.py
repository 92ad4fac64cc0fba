"""LLM provider module for atomc.

This module provides the Plan Generator adapters for local runtimes.
The active runtime is selected from the resolved configuration.
"""

from atomc.config import ResolvedConfig, Runtime
from atomc.llm.base import BaseLLMProvider, LLMResult
from atomc.llm.exceptions import LLMError, LLMParseError, LLMTimeoutError
from atomc.llm.parsing import parse_json_response, strip_thinking_tags


def get_provider(config: ResolvedConfig) -> BaseLLMProvider:
    """Get an LLM provider instance for the configured runtime.

    Args:
        config: The resolved configuration.

    Returns:
        An instance of the appropriate LLM provider.

    Raises:
        LLMError: If the runtime is not supported.
    """
    options = dict(
        model=config.model,
        base_url=config.ollama_url,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout_secs=config.llm_timeout_secs,
    )

    if config.runtime == Runtime.OLLAMA:
        from atomc.llm.ollama_provider import OllamaProvider

        return OllamaProvider(**options)

    elif config.runtime == Runtime.LLAMA_CPP:
        from atomc.llm.llamacpp_provider import LlamaCppProvider

        return LlamaCppProvider(**options)

    else:
        raise LLMError(f"unsupported runtime: {config.runtime}")


# Export commonly used items
__all__ = [
    "BaseLLMProvider",
    "LLMResult",
    "LLMError",
    "LLMTimeoutError",
    "LLMParseError",
    "parse_json_response",
    "strip_thinking_tags",
    "get_provider",
]
