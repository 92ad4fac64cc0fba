"""JSON parsing utilities for LLM responses.

Contains functions for cleaning and parsing raw Plan Generator output:
- strip_thinking_tags: Remove reasoning blocks emitted by some models
- parse_json_response: Parse raw LLM response as a JSON object
"""

import json
import re

from atomc.llm.exceptions import LLMParseError

# Reasoning blocks emitted by models with a visible thinking phase
_THINKING_PATTERNS = [
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
]


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags and their contents from a response.

    Args:
        text: The raw LLM response text.

    Returns:
        The text with all thinking blocks removed and whitespace trimmed.
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


def parse_json_response(raw_response: str) -> dict:
    """Parse the LLM response as a JSON object.

    Args:
        raw_response: The raw text response from the LLM.

    Returns:
        The parsed JSON as a dictionary.

    Raises:
        LLMParseError: If parsing fails or the top-level value is not an object.
    """
    cleaned = strip_thinking_tags(raw_response)

    # Remove markdown code fences if the model included them despite instructions
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    # Keep the outermost {...} when prose surrounds the object
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")

    if first_brace != -1 and last_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LLMParseError(
            f"Failed to parse LLM response as JSON: {e}",
            details={"kind": "invalid_json", "error": str(e)},
        )

    if not isinstance(parsed, dict):
        raise LLMParseError(
            "LLM response is not a JSON object",
            details={"kind": "invalid_json", "type": type(parsed).__name__},
        )
    return parsed
