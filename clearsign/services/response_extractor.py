"""
Response extraction - turns raw provider text into a validated object.

Providers are asked for raw JSON but frequently wrap it in code fences or
surround it with commentary. Extraction is forgiving about that noise and
strict about the shape of what is left.
"""

import json
import re
from typing import Any, Callable, Dict, Optional

from .errors import ExtractionError

# ``` or ```json / ```JSON etc., anywhere in the text
CODE_FENCE_PATTERN = re.compile(r"```[a-zA-Z0-9_-]*")

Validator = Callable[[Any], bool]


def strip_code_fences(raw: str) -> str:
    """Remove triple-backtick fence markers, keeping what they enclosed."""
    return CODE_FENCE_PATTERN.sub("", raw).strip()


def slice_json_object(text: str) -> Optional[str]:
    """
    Slice from the first '{' to the last '}' inclusive.

    Returns:
        The candidate JSON text, or None if no brace pair exists
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def extract_json(raw: Optional[str], validator: Optional[Validator] = None) -> Dict[str, Any]:
    """
    Extract the structured payload embedded in provider output.

    Args:
        raw: Raw provider text
        validator: Optional shape check run on the parsed object

    Returns:
        Parsed JSON object

    Raises:
        ExtractionError: If no brace pair exists, parsing fails, the payload
            is not an object, or validation rejects it

    Example:
        >>> extract_json('Here is the result:\\n```json\\n{"a":1}\\n```\\nThanks!')
        {'a': 1}
    """
    if not raw:
        raise ExtractionError("Provider output is empty")

    candidate = slice_json_object(strip_code_fences(raw))
    if candidate is None:
        raise ExtractionError("No JSON object found in provider output")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Invalid JSON in provider output: {e}") from e

    if not isinstance(parsed, dict):
        raise ExtractionError("Provider output is not a JSON object")

    if validator is not None and not validator(parsed):
        raise ExtractionError("Provider output does not match the expected schema")

    return parsed


def extract_text(raw: Optional[str]) -> str:
    """
    Extract a conversational reply.

    Raises:
        ExtractionError: If the reply is empty after trimming
    """
    text = (raw or "").strip()
    if not text:
        raise ExtractionError("Provider reply is empty")
    return text
