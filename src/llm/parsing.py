"""Parse structured JSON out of free-form model output."""

import json
import re
from typing import Any

from common.logger import get_logger

from .base import ParseError

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL | re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ``` or ``` ... ```).

    Example:
        >>> strip_code_fences('```json\\n{"books": []}\\n```')
        '{"books": []}'
    """
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in model response: {e}") from e


def parse_json_response(text: str) -> dict[str, Any]:
    """Parse a model response into a dictionary.

    Malformed output degrades to ``{"books": [], "rawResponse": text}`` instead
    of raising, so one bad response never aborts the pipeline.

    Args:
        text: Raw model output

    Returns:
        Parsed JSON object, or the fallback payload
    """
    try:
        data = _loads(strip_code_fences(text))
    except ParseError as e:
        logger.warning(f"Could not parse model response as JSON: {e}")
        return {"books": [], "rawResponse": text, "parseError": str(e)}

    if not isinstance(data, dict):
        logger.warning(f"Model response is JSON but not an object ({type(data).__name__})")
        return {"books": [], "rawResponse": text, "parseError": "Expected a JSON object"}

    return data
