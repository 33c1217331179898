# tod_ai/tools/json_parser.py
"""
JSON parser for model output.

Models are asked for bare JSON but often wrap it in markdown fences or add
a sentence before it. Try the strict parse first, then peel those off.
"""
import json
import re
from typing import Any, Optional, Type, Union

from tod_ai.config import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

_BRACKETS = {
    dict: ("{", "}"),
    list: ("[", "]"),
}


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def parse_json_response(
    response_str: Optional[str],
    expect: Type[Union[dict, list]] = dict,
) -> Optional[Union[dict, list]]:
    """Return the first JSON value of type `expect` found in the text, else None."""
    if not response_str:
        return None

    text = response_str.strip()

    result = _loads(text)
    if isinstance(result, expect):
        return result

    match = _FENCE_RE.search(text)
    if match:
        result = _loads(match.group(1).strip())
        if isinstance(result, expect):
            return result
        # Parse the fenced body alone from here on
        text = match.group(1).strip()

    opener, closer = _BRACKETS[expect]
    start = text.find(opener)
    end = text.rfind(closer)
    if start != -1 and end > start:
        result = _loads(text[start:end + 1])
        if isinstance(result, expect):
            return result

    logger.warning("⚠️ Could not parse JSON from model response")
    return None
