from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from ..errors import ServiceResponseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def extract_json_object(text: str) -> str:
    """
    Pull the JSON object out of a model reply.

    Models wrap payloads in prose or code fences; everything outside the first
    ``{`` and the last ``}`` is discarded. The payload itself is left untouched.
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first : last + 1]
    return cleaned


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a model reply into a JSON object or raise ServiceResponseError."""
    cleaned = extract_json_object(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = _loads_without_trailing_commas(cleaned, text)
    if not isinstance(parsed, dict):
        raise ServiceResponseError("Model reply is not a JSON object.", text)
    return parsed


def _loads_without_trailing_commas(cleaned: str, text: str) -> Any:
    # Retry for replies that are invalid only because of trailing commas.
    try:
        return json.loads(_TRAILING_COMMA_RE.sub(r"\1", cleaned))
    except json.JSONDecodeError as exc:
        logger.warning("Failed parsing JSON reply (%s); raw=%r", exc, text[:500])
        raise ServiceResponseError("Model did not return valid JSON.", text) from exc
