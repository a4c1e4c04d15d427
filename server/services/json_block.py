"""Helpers for pulling a JSON value out of model text.

All functions here return None for "nothing usable" instead of raising;
malformed JSON is the common case with LLM output, not an error.
"""

from typing import Any, Optional
import json
import logging
import re

logger = logging.getLogger("json_block")

_JSON_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```([\s\S]*?)```")


def strip_fences(text: str) -> str:
    """Return the interior of the first ```json fence, else of any fence, else the trimmed text."""
    text = text or ""
    m = _JSON_FENCE_RE.search(text)
    if m and m.group(1).strip():
        return m.group(1).strip()
    m = _ANY_FENCE_RE.search(text)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return text.strip()


def strict_decode(text: str) -> Optional[Any]:
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError) as e:
        logger.debug("strict decode failed: %s", e)
        return None


def brace_scan_decode(text: str) -> Optional[Any]:
    """Decode the slice between the first '{' and the last '}'.

    Recovers objects wrapped in prose. Only one slice is tried; a truncated
    or otherwise malformed object fails this stage.
    """
    text = text or ""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or start >= end:
        return None
    return strict_decode(text[start : end + 1])
