"""Locate the assistant's text inside an agent response envelope.

Providers wrap the generated text in different shapes; each extractor below
handles one known shape and returns None when the envelope doesn't match it.
"""

from typing import Any, Callable, List, Optional


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _nested_response(envelope: Any) -> Optional[str]:
    return _clean(_get(_get(envelope, "response"), "response"))


def _nested_content(envelope: Any) -> Optional[str]:
    return _clean(_get(_get(envelope, "response"), "content"))


def _top_level_message(envelope: Any) -> Optional[str]:
    return _clean(_get(envelope, "message"))


def _chat_completion(envelope: Any) -> Optional[str]:
    choices = _get(envelope, "choices")
    if not isinstance(choices, list) or not choices:
        return None
    content = _get(_get(choices[0], "message"), "content")
    if isinstance(content, list):
        parts: List[str] = []
        for item in content:
            txt = _get(item, "text") or _get(item, "content")
            if isinstance(txt, str):
                parts.append(txt)
        return _clean("".join(parts))
    return _clean(content)


def _output_text(envelope: Any) -> Optional[str]:
    return _clean(_get(envelope, "output_text"))


_EXTRACTORS: List[Callable[[Any], Optional[str]]] = [
    _nested_response,
    _nested_content,
    _top_level_message,
    _chat_completion,
    _output_text,
]


def extract_assistant_text(envelope: Any) -> str:
    """Return the first non-blank assistant text found in `envelope`, or ""."""
    for extractor in _EXTRACTORS:
        text = extractor(envelope)
        if text:
            return text
    return ""
