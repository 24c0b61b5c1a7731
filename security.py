"""Sanitisation of free text that users type into the trip form."""
import re

MAX_STORED_TEXT = 10000

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_PATTERNS = [
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
]


def sanitize_text(text) -> str:
    """Strip HTML tags and script-injection patterns, capped for storage."""
    if not text or not isinstance(text, str):
        return ""
    cleaned = _TAG_RE.sub("", text)
    for pattern in _SCRIPT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned[:MAX_STORED_TEXT].strip()


def validate_text_input(text, max_length: int = 200) -> str:
    return sanitize_text(text)[:max_length]


def validate_string_array(items, max_items: int = 20) -> list[str]:
    """Sanitise a list of tags, dropping blanks and repeats (first one wins)."""
    if not isinstance(items, (list, tuple)):
        return []
    result: list[str] = []
    for item in items[:max_items]:
        cleaned = validate_text_input(str(item), 100)
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result
