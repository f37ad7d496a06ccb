import json
import logging
from typing import Any

ENVELOPE_KEYS = ("content", "html", "markup", "data")


def _join_fragments(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        return "\n".join(value)
    return None


def looks_like_json(body: str) -> bool:
    stripped = body.lstrip()
    return stripped.startswith("{") or stripped.startswith("[")


def unwrap_envelope(body: str) -> str:
    """Return the markup carried by a JSON envelope, or the body itself.

    Args:
        body: Raw response body; either markup or a JSON object/array wrapping markup.
    Returns:
        The first of content/html/markup/data holding a string or a list of strings
        (joined by newlines), a top-level list of strings joined the same way, or the
        raw body when no envelope is recognized.
    """
    if not body or not looks_like_json(body):
        return body or ""
    try:
        payload = json.loads(body)
    except ValueError:
        logging.debug("Body looked like JSON but did not decode; parsing as markup")
        return body

    if isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            markup = _join_fragments(payload.get(key))
            if markup is not None:
                return markup
        return body

    markup = _join_fragments(payload)
    return markup if markup is not None else body
