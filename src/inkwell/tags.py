"""Tag input normalization.

Learn: Tags arrive in two shapes. A JSON request carries a native
array; a multipart request (the one that carries an image) can only
carry strings, so the frontend sends the array JSON-encoded in a
single form field. normalize_tags() is the one place that turns either
shape into an ordered list of strings. It never raises: input it
can't make sense of becomes an empty tag list.
"""

import json
from typing import Any


def normalize_tags(raw: Any) -> list[str]:
    """Return tags as a list of strings, preserving order.

    >>> normalize_tags('["a", "b"]')
    ['a', 'b']
    >>> normalize_tags(["a", "b"])
    ['a', 'b']
    >>> normalize_tags("not json")
    []
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []

    if not isinstance(raw, (list, tuple)):
        return []
    if not all(isinstance(tag, str) for tag in raw):
        return []
    return list(raw)
