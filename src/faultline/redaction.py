"""Scrub sensitive values from payloads before they leave the process."""

from __future__ import annotations

import re
from typing import Any, Iterable, Pattern, Union

FILTERED = "[FILTERED]"

ParamsFilter = Union[str, Pattern[str]]


def key_matches(key: Any, filters: Iterable[ParamsFilter]) -> bool:
    """
    Return True when `key` matches any filter.

    String filters match case-insensitively as substrings; compiled patterns
    match with ``search``.
    """
    text = str(key)
    lowered = text.lower()
    for flt in filters:
        if isinstance(flt, re.Pattern):
            if flt.search(text):
                return True
        elif str(flt).lower() in lowered:
            return True
    return False


def redact(value: Any, filters: Iterable[ParamsFilter]) -> Any:
    """
    Return a copy of `value` with matching mapping entries replaced by "[FILTERED]".

    Recurses into dicts, lists and tuples; other values are returned unchanged.

    Usage example
    -------------
        redact({"user": {"password": "hunter2"}}, {"password"})
        # -> {"user": {"password": "[FILTERED]"}}
    """
    filters = tuple(filters)
    if isinstance(value, dict):
        return {
            k: FILTERED if key_matches(k, filters) else redact(v, filters)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v, filters) for v in value]
    if isinstance(value, tuple):
        return tuple(redact(v, filters) for v in value)
    return value
