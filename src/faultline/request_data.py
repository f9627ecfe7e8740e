"""Per-execution-context metadata attached to whatever report is generated there."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional


class RequestContextStore:
    """
    Key/value store scoped to one execution context (thread or asyncio task).

    Notes
    -----
    Backed by a ``ContextVar``. Every write installs a fresh dict, so a task that
    inherited a snapshot of its parent's mapping can never mutate the parent's
    copy (and vice versa). ``get()`` hands out a copy for the same reason.

    Usage example
    -------------
        store = RequestContextStore()
        with store.scope():
            store.set("user_id", 42)
            handle_request()
    """

    def __init__(self, name: str = "faultline_request_data") -> None:
        self._var: contextvars.ContextVar[Optional[Mapping[str, Any]]] = contextvars.ContextVar(
            name, default=None
        )

    def _current(self) -> Mapping[str, Any]:
        data = self._var.get()
        if data is None:
            data = {}
            self._var.set(data)
        return data

    def get(self) -> dict[str, Any]:
        """Return the current context's mapping, creating it on first access."""
        return dict(self._current())

    def set(self, key: str, value: Any) -> None:  # noqa: A003
        """Insert or replace `key` in the current context."""
        data = dict(self._current())
        data[key] = value
        self._var.set(data)

    def unset(self, key: str) -> None:
        """Remove `key` if present."""
        current = self._current()
        if key not in current:
            return
        data = dict(current)
        del data[key]
        self._var.set(data)

    def clear(self) -> None:
        """Discard the whole mapping for the current context."""
        self._var.set(None)

    @contextmanager
    def scope(self) -> Iterator["RequestContextStore"]:
        """Clear the store when the unit of work ends, even on failure."""
        try:
            yield self
        finally:
            self.clear()


# Process-wide store used by Configuration's request-data accessors.
request_store = RequestContextStore()
