"""Per-test result scratchpad.

A string-keyed map a test body uses to hand values to its own post-check
(e.g., "connection_status" = "open"/"closed"). Each test execution gets its
own scratchpad through a context variable, so consecutive tests never see
each other's values. A timeout-supervised body runs in a copy of the
caller's context and therefore writes into the same scratchpad.

Example:
    >>> with scratch_scope():
    ...     set_scratch("connection_status", "closed")
    ...     get_scratch("connection_status")
    'closed'
    >>> get_scratch("connection_status") is None
    True
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from floe_cts.errors import ScratchpadError


class ResultScratchpad:
    """Mutable map scoped to one test execution.

    Access is locked because an abandoned timeout worker may still write
    while the post-check reads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current values."""
        with self._lock:
            return dict(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


_current: ContextVar[ResultScratchpad | None] = ContextVar("floe_cts_scratchpad", default=None)


def current_scratchpad() -> ResultScratchpad | None:
    """The scratchpad of the test currently executing, if any."""
    return _current.get()


@contextmanager
def scratch_scope(pad: ResultScratchpad | None = None) -> Iterator[ResultScratchpad]:
    """Make a scratchpad current for the duration of the block.

    Args:
        pad: Scratchpad to activate. A fresh one is created if None.

    Yields:
        The active scratchpad.
    """
    active = pad if pad is not None else ResultScratchpad()
    token = _current.set(active)
    try:
        yield active
    finally:
        _current.reset(token)


def set_scratch(key: str, value: Any) -> None:
    """Store a value for the current test's post-check.

    Raises:
        ScratchpadError: If no test execution scope is active.
    """
    pad = _current.get()
    if pad is None:
        raise ScratchpadError(
            "No active scratchpad; set_scratch() must run inside a test execution",
            {"key": key},
        )
    pad.set(key, value)


def get_scratch(key: str, default: Any = None) -> Any:
    """Read a value stored by the current test; default outside any scope."""
    pad = _current.get()
    if pad is None:
        return default
    return pad.get(key, default)


__all__ = [
    "ResultScratchpad",
    "current_scratchpad",
    "get_scratch",
    "scratch_scope",
    "set_scratch",
]
