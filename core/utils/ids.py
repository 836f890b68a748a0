"""
Centralized ID generation.

Activity and holding identifiers are millisecond timestamps, bumped when two
IDs are requested within the same millisecond so that issue order is always
preserved.
"""

from __future__ import annotations

import time
from typing import Callable, Optional


class MonotonicIdGenerator:
    """Issues strictly increasing, timestamp-derived numeric string IDs."""

    def __init__(self, clock: Optional[Callable[[], float]] = None, floor: int = 0):
        self._clock = clock or time.time
        self._last = floor

    def next_id(self) -> str:
        now_ms = int(self._clock() * 1000)
        self._last = max(now_ms, self._last + 1)
        return str(self._last)

    def observe(self, issued_id: str) -> None:
        """Never issue an ID at or below one that already exists."""
        try:
            value = int(issued_id)
        except ValueError:
            return
        self._last = max(self._last, value)

