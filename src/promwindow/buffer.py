"""
Time-windowed buffer of raw observation records.

Records are kept in arrival order. When a maximum age is configured, stale
records are dropped lazily on every append, never on a timer.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

_UNSET: Any = object()

Record = Mapping[str, Any]
Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class BufferedRecord:
    """An observation record with its arrival timestamp."""

    created_at: float
    record: Record


class ObservationBuffer:
    """
    Ordered buffer of observation records with age-based eviction.

    Not synchronized; the owning collector serializes access.

    Example:
        buffer = ObservationBuffer(max_age=60)
        buffer.append({"queries": 1, "labels": {"db": "main"}})
        for record in buffer:
            ...
    """

    def __init__(self, max_age: float | None = None, clock: Clock = time.monotonic) -> None:
        """
        Initialize the buffer.

        Args:
            max_age: Seconds a record is retained, or None to keep everything
            clock: Monotonic clock, injectable for tests
        """
        self.max_age = max_age
        self._clock = clock
        self._entries: list[BufferedRecord] = []

    def append(self, record: Record, max_age: float | None = _UNSET) -> None:
        """
        Evict stale records (if a max age is set), then append a copy of the record.

        Args:
            record: Observation record; later changes to the caller's mapping
                do not affect the buffered copy
            max_age: Threshold for this call, overriding the buffer's own
        """
        if max_age is _UNSET:
            max_age = self.max_age
        now = self._clock()
        if max_age is not None:
            self._entries = [e for e in self._entries if now - e.created_at <= max_age]
        self._entries.append(BufferedRecord(created_at=now, record=dict(record)))

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[Record]:
        return (entry.record for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)
