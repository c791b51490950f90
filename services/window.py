"""Bounded, time-ordered window of the most recent readings."""

from __future__ import annotations

import logging
from collections import deque
from functools import lru_cache
from threading import Lock
from typing import Any, Deque, Iterable, Mapping, Optional, Set, Tuple, Union

from models.records import Reading, parse_reading
from settings import get_settings

logger = logging.getLogger(__name__)

ReadingLike = Union[Reading, Mapping[str, Any]]


def _coerce(event: ReadingLike) -> Reading:
    if isinstance(event, Reading):
        return event
    return parse_reading(event)


class WindowManager:
    """Keeps at most ``capacity`` readings in ascending ``created_at`` order.

    The buffer is seeded once from a store snapshot (most recent first) and then
    fed one reading at a time. Readings whose id is already buffered are ignored.
    A reading older than the current tail is placed at its sorted position after
    any equal timestamps, so the buffer stays ordered even if the feed reorders.
    Eviction always removes from the front.

    All mutations and reads take a single lock, so readers see the buffer either
    before or after an insert-and-evict step, never in between.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity < 1:
            raise ValueError("Window capacity must be at least 1.")
        self._capacity = capacity
        self._buffer: Deque[Reading] = deque()
        self._ids: Set[str] = set()
        self._latest: Optional[Reading] = None
        self._lock = Lock()
        self._duplicates_ignored = 0
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def initialize(self, snapshot: Iterable[ReadingLike]) -> Tuple[Reading, ...]:
        """Replace the buffer with ``snapshot``, given most recent first."""
        readings = [_coerce(item) for item in snapshot]
        readings.reverse()

        buffer: Deque[Reading] = deque()
        ids: Set[str] = set()
        for reading in readings:
            if reading.id in ids:
                continue
            ids.add(reading.id)
            buffer.append(reading)

        evicted = 0
        while len(buffer) > self._capacity:
            ids.discard(buffer.popleft().id)
            evicted += 1

        with self._lock:
            self._buffer = buffer
            self._ids = ids
            self._latest = buffer[-1] if buffer else None
            self._evicted += evicted
            view = tuple(self._buffer)

        logger.info(
            "Window initialized from snapshot of %d readings",
            len(readings),
            extra={"window_size": len(view)},
        )
        return view

    def apply_insert(self, event: ReadingLike) -> Tuple[Reading, ...]:
        """Insert one live reading and trim the window back to capacity.

        Raises :class:`~services.errors.MalformedReading` for unusable payloads
        without touching the buffer.
        """
        reading = _coerce(event)

        with self._lock:
            self._latest = reading
            if reading.id in self._ids:
                self._duplicates_ignored += 1
                logger.debug(
                    "Ignoring duplicate reading",
                    extra={"reading_id": reading.id, "device_id": reading.device_id},
                )
                return tuple(self._buffer)

            if not self._buffer or reading.created_at >= self._buffer[-1].created_at:
                self._buffer.append(reading)
            else:
                # Walk back from the tail; late readings are usually only a few slots behind.
                position = len(self._buffer)
                while position and self._buffer[position - 1].created_at > reading.created_at:
                    position -= 1
                self._buffer.insert(position, reading)
                logger.debug(
                    "Placed out-of-order reading at position %d",
                    position,
                    extra={"reading_id": reading.id, "device_id": reading.device_id},
                )
            self._ids.add(reading.id)

            while len(self._buffer) > self._capacity:
                self._ids.discard(self._buffer.popleft().id)
                self._evicted += 1

            return tuple(self._buffer)

    def current_view(self) -> Tuple[Reading, ...]:
        with self._lock:
            return tuple(self._buffer)

    def latest(self) -> Optional[Reading]:
        with self._lock:
            return self._latest

    def contains(self, reading_id: str) -> bool:
        with self._lock:
            return reading_id in self._ids

    def stats(self) -> dict:
        with self._lock:
            return {
                "size": len(self._buffer),
                "capacity": self._capacity,
                "duplicates_ignored": self._duplicates_ignored,
                "evicted": self._evicted,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


@lru_cache
def build_default_window(capacity: Optional[int] = None) -> WindowManager:
    settings = get_settings()
    return WindowManager(capacity=capacity or settings.window_size)
