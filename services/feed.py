"""Live feed that carries store inserts into the window."""

from __future__ import annotations

import logging
import queue
import threading
from functools import lru_cache
from typing import Any, Dict, Optional

from datastore.mock_readings import MockReadingTable, Subscription, build_default_table
from services.errors import MalformedReading, SourceUnavailable
from services.window import WindowManager, build_default_window

logger = logging.getLogger(__name__)

_STOP = object()


class LiveFeed:
    """Subscribes to a readings table and applies each insert to a window.

    The table callback only enqueues the row. A single consumer thread drains
    the queue, so inserts reach the window one at a time and in commit order.
    """

    def __init__(
        self,
        table: MockReadingTable,
        window: WindowManager,
        snapshot_size: Optional[int] = None,
    ) -> None:
        self.table = table
        self.window = window
        self.snapshot_size = snapshot_size or window.capacity
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._subscription: Optional[Subscription] = None
        self._worker: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()
        self._applied = 0
        self._rejected = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self, resync: bool = True) -> None:
        """Attach to the table and begin applying inserts.

        The subscription is opened before the snapshot is read, so rows that
        land in between are queued and later absorbed as duplicates.
        """
        with self._state_lock:
            if self._subscription is not None:
                return

            self._subscription = self.table.subscribe(self._enqueue)
            if resync:
                try:
                    snapshot = self.table.latest(self.snapshot_size)
                    self.window.initialize(snapshot)
                except SourceUnavailable:
                    self._subscription.unsubscribe()
                    self._subscription = None
                    raise

            self._worker = threading.Thread(
                target=self._consume,
                name=f"live-feed-{self.table.name}",
                daemon=True,
            )
            self._worker.start()
        logger.info("Live feed started", extra={"window_size": len(self.window)})

    def stop(self, timeout: float = 5.0) -> None:
        """Release the subscription and wait for queued inserts to drain."""
        with self._state_lock:
            subscription, worker = self._subscription, self._worker
            self._subscription = None
            self._worker = None

        if subscription is not None:
            subscription.unsubscribe()
        if worker is not None:
            self._queue.put(_STOP)
            worker.join(timeout=timeout)
            logger.info("Live feed stopped")

    def stats(self) -> dict:
        with self._state_lock:
            return {
                "running": self.running,
                "applied": self._applied,
                "rejected": self._rejected,
            }

    def _enqueue(self, row: Dict[str, Any]) -> None:
        self._queue.put(row)

    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._apply(item)
            finally:
                self._queue.task_done()

    def _apply(self, row: Dict[str, Any]) -> None:
        try:
            self.window.apply_insert(row)
        except MalformedReading as exc:
            with self._state_lock:
                self._rejected += 1
            logger.warning(
                "Rejected live reading",
                extra={"reason": exc.reason, "reading_id": exc.reading_id},
            )
            return
        with self._state_lock:
            self._applied += 1

    def wait_idle(self) -> None:
        """Block until every queued insert has been applied."""
        self._queue.join()


@lru_cache
def build_default_feed() -> LiveFeed:
    """Factory that wires the feed between the default table and window."""
    return LiveFeed(table=build_default_table(), window=build_default_window())
