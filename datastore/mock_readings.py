from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional
from uuid import uuid4

from models.records import Reading, parse_reading
from services.errors import MalformedReading, SourceUnavailable
from settings import get_settings

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class Subscription:
    """Handle returned by :meth:`MockReadingTable.subscribe`."""

    def __init__(self, table: "MockReadingTable", listener: Listener) -> None:
        self._table = table
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._table._remove_subscription(self)
            self.active = False


class MockReadingTable:
    """In-process readings table with query and insert-notification support.

    Listeners receive the committed row as a JSON-style dict, in commit order,
    while the table lock is held. They should hand the row off and return.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, Reading] = {}
        self._subscriptions: List[Subscription] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: Reading | Mapping[str, Any]) -> Reading:
        """Commit a reading, assigning ``id`` and ``created_at`` when absent."""
        if isinstance(item, Reading):
            reading = item
        else:
            payload = dict(item)
            if not payload.get("id"):
                payload["id"] = str(uuid4())
            if payload.get("created_at") is None:
                payload["created_at"] = datetime.now(timezone.utc)
            reading = parse_reading(payload)

        with self._lock:
            items = {**self._items, reading.id: reading}
            self._persist(items)
            self._items = items
            row = reading.to_payload()
            for subscription in list(self._subscriptions):
                subscription.listener(dict(row))
        return reading

    def get_item(self, key: str) -> Optional[Reading]:
        with self._lock:
            return self._items.get(key)

    def scan(self) -> list[Reading]:
        with self._lock:
            return list(self._items.values())

    def latest(self, limit: int) -> list[Reading]:
        """Return up to ``limit`` readings, newest ``created_at`` first."""
        if limit < 1:
            return []
        with self._lock:
            items = list(self._items.values())
        items.sort(key=lambda reading: (reading.created_at, reading.id), reverse=True)
        return items[:limit]

    def subscribe(self, listener: Listener) -> Subscription:
        subscription = Subscription(self, listener)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Subscriber attached to table %s", self.name)
        return subscription

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug("Subscriber detached from table %s", self.name)

    def _persist(self, items: Dict[str, Reading]) -> None:
        if not self.persistence_path:
            return
        payload = {reading_id: item.to_payload() for reading_id, item in items.items()}
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise SourceUnavailable(f"Failed to persist table {self.name!r}: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise SourceUnavailable(
                f"Failed to load table {self.name!r} from {self.persistence_path}: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise SourceUnavailable(
                f"Table file {self.persistence_path} does not hold a JSON object."
            )

        for reading_id, payload in data.items():
            try:
                self._items[reading_id] = parse_reading(payload)
            except MalformedReading as exc:
                raise SourceUnavailable(
                    f"Failed to load table {self.name!r} from {self.persistence_path}: {exc}"
                ) from exc


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockReadingTable:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return MockReadingTable(name=table_name, persistence_path=persistence)
