"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from services.errors import MalformedReading

REQUIRED_FIELDS = ("id", "device_id", "co2_level", "created_at")

EXCELLENT_LIMIT_PPM = 1000
MODERATE_LIMIT_PPM = 2000


@dataclass(frozen=True, slots=True)
class Reading:
    """A single CO2 sample as committed by the readings store."""

    id: str
    device_id: str
    co2_level: float
    created_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "co2_level": self.co2_level,
            "created_at": format_timestamp(self.created_at),
        }


@dataclass(frozen=True, slots=True)
class VerificationRecord:
    """Outcome of one verification request."""

    digest: str
    transaction_id: str
    timestamp: datetime
    record_count: int


def classify_air_quality(co2_level: float) -> str:
    if co2_level < EXCELLENT_LIMIT_PPM:
        return "excellent"
    if co2_level < MODERATE_LIMIT_PPM:
        return "moderate"
    return "poor"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as fixed-width UTC ISO-8601 with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    return normalize_timestamp(parsed)


def normalize_timestamp(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_reading(payload: Mapping[str, Any]) -> Reading:
    """Build a :class:`Reading` from a store row or subscription payload.

    Raises :class:`MalformedReading` when a required field is missing or blank,
    when ``co2_level`` is not a finite non-negative number, or when
    ``created_at`` cannot be read as a timestamp.
    """
    if not isinstance(payload, Mapping):
        raise MalformedReading(f"expected a mapping, got {type(payload).__name__}")

    raw_id = payload.get("id")
    reading_id = str(raw_id).strip() if raw_id is not None else ""

    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MalformedReading(f"missing {name}", reading_id or None)

    device_id = str(payload["device_id"]).strip()

    raw_level = payload["co2_level"]
    if isinstance(raw_level, bool):
        raise MalformedReading("invalid numeric value", reading_id)
    try:
        co2_level = float(raw_level)
    except (TypeError, ValueError) as exc:
        raise MalformedReading("invalid numeric value", reading_id) from exc
    if not math.isfinite(co2_level):
        raise MalformedReading("invalid numeric value", reading_id)
    if co2_level < 0:
        raise MalformedReading("negative co2_level", reading_id)

    raw_created = payload["created_at"]
    if isinstance(raw_created, datetime):
        created_at = normalize_timestamp(raw_created)
    elif isinstance(raw_created, str):
        try:
            created_at = parse_timestamp(raw_created)
        except ValueError as exc:
            raise MalformedReading("invalid timestamp", reading_id) from exc
    else:
        raise MalformedReading("invalid timestamp", reading_id)

    return Reading(
        id=reading_id,
        device_id=device_id,
        co2_level=co2_level,
        created_at=created_at,
    )
