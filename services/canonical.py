"""Byte-exact batch encoding used as digest input.

A batch is written as a compact JSON array, most recent reading first. Each
element carries exactly ``id``, ``device_id``, ``co2_level`` and ``created_at``
in that order. Integral CO2 values are written as JSON integers and all other
values use the shortest round-trip float form. Timestamps are always UTC with
six fractional digits, so the same batch encodes to the same bytes on any host.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, List

from models.records import Reading, format_timestamp

# Integers above this lose precision as floats, keep them in float form.
_MAX_EXACT_INTEGER = 2**53


def canonical_order(readings: Iterable[Reading]) -> List[Reading]:
    """Most-recent-first, ties on ``created_at`` broken by descending ``id``."""
    return sorted(readings, key=lambda reading: (reading.created_at, reading.id), reverse=True)


def _encode_level(value: float) -> Any:
    if value.is_integer() and abs(value) < _MAX_EXACT_INTEGER:
        return int(value)
    return value


def canonical_records(readings: Iterable[Reading]) -> List[dict[str, Any]]:
    return [
        {
            "id": reading.id,
            "device_id": reading.device_id,
            "co2_level": _encode_level(float(reading.co2_level)),
            "created_at": format_timestamp(reading.created_at),
        }
        for reading in canonical_order(readings)
    ]


def serialize_batch(readings: Iterable[Reading]) -> bytes:
    document = json.dumps(
        canonical_records(readings),
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )
    return document.encode("utf-8")


def digest_bytes(payload: bytes) -> str:
    return "0x" + hashlib.sha256(payload).hexdigest()


def digest_batch(readings: Iterable[Reading]) -> str:
    return digest_bytes(serialize_batch(readings))
