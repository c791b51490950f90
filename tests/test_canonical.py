"""Tests for the canonical batch encoding and digest."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from models.records import Reading
from services.canonical import canonical_order, digest_batch, serialize_batch

EXPECTED_SINGLE_DIGEST = "0xb1864709f8c3fc4569e3cbab538ceffb8a42f3146d49951bab13a17b2803c187"


def _single() -> Reading:
    return Reading(
        id="9",
        device_id="A",
        co2_level=450,
        created_at=datetime(2024, 1, 1, 12, 0, 5, tzinfo=timezone.utc),
    )


def test_single_reading_encodes_to_exact_bytes() -> None:
    assert serialize_batch([_single()]) == (
        b'[{"id":"9","device_id":"A","co2_level":450,'
        b'"created_at":"2024-01-01T12:00:05.000000Z"}]'
    )


def test_single_reading_digest_is_fixed() -> None:
    assert digest_batch([_single()]) == EXPECTED_SINGLE_DIGEST


def test_integral_float_and_int_levels_encode_identically() -> None:
    as_float = replace(_single(), co2_level=450.0)

    assert digest_batch([as_float]) == EXPECTED_SINGLE_DIGEST


def test_fractional_levels_use_shortest_repr() -> None:
    payload = serialize_batch([replace(_single(), co2_level=412.5)])

    assert b'"co2_level":412.5,' in payload


def test_timezone_of_input_does_not_change_digest() -> None:
    shifted = replace(
        _single(),
        created_at=datetime(2024, 1, 1, 13, 0, 5, tzinfo=timezone(timedelta(hours=1))),
    )

    assert digest_batch([shifted]) == EXPECTED_SINGLE_DIGEST


def test_non_ascii_device_ids_are_kept_as_utf8() -> None:
    payload = serialize_batch([replace(_single(), device_id="capteur-é")])

    assert "capteur-é".encode("utf-8") in payload


def test_canonical_order_is_most_recent_first_with_id_tiebreak(reading_factory) -> None:
    readings = [
        reading_factory("a", seconds=1),
        reading_factory("c", seconds=2),
        reading_factory("b", seconds=1),
    ]

    assert [reading.id for reading in canonical_order(readings)] == ["c", "b", "a"]


def test_tied_timestamps_digest_independent_of_fetch_order(reading_factory) -> None:
    first = reading_factory("a", seconds=1)
    second = reading_factory("b", seconds=1)

    assert digest_batch([first, second]) == digest_batch([second, first])
