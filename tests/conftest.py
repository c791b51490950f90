from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import Reading

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_reading(
    reading_id: str,
    seconds: float = 0,
    co2_level: float = 450.0,
    device_id: str = "A",
) -> Reading:
    return Reading(
        id=reading_id,
        device_id=device_id,
        co2_level=co2_level,
        created_at=BASE_TIME + timedelta(seconds=seconds),
    )


@pytest.fixture
def reading_factory():
    return make_reading
