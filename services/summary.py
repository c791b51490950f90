"""Summary statistics over the readings currently in the window."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from models.records import Reading, classify_air_quality


@dataclass
class WindowSummary:
    """Computed statistics for the readings in view."""

    row_count: int = 0
    min_co2: float | None = None
    max_co2: float | None = None
    mean_co2: float | None = None
    per_device_count: Dict[str, int] = field(default_factory=dict)
    air_quality: Optional[str] = None


class Summarizer:
    """Pure summary component that can be unit tested in isolation."""

    def summarize(
        self,
        readings: Iterable[Reading],
        latest: Optional[Reading] = None,
    ) -> WindowSummary:
        summary = WindowSummary()
        total = 0.0

        for reading in readings:
            summary.row_count += 1
            value = reading.co2_level
            total += value

            if summary.min_co2 is None or value < summary.min_co2:
                summary.min_co2 = value
            if summary.max_co2 is None or value > summary.max_co2:
                summary.max_co2 = value

            summary.per_device_count[reading.device_id] = (
                summary.per_device_count.get(reading.device_id, 0) + 1
            )

        if summary.row_count:
            summary.mean_co2 = total / summary.row_count

        if latest is not None:
            summary.air_quality = classify_air_quality(latest.co2_level)

        return summary
