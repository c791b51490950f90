"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import Reading, VerificationRecord, classify_air_quality
from services.summary import WindowSummary


class AirQuality(str, Enum):
    """Air quality bands derived from the CO2 concentration."""

    excellent = "excellent"
    moderate = "moderate"
    poor = "poor"


class ReadingCreate(BaseModel):
    """Payload accepted when a device reports a new sample."""

    device_id: str = Field(..., min_length=1, description="Identifier of the reporting sensor.")
    co2_level: float = Field(..., ge=0, description="CO2 concentration in ppm.")
    id: Optional[str] = Field(default=None, description="Optional caller-assigned reading id.")
    created_at: Optional[datetime] = Field(
        default=None, description="Recording time; defaults to the commit time."
    )


class ReadingOut(BaseModel):
    """A committed reading."""

    id: str
    device_id: str
    co2_level: float
    created_at: datetime

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            id=reading.id,
            device_id=reading.device_id,
            co2_level=reading.co2_level,
            created_at=reading.created_at,
        )


class LatestReading(ReadingOut):
    """The most recent reading together with its air quality band."""

    air_quality: AirQuality

    @classmethod
    def from_reading(cls, reading: Reading) -> "LatestReading":
        return cls(
            id=reading.id,
            device_id=reading.device_id,
            co2_level=reading.co2_level,
            created_at=reading.created_at,
            air_quality=AirQuality(classify_air_quality(reading.co2_level)),
        )


class Summary(BaseModel):
    """Aggregate metrics over the readings in the window."""

    row_count: int = Field(..., ge=0)
    min_co2: Optional[float] = None
    max_co2: Optional[float] = None
    mean_co2: Optional[float] = None
    per_device_count: Dict[str, int] = Field(default_factory=dict)
    air_quality: Optional[AirQuality] = None

    @classmethod
    def from_summary(cls, summary: WindowSummary) -> "Summary":
        return cls(
            row_count=summary.row_count,
            min_co2=summary.min_co2,
            max_co2=summary.max_co2,
            mean_co2=summary.mean_co2,
            per_device_count=dict(summary.per_device_count),
            air_quality=summary.air_quality,
        )


class WindowView(BaseModel):
    """Chronological window of recent readings for display."""

    readings: List[ReadingOut] = Field(default_factory=list)
    latest: Optional[LatestReading] = None
    summary: Summary


class VerificationResponse(BaseModel):
    """Digest and anchoring receipt for the latest batch."""

    digest: str = Field(..., description="0x-prefixed SHA-256 of the canonical batch.")
    transaction_id: str = Field(..., description="Identifier returned by the anchor.")
    timestamp: datetime
    record_count: int = Field(..., ge=1)

    @classmethod
    def from_record(cls, record: VerificationRecord) -> "VerificationResponse":
        return cls(
            digest=record.digest,
            transaction_id=record.transaction_id,
            timestamp=record.timestamp,
            record_count=record.record_count,
        )
