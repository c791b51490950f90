"""Failure kinds surfaced by the window and verification services."""

from __future__ import annotations

from typing import Optional


class EmissionMonitorError(Exception):
    """Base class for domain failures."""


class SourceUnavailable(EmissionMonitorError):
    """The readings store could not be reached or failed mid-request."""


class EmptyBatch(EmissionMonitorError):
    """A verification was requested but there are no readings to verify."""

    def __init__(self, message: str = "No data available to verify.") -> None:
        super().__init__(message)


class AnchorUnavailable(EmissionMonitorError):
    """The anchoring service failed, rejected the digest, or timed out."""


class MalformedReading(EmissionMonitorError):
    """A reading payload is missing a field or carries an unusable value."""

    def __init__(self, reason: str, reading_id: Optional[str] = None) -> None:
        self.reason = reason
        self.reading_id = reading_id
        if reading_id:
            message = f"Malformed reading {reading_id!r}: {reason}"
        else:
            message = f"Malformed reading: {reason}"
        super().__init__(message)
