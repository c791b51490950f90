"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    LatestReading,
    ReadingCreate,
    ReadingOut,
    Summary,
    VerificationResponse,
    WindowView,
)
from datastore.mock_readings import MockReadingTable, build_default_table
from services.errors import AnchorUnavailable, EmptyBatch, MalformedReading, SourceUnavailable
from services.summary import Summarizer
from services.verifier import BatchVerifier, build_default_verifier
from services.window import WindowManager, build_default_window

router = APIRouter()


def get_table() -> MockReadingTable:
    return build_default_table()


def get_window() -> WindowManager:
    return build_default_window()


def get_verifier() -> BatchVerifier:
    return build_default_verifier()


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingOut,
    summary="Record a new CO2 reading.",
)
async def create_reading(
    payload: ReadingCreate,
    table: MockReadingTable = Depends(get_table),
) -> ReadingOut:
    try:
        reading = table.put_item(payload.model_dump())
    except MalformedReading as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return ReadingOut.from_reading(reading)


@router.get(
    "/readings/window",
    response_model=WindowView,
    summary="Chronological window of the most recent readings.",
)
async def get_window_view(
    window: WindowManager = Depends(get_window),
) -> WindowView:
    readings = window.current_view()
    latest = window.latest()
    summary = Summarizer().summarize(readings, latest)
    return WindowView(
        readings=[ReadingOut.from_reading(reading) for reading in readings],
        latest=LatestReading.from_reading(latest) if latest is not None else None,
        summary=Summary.from_summary(summary),
    )


@router.get(
    "/readings/latest",
    response_model=LatestReading,
    summary="Most recently received reading.",
)
async def get_latest_reading(
    window: WindowManager = Depends(get_window),
) -> LatestReading:
    latest = window.latest()
    if latest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readings received yet.",
        )
    return LatestReading.from_reading(latest)


@router.post(
    "/verify",
    response_model=VerificationResponse,
    summary="Hash the latest readings and anchor the digest.",
)
async def verify_latest(
    count: Optional[int] = Query(
        None, ge=1, description="Number of most recent readings to include."
    ),
    table: MockReadingTable = Depends(get_table),
    verifier: BatchVerifier = Depends(get_verifier),
) -> VerificationResponse:
    try:
        record = await verifier.verify(table.latest, count)
    except EmptyBatch as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except SourceUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except AnchorUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except MalformedReading as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return VerificationResponse.from_record(record)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
