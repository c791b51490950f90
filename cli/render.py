from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Reading")
    pairs = [
        ("id", payload.get("id")),
        ("device_id", payload.get("device_id")),
        ("co2_level", payload.get("co2_level")),
        ("created_at", payload.get("created_at")),
    ]
    if "air_quality" in payload:
        pairs.append(("air_quality", payload.get("air_quality")))
    echo_key_values(pairs)


def render_window(payload: Dict[str, Any]) -> None:
    echo_heading("Window")
    readings = payload.get("readings") or []
    if readings:
        for reading in readings:
            typer.echo(
                f"  {reading.get('created_at')}  {reading.get('device_id')}  "
                f"{reading.get('co2_level')} ppm"
            )
    else:
        typer.echo("No readings in window.")

    summary = payload.get("summary") or {}
    typer.echo()
    echo_heading("Summary")
    echo_key_values(
        [
            ("row_count", summary.get("row_count")),
            ("min_co2", summary.get("min_co2")),
            ("max_co2", summary.get("max_co2")),
            ("mean_co2", summary.get("mean_co2")),
            ("air_quality", summary.get("air_quality")),
        ]
    )
    per_device = summary.get("per_device_count") or {}
    if per_device:
        typer.echo("per_device_count:")
        for device_id, count in per_device.items():
            typer.echo(f"  - {device_id}: {count}")


def render_verification(payload: Dict[str, Any]) -> None:
    echo_heading("Verification Record")
    echo_key_values(
        [
            ("digest", payload.get("digest")),
            ("transaction_id", payload.get("transaction_id")),
            ("timestamp", payload.get("timestamp")),
            ("record_count", payload.get("record_count")),
        ]
    )
