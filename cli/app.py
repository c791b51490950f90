from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_verification, render_window


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the emission monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("verify")
def verify_command(
    ctx: typer.Context,
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Number of most recent readings to verify (server default when omitted).",
    ),
) -> None:
    """Hash the latest readings and anchor the digest."""
    state = _get_state(ctx)
    typer.echo(f"Requesting verification from {state.config.base_url} ...")
    payload = state.client.verify(count)
    typer.secho("Verification anchored.", fg=typer.colors.GREEN)
    render_verification(payload)


@app.command("window")
def window_command(ctx: typer.Context) -> None:
    """Show the current window of readings."""
    state = _get_state(ctx)
    render_window(state.client.get_window())


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    render_reading(state.client.get_latest())


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Identifier of the reporting sensor."),
    co2_level: float = typer.Argument(..., min=0, help="CO2 concentration in ppm."),
) -> None:
    """Record a single reading."""
    state = _get_state(ctx)
    payload = state.client.create_reading(device_id, co2_level)
    typer.secho(f"Reading stored. id={payload.get('id')}", fg=typer.colors.GREEN)
    render_reading(payload)
