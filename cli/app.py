from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_ingest, render_measurement, render_readings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the CO2 telemetry ingest service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Ingest API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Identifier of the reporting device."),
    co2_ppm: float = typer.Argument(..., help="CO2 concentration in ppm."),
    emission: Optional[float] = typer.Option(
        None, "--emission", help="CO2 emission rate in kg/h (asset schema)."
    ),
    asset_type: Optional[str] = typer.Option(None, "--asset-type", help="Asset type (asset schema)."),
    asset_name: Optional[str] = typer.Option(None, "--asset-name", help="Asset name (asset schema)."),
    timestamp_ms: Optional[int] = typer.Option(
        None, "--timestamp-ms", help="Device clock in epoch milliseconds (timestamped schema)."
    ),
) -> None:
    """Push a single reading, the way a device would."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"device_id": device_id, "co2_ppm": co2_ppm}
    optional = {
        "co2_emission_kg_per_hr": emission,
        "asset_type": asset_type,
        "asset_name": asset_name,
        "timestamp_ms": timestamp_ms,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})

    typer.echo(f"Sending reading for {device_id} to {state.config.base_url} ...")
    response = state.client.send_reading(payload)
    typer.secho("Reading accepted.", fg=typer.colors.GREEN)
    render_ingest(response)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the last reading the service accepted."""
    state = _get_state(ctx)
    payload = state.client.get_latest()
    if payload is None:
        typer.secho("No data received yet.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    render_measurement(payload)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", min=1, help="Maximum number of readings to list."
    ),
) -> None:
    """List recent readings with device coordinates, newest first."""
    state = _get_state(ctx)
    render_readings(state.client.get_readings(limit))
