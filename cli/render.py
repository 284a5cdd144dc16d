from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_MEASUREMENT_FIELDS = (
    "device_id",
    "co2_ppm",
    "received_at",
    "timestamp_ms",
    "co2_emission_kg_per_hr",
    "asset_type",
    "asset_name",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_measurement(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Measurement")
    echo_key_values((key, payload[key]) for key in _MEASUREMENT_FIELDS if key in payload)


def render_ingest(payload: Dict[str, Any]) -> None:
    saved = payload.get("saved") or {}
    render_measurement(saved)
    if payload.get("db_id") is not None:
        typer.echo(f"db_id: {payload['db_id']}")


def _format_coords(reading: Dict[str, Any]) -> str:
    lat, lng = reading.get("lat"), reading.get("lng")
    if lat is None or lng is None:
        return "unmapped"
    return f"{lat:.4f},{lng:.4f}"


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"Recent Readings ({len(readings)})")
    if not readings:
        typer.echo("No readings stored.")
        return
    for reading in readings:
        typer.echo(
            f"  - #{reading.get('id')} {reading.get('device_id')}: "
            f"{reading.get('co2_ppm')} ppm at {reading.get('received_at')} "
            f"[{_format_coords(reading)}]"
        )
