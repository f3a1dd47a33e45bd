from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

PARAMETER_ORDER = (
    "pm25",
    "pm10",
    "no2",
    "o3",
    "so2",
    "co",
    "temperature",
    "humidity",
    "wind",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_norm(value: Any) -> str:
    if isinstance(value, (int, float)):
        return f"{value:.3f}"
    return str(value)


def render_snapshot(payload: Dict[str, Any]) -> None:
    echo_heading("Air Quality")
    for key in PARAMETER_ORDER:
        if key not in payload:
            continue
        typer.echo(f"{key}: {payload[key]} (norm {_format_norm(payload.get(f'{key}_norm'))})")
    echo_key_values([("co_waveform", payload.get("co_waveform"))])

    sensors = payload.get("sensors")
    if sensors is None:
        return
    typer.echo()
    echo_heading("Sensors")
    if not sensors:
        typer.echo("No sensors reported.")
        return
    for sensor in sensors:
        coordinates = sensor.get("coordinates") or {}
        where = (
            f"{coordinates.get('latitude')},{coordinates.get('longitude')}"
            if coordinates
            else "unknown position"
        )
        typer.echo(f"  - {sensor.get('id')}: {sensor.get('parameter')} @ {where}")


def render_stream_error(payload: Dict[str, Any] | None) -> None:
    message = (payload or {}).get("error") or "unknown error"
    typer.secho(f"Stream error: {message}", fg=typer.colors.RED, err=True)
