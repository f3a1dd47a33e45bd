from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_snapshot, render_stream_error


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading the air-quality feed service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _location_params(
    city: Optional[str],
    country: Optional[str],
    lat: Optional[float],
    lon: Optional[float],
) -> Dict[str, Any]:
    if (lat is None) != (lon is None):
        raise typer.BadParameter("--lat and --lon must be given together.")
    if bool(city) != bool(country):
        raise typer.BadParameter("--city and --country must be given together.")
    params: Dict[str, Any] = {}
    if lat is not None and lon is not None:
        params.update(lat=lat, lon=lon)
    if city and country:
        params.update(city=city, country=country)
    return params


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
        help="Seconds to wait for the service to answer.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    city: Optional[str] = typer.Option(None, "--city", help="City name."),
    country: Optional[str] = typer.Option(None, "--country", help="Country code."),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude."),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude."),
) -> None:
    """Fetch one normalized snapshot with sensor placement."""
    state = _get_state(ctx)
    params = _location_params(city, country, lat, lon)
    payload = state.client.get_snapshot(params)
    render_snapshot(payload)


@app.command("stream")
def stream_command(
    ctx: typer.Context,
    city: Optional[str] = typer.Option(None, "--city", help="City name."),
    country: Optional[str] = typer.Option(None, "--country", help="Country code."),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude."),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude."),
    max_events: Optional[int] = typer.Option(
        None,
        "--max-events",
        min=1,
        help="Stop after this many data or error events.",
    ),
    show_heartbeats: bool = typer.Option(
        False,
        "--show-heartbeats/--hide-heartbeats",
        help="Print a line for every keep-alive.",
    ),
) -> None:
    """Follow the live stream until interrupted."""
    state = _get_state(ctx)
    params = _location_params(city, country, lat, lon)
    typer.echo(f"Streaming from {state.config.base_url} ...")

    received = 0
    for event, payload in state.client.stream_events(params):
        if event == "keep-alive":
            if show_heartbeats:
                typer.secho("keep-alive", dim=True)
            continue
        if event == "error":
            render_stream_error(payload)
        else:
            typer.echo()
            render_snapshot(payload or {})
        received += 1
        if max_events is not None and received >= max_events:
            break
