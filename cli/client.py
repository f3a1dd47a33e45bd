from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

import httpx
import typer

from cli.config import CLIConfig

ServerEvent = Tuple[str, Optional[Dict[str, Any]]]


def parse_event_stream(lines: Iterable[str]) -> Iterator[ServerEvent]:
    """Group ``text/event-stream`` lines into ``(event, payload)`` pairs.

    Comment-only blocks are reported as ``("keep-alive", None)``.
    """
    event_name: Optional[str] = None
    data_lines: list[str] = []
    saw_comment = False

    for line in lines:
        if line == "":
            if data_lines:
                yield event_name or "message", json.loads("\n".join(data_lines))
            elif saw_comment:
                yield "keep-alive", None
            event_name, data_lines, saw_comment = None, [], False
            continue
        if line.startswith(":"):
            saw_comment = True
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)


class ApiClient:
    """Minimal HTTP client for the air-quality feed service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_snapshot(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.get("/airquality", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def stream_events(self, params: Dict[str, Any]) -> Iterator[ServerEvent]:
        try:
            with self._client.stream(
                "GET",
                "/airquality/stream",
                params=params,
                timeout=httpx.Timeout(self._config.timeout, read=None),
            ) as response:
                if response.is_error:
                    response.read()
                response.raise_for_status()
                yield from parse_event_stream(response.iter_lines())
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
