"""Async HTTP client for the OpenAQ v3 locations API."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

import httpx

from services.errors import UpstreamFailure
from settings import get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class OpenAQClient:
    """Thin wrapper returning the ``results`` array of each endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers[API_KEY_HEADER] = api_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_locations(self, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return await self._get_results("/locations", params=params)

    async def get_location(self, location_id: Any) -> List[Dict[str, Any]]:
        return await self._get_results(f"/locations/{location_id}")

    async def get_latest(self, location_id: Any) -> List[Dict[str, Any]]:
        return await self._get_results(f"/locations/{location_id}/latest")

    async def _get_results(
        self, path: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._client.get(path, params=dict(params or {}))
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("Upstream request timed out", extra={"path": path})
            raise UpstreamFailure(f"Request to {path} timed out.") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.error(
                "Upstream returned an error status",
                extra={"path": path, "status_code": status_code},
            )
            raise UpstreamFailure(
                f"Request to {path} failed with status {status_code}.",
                status_code=status_code,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Upstream network error", extra={"path": path, "reason": str(exc)})
            raise UpstreamFailure(f"Request to {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Upstream returned malformed JSON", extra={"path": path})
            raise UpstreamFailure(f"Malformed JSON returned from {path}.") from exc

        results = payload.get("results") if isinstance(payload, dict) else None
        if results is None:
            return []
        if not isinstance(results, list):
            raise UpstreamFailure(f"Unexpected 'results' payload returned from {path}.")
        return results


@lru_cache
def build_default_client() -> OpenAQClient:
    """Factory that wires the client from process settings."""
    settings = get_settings()
    return OpenAQClient(
        base_url=settings.api_base_url,
        api_key=settings.api_key,
        timeout=settings.request_timeout,
    )
