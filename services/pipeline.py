"""Fetch, project and normalize the latest readings for one location."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models.records import LocationQuery, NormalizedSnapshot, ResolvedLocation, SensorLocation
from services.errors import NoDataAvailable, UpstreamFailure
from services.normalization import NormalizationEngine
from services.resolver import LocationResolver
from settings import get_settings
from upstream.openaq import OpenAQClient, build_default_client

logger = logging.getLogger(__name__)


class AcquisitionPipeline:
    """Coordinates location resolution, upstream fetches and normalization.

    An instance owns its resolution cache and its smoothing history, so
    fetches on one instance must not overlap.
    """

    def __init__(
        self,
        client: OpenAQClient,
        resolver: LocationResolver,
        engine: NormalizationEngine,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.engine = engine

    async def fetch_snapshot(self) -> NormalizedSnapshot:
        location = await self.resolver.resolve()
        results = await self.client.get_latest(location.location_id)
        if not results:
            raise NoDataAvailable("No latest data found for location.")

        raw = self._project_readings(location, results)
        logger.debug(
            "Projected latest readings",
            extra={"location_id": location.location_id, "sensor_count": len(raw)},
        )
        return self.engine.normalize(raw)

    async def fetch_sensor_locations(self) -> List[SensorLocation]:
        location = await self.resolver.resolve()
        results = await self.client.get_location(location.location_id)
        if not results:
            return []

        detail = results[0]
        if not isinstance(detail, dict):
            raise UpstreamFailure(
                f"Unexpected location entry returned from /locations/{location.location_id}."
            )
        sensors = detail.get("sensors")
        if not isinstance(sensors, list):
            return []

        fallback = detail.get("coordinates") or location.coordinates
        sensor_locations: List[SensorLocation] = []
        for sensor in sensors:
            if not isinstance(sensor, dict):
                continue
            parameter = sensor.get("parameter")
            name = parameter.get("name") if isinstance(parameter, dict) else None
            sensor_locations.append(
                SensorLocation(
                    id=sensor.get("id"),
                    parameter=name.lower() if isinstance(name, str) and name else "unknown",
                    coordinates=sensor.get("coordinates") or fallback or None,
                )
            )
        return sensor_locations

    async def fetch_snapshot_with_sensors(self) -> Dict[str, Any]:
        snapshot = await self.fetch_snapshot()
        sensors = await self.fetch_sensor_locations()
        payload = snapshot.as_payload()
        payload["sensors"] = [sensor.as_payload() for sensor in sensors]
        return payload

    @staticmethod
    def _project_readings(
        location: ResolvedLocation, results: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        raw: Dict[str, Any] = {}
        for measurement in results:
            if not isinstance(measurement, dict):
                continue
            parameter = location.sensor_map.get(str(measurement.get("sensorsId")))
            if parameter:
                raw[parameter] = measurement.get("value")
        return raw


def build_pipeline(
    query: LocationQuery,
    client: Optional[OpenAQClient] = None,
    smoothing_factor: Optional[float] = None,
) -> AcquisitionPipeline:
    """Factory that wires a fresh pipeline, with its own caches, for ``query``."""
    settings = get_settings()
    upstream = client or build_default_client()
    factor = settings.smoothing_factor if smoothing_factor is None else smoothing_factor
    return AcquisitionPipeline(
        client=upstream,
        resolver=LocationResolver(upstream, query),
        engine=NormalizationEngine(smoothing_factor=factor),
    )
