"""Resolution of a location query to a provider location and its sensors."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from models.records import LocationQuery, ResolvedLocation
from services.errors import InvalidQuery, LocationNotFound, UpstreamFailure
from upstream.openaq import OpenAQClient

logger = logging.getLogger(__name__)

SEARCH_RADIUS_METERS = 25_000


class LocationResolver:
    """Looks a query up once and serves the cached answer afterwards."""

    def __init__(self, client: OpenAQClient, query: LocationQuery) -> None:
        self.client = client
        self.query = query
        self.resolution_count = 0
        self._resolved: Optional[ResolvedLocation] = None

    @property
    def resolved(self) -> Optional[ResolvedLocation]:
        return self._resolved

    async def resolve(self) -> ResolvedLocation:
        if self._resolved is not None:
            return self._resolved

        params = self._search_params(self.query)
        self.resolution_count += 1
        results = await self.client.search_locations(params)
        if not results:
            raise LocationNotFound("No location found for specified parameters.")

        location = results[0]
        if not isinstance(location, dict):
            raise UpstreamFailure("Unexpected location entry returned from /locations.")
        sensor_map = self._build_sensor_map(location.get("sensors"))
        self._resolved = ResolvedLocation(
            location_id=location.get("id"),
            sensor_map=sensor_map,
            coordinates=location.get("coordinates"),
        )
        logger.info(
            "Resolved location",
            extra={"location_id": self._resolved.location_id, "sensor_count": len(sensor_map)},
        )
        return self._resolved

    @staticmethod
    def validate(query: LocationQuery) -> None:
        """Raise ``InvalidQuery`` unless the query names a city or a coordinate pair."""
        if not (query.has_city or query.has_coordinates):
            raise InvalidQuery(
                "Location must provide either city and country or latitude and longitude."
            )

    @classmethod
    def _search_params(cls, query: LocationQuery) -> Dict[str, Any]:
        cls.validate(query)
        params: Dict[str, Any] = {"limit": 1, "radius": SEARCH_RADIUS_METERS}
        if query.has_city:
            params["city"] = query.city
            params["country"] = query.country
        else:
            params["coordinates"] = f"{query.latitude},{query.longitude}"
        return params

    @staticmethod
    def _build_sensor_map(sensors: Any) -> Dict[str, str]:
        sensor_map: Dict[str, str] = {}
        if not isinstance(sensors, list):
            return sensor_map

        for sensor in sensors:
            if not isinstance(sensor, dict):
                continue
            sensor_id = sensor.get("id")
            parameter = sensor.get("parameter")
            name = parameter.get("name") if isinstance(parameter, dict) else None
            if not sensor_id or not isinstance(name, str):
                logger.debug("Skipping sensor without id or parameter name")
                continue
            sensor_map[str(sensor_id)] = name.lower()
        return sensor_map
