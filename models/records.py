"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True, slots=True)
class LocationQuery:
    """Where to look for a station: a city/country pair or a coordinate pair."""

    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_city(self) -> bool:
        return bool(self.city) and bool(self.country)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class ResolvedLocation:
    """Provider location id plus the sensor id -> parameter name lookup."""

    location_id: Any
    sensor_map: Mapping[str, str]
    coordinates: Optional[Dict[str, float]] = None


@dataclass(frozen=True, slots=True)
class ParameterRange:
    min: float
    max: float


@dataclass(frozen=True, slots=True)
class SensorLocation:
    """Physical placement of one sensor, used for display only."""

    id: Any
    parameter: str
    coordinates: Optional[Dict[str, float]] = None

    def as_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "parameter": self.parameter, "coordinates": self.coordinates}


@dataclass(slots=True)
class NormalizedSnapshot:
    """Raw and smoothed normalized value per tracked parameter."""

    values: Dict[str, float] = field(default_factory=dict)
    normalized: Dict[str, float] = field(default_factory=dict)
    co_waveform: str = "sine"

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        for key, value in self.values.items():
            payload[key] = value
            payload[f"{key}_norm"] = self.normalized[key]
        payload["co_waveform"] = self.co_waveform
        return payload
