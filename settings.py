from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from models.records import LocationQuery


_API_KEY_ENV = "OPENAQ_API_KEY"
_API_BASE_URL_ENV = "OPENAQ_BASE_URL"
_TIMEOUT_ENV = "OPENAQ_TIMEOUT"
_CITY_ENV = "LOCATION_CITY"
_COUNTRY_ENV = "LOCATION_COUNTRY"
_LAT_ENV = "LOCATION_LAT"
_LON_ENV = "LOCATION_LON"
_POLL_INTERVAL_ENV = "POLL_INTERVAL"
_SMOOTHING_ENV = "SMOOTHING_FACTOR"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_API_BASE_URL = "https://api.openaq.org/v3"
DEFAULT_POLL_INTERVAL_MS = 300_000
DEFAULT_SMOOTHING_FACTOR = 0.2


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str]
    api_base_url: str
    request_timeout: float
    location_city: Optional[str]
    location_country: Optional[str]
    location_lat: Optional[float]
    location_lon: Optional[float]
    poll_interval_ms: int
    smoothing_factor: float
    log_level: str

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    def default_query(self) -> LocationQuery:
        """Location used when a request does not name one."""
        if self.location_city and self.location_country:
            return LocationQuery(city=self.location_city, country=self.location_country)
        return LocationQuery(latitude=self.location_lat, longitude=self.location_lon)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_optional_float(name: str) -> Optional[float]:
    candidate = _read_optional_env(name)
    if candidate is None:
        return None
    try:
        return float(candidate)
    except ValueError:
        return None


def _read_positive_float(name: str, default: float) -> float:
    candidate = _read_optional_env(name)
    if candidate is None:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_poll_interval(default: int) -> int:
    candidate = _read_optional_env(_POLL_INTERVAL_ENV)
    if candidate is None:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_smoothing_factor(default: float) -> float:
    parsed = _read_positive_float(_SMOOTHING_ENV, default)
    return parsed if parsed <= 1 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        api_key=_read_optional_env(_API_KEY_ENV),
        api_base_url=_read_str_env(_API_BASE_URL_ENV, DEFAULT_API_BASE_URL).rstrip("/"),
        request_timeout=_read_positive_float(_TIMEOUT_ENV, 10.0),
        location_city=_read_optional_env(_CITY_ENV),
        location_country=_read_optional_env(_COUNTRY_ENV),
        location_lat=_read_optional_float(_LAT_ENV),
        location_lon=_read_optional_float(_LON_ENV),
        poll_interval_ms=_read_poll_interval(DEFAULT_POLL_INTERVAL_MS),
        smoothing_factor=_read_smoothing_factor(DEFAULT_SMOOTHING_FACTOR),
        log_level=_read_log_level("INFO"),
    )
