"""Failure types raised while acquiring air-quality data."""

from __future__ import annotations

from typing import Optional


class AcquisitionError(Exception):
    """Base class for every failure surfaced by the acquisition pipeline."""


class InvalidQuery(AcquisitionError, ValueError):
    """The location query names neither a city/country nor a coordinate pair."""


class LocationNotFound(AcquisitionError, LookupError):
    """The provider returned no location for the query."""


class NoDataAvailable(AcquisitionError, LookupError):
    """The provider returned no latest readings for the resolved location."""


class UpstreamFailure(AcquisitionError):
    """Network or HTTP level failure talking to the provider."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
