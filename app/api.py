"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from app.schemas import AirQualitySnapshot
from models.records import LocationQuery
from services.errors import (
    AcquisitionError,
    InvalidQuery,
    LocationNotFound,
    NoDataAvailable,
    UpstreamFailure,
)
from services.pipeline import build_pipeline
from services.resolver import LocationResolver
from services.streaming import StreamDeliveryLoop
from settings import Settings, get_settings
from upstream.openaq import OpenAQClient, build_default_client

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def get_client() -> OpenAQClient:
    return build_default_client()


def get_app_settings() -> Settings:
    return get_settings()


def build_query(
    settings: Settings,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
) -> LocationQuery:
    """Pick the request's coordinates, then its city, then the configured default."""
    if lat is not None and lon is not None:
        return LocationQuery(latitude=lat, longitude=lon)
    if city and country:
        return LocationQuery(city=city, country=country)
    return settings.default_query()


def _status_for(exc: AcquisitionError) -> int:
    if isinstance(exc, InvalidQuery):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (LocationNotFound, NoDataAvailable)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, UpstreamFailure):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.get(
    "/airquality",
    response_model=AirQualitySnapshot,
    summary="Fetch the latest normalized readings with sensor placement.",
)
async def get_airquality(
    lat: Optional[float] = Query(None, description="Latitude of the search point."),
    lon: Optional[float] = Query(None, description="Longitude of the search point."),
    city: Optional[str] = Query(None, description="City name, used together with country."),
    country: Optional[str] = Query(None, description="Country code, used together with city."),
    client: OpenAQClient = Depends(get_client),
    settings: Settings = Depends(get_app_settings),
) -> AirQualitySnapshot:
    query = build_query(settings, lat=lat, lon=lon, city=city, country=country)
    pipeline = build_pipeline(query, client=client, smoothing_factor=settings.smoothing_factor)
    try:
        payload = await pipeline.fetch_snapshot_with_sensors()
    except AcquisitionError as exc:
        raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc
    return AirQualitySnapshot.model_validate(payload)


@router.get(
    "/airquality/stream",
    summary="Stream normalized readings as server-sent events.",
    response_class=StreamingResponse,
)
async def stream_airquality(
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    city: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    client: OpenAQClient = Depends(get_client),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    query = build_query(settings, lat=lat, lon=lon, city=city, country=country)
    try:
        LocationResolver.validate(query)
    except InvalidQuery as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    pipeline = build_pipeline(query, client=client, smoothing_factor=settings.smoothing_factor)
    loop = StreamDeliveryLoop(pipeline, poll_interval=settings.poll_interval_seconds)
    return StreamingResponse(
        loop.encoded(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
