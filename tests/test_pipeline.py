from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import LOCATION_ID, FakeUpstream
from models.records import LocationQuery, SensorLocation
from services.errors import NoDataAvailable, UpstreamFailure
from services.pipeline import AcquisitionPipeline, build_pipeline

QUERY = LocationQuery(city="Albuquerque", country="US")


def _run(upstream: FakeUpstream, action, api_key: str | None = "test-key"):
    async def scenario():
        client = upstream.build_client(api_key=api_key)
        pipeline = build_pipeline(QUERY, client=client, smoothing_factor=0.2)
        try:
            return await action(pipeline)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


def test_fetch_snapshot_projects_readings_through_sensor_map(upstream: FakeUpstream) -> None:
    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_snapshot()

    snapshot = _run(upstream, action)

    assert snapshot.values["pm25"] == 12.0
    assert snapshot.values["pm10"] == 30.0
    assert snapshot.values["co"] == 7.5
    assert snapshot.values["temperature"] == 15.0
    assert snapshot.values["no2"] == 0
    assert snapshot.normalized["temperature"] == pytest.approx(0.5)
    assert snapshot.co_waveform == "triangle"


def test_two_fetches_resolve_location_once(upstream: FakeUpstream) -> None:
    async def action(pipeline: AcquisitionPipeline):
        first = await pipeline.fetch_snapshot()
        upstream.latest = [{"sensorsId": 3920, "value": 50.0}]
        second = await pipeline.fetch_snapshot()
        return pipeline, first, second

    pipeline, first, second = _run(upstream, action)

    assert len(upstream.calls_to("/locations")) == 1
    assert len(upstream.calls_to("/latest")) == 2
    assert pipeline.resolver.resolution_count == 1
    assert second.normalized["temperature"] == pytest.approx(0.2 * 1.0 + 0.8 * 0.5)


def test_empty_latest_raises_no_data(upstream: FakeUpstream) -> None:
    upstream.latest = []

    async def action(pipeline: AcquisitionPipeline):
        with pytest.raises(NoDataAvailable):
            await pipeline.fetch_snapshot()
        return pipeline

    pipeline = _run(upstream, action)

    assert not pipeline.engine.has_history


def test_fetch_sensor_locations_falls_back_to_location_coordinates(upstream: FakeUpstream) -> None:
    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_sensor_locations()

    sensors = _run(upstream, action)

    assert sensors == [
        SensorLocation(id=3917, parameter="pm25", coordinates={"latitude": 35.2, "longitude": -106.6}),
        SensorLocation(id=3919, parameter="co", coordinates={"latitude": 35.1353, "longitude": -106.5852}),
        SensorLocation(id=3922, parameter="unknown", coordinates={"latitude": 35.1353, "longitude": -106.5852}),
    ]
    assert upstream.calls_to(f"/locations/{LOCATION_ID}")


def test_fetch_sensor_locations_without_sensors_is_empty(upstream: FakeUpstream) -> None:
    upstream.detail = [{"id": LOCATION_ID}]

    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_sensor_locations()

    assert _run(upstream, action) == []


def test_sensor_without_any_coordinates_is_null(upstream: FakeUpstream) -> None:
    upstream.locations = [{"id": LOCATION_ID, "sensors": []}]
    upstream.detail = [{"id": LOCATION_ID, "sensors": [{"id": 1, "parameter": {"name": "O3"}}]}]

    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_sensor_locations()

    assert _run(upstream, action) == [SensorLocation(id=1, parameter="o3", coordinates=None)]


def test_non_object_measurements_are_skipped(upstream: FakeUpstream) -> None:
    upstream.latest = ["bogus", {"sensorsId": 3917, "value": 12.0}]

    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_snapshot()

    snapshot = _run(upstream, action)

    assert snapshot.values["pm25"] == 12.0


def test_non_object_location_detail_raises_upstream_failure(upstream: FakeUpstream) -> None:
    upstream.detail = ["bogus"]

    async def action(pipeline: AcquisitionPipeline):
        with pytest.raises(UpstreamFailure, match="Unexpected location entry"):
            await pipeline.fetch_sensor_locations()

    _run(upstream, action)


def test_fetch_snapshot_with_sensors_merges_payload(upstream: FakeUpstream) -> None:
    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_snapshot_with_sensors()

    payload = _run(upstream, action)

    assert payload["pm25"] == 12.0
    assert 0.0 < payload["pm25_norm"] < 1.0
    assert payload["co_waveform"] == "triangle"
    assert [sensor["id"] for sensor in payload["sensors"]] == [3917, 3919, 3922]
    assert len(upstream.calls_to("/locations")) == 1


def test_every_request_carries_api_key(upstream: FakeUpstream) -> None:
    async def action(pipeline: AcquisitionPipeline):
        return await pipeline.fetch_snapshot_with_sensors()

    _run(upstream, action)

    assert len(upstream.requests) == 3
    assert all(request.headers["x-api-key"] == "test-key" for request in upstream.requests)


def test_missing_api_key_surfaces_as_upstream_failure(upstream: FakeUpstream) -> None:
    def unauthorized(request: httpx.Request) -> httpx.Response:
        assert "x-api-key" not in request.headers
        return httpx.Response(401, json={"detail": "Unauthorized"})

    upstream.failure = unauthorized

    async def action(pipeline: AcquisitionPipeline):
        with pytest.raises(UpstreamFailure) as exc_info:
            await pipeline.fetch_snapshot()
        return exc_info.value

    error = _run(upstream, action, api_key=None)

    assert error.status_code == 401


def test_network_error_surfaces_as_upstream_failure(upstream: FakeUpstream) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstream.failure = unreachable

    async def action(pipeline: AcquisitionPipeline):
        with pytest.raises(UpstreamFailure, match="connection refused"):
            await pipeline.fetch_snapshot()

    _run(upstream, action)


def test_malformed_json_surfaces_as_upstream_failure(upstream: FakeUpstream) -> None:
    upstream.failure = lambda request: httpx.Response(200, text="<html>oops</html>")

    async def action(pipeline: AcquisitionPipeline):
        with pytest.raises(UpstreamFailure, match="Malformed JSON"):
            await pipeline.fetch_snapshot()

    _run(upstream, action)
