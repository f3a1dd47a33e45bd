from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx
import pytest

from settings import get_settings
from upstream.openaq import OpenAQClient

LOCATION_ID = 2178

LOCATION_RESULT: Dict[str, Any] = {
    "id": LOCATION_ID,
    "name": "Del Norte",
    "coordinates": {"latitude": 35.1353, "longitude": -106.5852},
    "sensors": [
        {"id": 3917, "parameter": {"name": "PM25", "units": "µg/m³"}},
        {"id": 3918, "parameter": {"name": "pm10", "units": "µg/m³"}},
        {"id": 3919, "parameter": {"name": "CO", "units": "ppm"}},
        {"id": 3920, "parameter": {"name": "Temperature", "units": "c"}},
        {"id": None, "parameter": {"name": "no2"}},
        {"id": 3921},
    ],
}

LATEST_RESULTS: List[Dict[str, Any]] = [
    {"sensorsId": 3917, "value": 12.0},
    {"sensorsId": 3918, "value": 30.0},
    {"sensorsId": 3919, "value": 7.5},
    {"sensorsId": 3920, "value": 15.0},
    {"sensorsId": 9999, "value": 1.0},
]

DETAIL_RESULT: Dict[str, Any] = {
    "id": LOCATION_ID,
    "coordinates": {"latitude": 35.1353, "longitude": -106.5852},
    "sensors": [
        {
            "id": 3917,
            "parameter": {"name": "PM25"},
            "coordinates": {"latitude": 35.2, "longitude": -106.6},
        },
        {"id": 3919, "parameter": {"name": "co"}},
        {"id": 3922},
    ],
}


class FakeUpstream:
    """In-memory stand-in for the provider, served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.locations: List[Dict[str, Any]] = [LOCATION_RESULT]
        self.latest: List[Dict[str, Any]] = list(LATEST_RESULTS)
        self.detail: List[Dict[str, Any]] = [DETAIL_RESULT]
        self.failure: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            return self.failure(request)

        path = request.url.path
        if path.endswith("/locations"):
            return httpx.Response(200, json={"results": self.locations})
        if path.endswith(f"/locations/{LOCATION_ID}/latest"):
            return httpx.Response(200, json={"results": self.latest})
        if path.endswith(f"/locations/{LOCATION_ID}"):
            return httpx.Response(200, json={"results": self.detail})
        return httpx.Response(404, json={"detail": "Not Found"})

    def calls_to(self, suffix: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(suffix)]

    def build_client(self, api_key: Optional[str] = "test-key") -> OpenAQClient:
        return OpenAQClient(
            base_url="https://api.example.test/v3",
            api_key=api_key,
            transport=httpx.MockTransport(self.handler),
        )


class FakeClock:
    """Virtual time source; ``sleep`` only returns once ``advance`` passes it."""

    def __init__(self) -> None:
        self.now = 0.0
        self._sleepers: List[tuple[float, int, asyncio.Future[None]]] = []
        self._counter = itertools.count()

    async def sleep(self, delay: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + delay, next(self._counter), future))
        await future

    async def advance(self, until: float) -> None:
        await settle()
        while self._sleepers and self._sleepers[0][0] <= until:
            wake_at, _, future = heapq.heappop(self._sleepers)
            self.now = wake_at
            if not future.done():
                future.set_result(None)
            await settle()
        self.now = until

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._sleepers if not future.done())


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
