"""Continuous server-sent-event delivery of pipeline snapshots."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from services.pipeline import AcquisitionPipeline

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SECONDS = 25.0

SleepFunc = Callable[[float], Awaitable[Any]]


class StreamState(str, Enum):
    """Lifecycle of a delivery loop."""

    starting = "starting"
    streaming = "streaming"
    closed = "closed"


class EventKind(str, Enum):
    data = "data"
    error = "error"
    keep_alive = "keep-alive"


@dataclass(frozen=True, slots=True)
class StreamEvent:
    kind: EventKind
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def data(cls, payload: Dict[str, Any]) -> "StreamEvent":
        return cls(kind=EventKind.data, payload=payload)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(kind=EventKind.error, payload={"error": message})

    @classmethod
    def keep_alive(cls) -> "StreamEvent":
        return cls(kind=EventKind.keep_alive)

    def encode(self) -> str:
        """Render the event in ``text/event-stream`` framing."""
        if self.kind is EventKind.keep_alive:
            return ": keep-alive\n\n"
        body = f"data: {json.dumps(self.payload)}\n\n"
        if self.kind is EventKind.error:
            return f"event: error\n{body}"
        return body


class StreamDeliveryLoop:
    """Pushes snapshots for one consumer until that consumer goes away.

    Two periodic tasks feed a single queue: the poll task fetches a fresh
    snapshot every ``poll_interval`` seconds and the heartbeat task emits a
    keep-alive comment every ``heartbeat_interval`` seconds. Closing the loop
    sets the shared cancellation flag and cancels both tasks.

    The first fetch runs as soon as the poll task starts, so the heartbeat is
    already running while it is in flight. Each poll waits for the previous
    fetch to finish before sleeping again, so fetches on one loop never
    overlap and the effective period is ``poll_interval`` plus fetch latency.
    """

    def __init__(
        self,
        pipeline: AcquisitionPipeline,
        poll_interval: float,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if poll_interval <= 0 or heartbeat_interval <= 0:
            raise ValueError("Stream intervals must be positive.")
        self.pipeline = pipeline
        self.poll_interval = poll_interval
        self.heartbeat_interval = heartbeat_interval
        self.state = StreamState.starting
        self._sleep = sleep
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._closed = asyncio.Event()
        self._tasks: List[asyncio.Task[None]] = []

    async def start(self) -> None:
        if self.state is not StreamState.starting:
            raise RuntimeError(f"Cannot start a stream in state {self.state.value!r}.")

        self.state = StreamState.streaming
        logger.info("Stream started", extra={"poll_interval": self.poll_interval})
        self._tasks = [
            asyncio.create_task(
                self._run_periodic(self.poll_interval, self._poll_once, immediate=True),
                name="stream-poll",
            ),
            asyncio.create_task(
                self._run_periodic(self.heartbeat_interval, self._heartbeat),
                name="stream-heartbeat",
            ),
        ]

    async def close(self) -> None:
        if self.state is StreamState.closed:
            return
        self.state = StreamState.closed
        self._closed.set()

        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Stream closed")

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until the consumer stops iterating."""
        try:
            if self.state is StreamState.starting:
                await self.start()
            while True:
                yield await self._queue.get()
        finally:
            await self.close()

    async def encoded(self) -> AsyncIterator[str]:
        async with aclosing(self.events()) as events:
            async for event in events:
                yield event.encode()

    async def _run_periodic(
        self,
        interval: float,
        action: Callable[[], Awaitable[None]],
        immediate: bool = False,
    ) -> None:
        if immediate:
            await action()
        while not self._closed.is_set():
            await self._sleep(interval)
            if self._closed.is_set():
                return
            await action()

    async def _poll_once(self) -> None:
        try:
            payload = await self.pipeline.fetch_snapshot_with_sensors()
        except Exception as exc:  # noqa: BLE001 - failures become error events
            logger.warning(
                "Stream poll failed",
                extra={"reason": str(exc), "event_kind": EventKind.error.value},
            )
            self._push(StreamEvent.error(str(exc)))
            return
        self._push(StreamEvent.data(payload))

    async def _heartbeat(self) -> None:
        self._push(StreamEvent.keep_alive())

    def _push(self, event: StreamEvent) -> None:
        if self._closed.is_set():
            return
        self._queue.put_nowait(event)
