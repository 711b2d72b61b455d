"""Connection manager for the crawl event stream.

The manager is a small state machine::

    IDLE -> CONNECTING -> OPEN
    OPEN -> ERRORED -> CONNECTING  (after a fixed delay, forever)

Each activation starts one transport task that streams the URL with httpx and
posts what it sees (opened / frame / failed) to an asyncio queue. A single pump
task applies those events in order. Every transport carries a generation number;
events from a transport that has since been replaced are discarded, so a frame
from an errored connection can never be dispatched after a reconnect.

Reconnection is unconditional: any transport failure closes the transport and
re-activates the same URL after ``reconnect_delay`` seconds, with no backoff and
no attempt limit. ``deactivate()`` cancels a pending reconnect and closes the
live transport.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import httpx

from .sse import SSEDecoder

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0

STREAM_HEADERS = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}

FrameHandler = Callable[[str], None]
StateListener = Callable[["ConnectionState", Optional[str]], None]
ClientFactory = Callable[[], httpx.AsyncClient]
Sleep = Callable[[float], Awaitable[None]]


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    ERRORED = "errored"


class StreamRefused(Exception):
    """The server answered, but not with a usable event stream."""


@dataclass(frozen=True)
class _TransportEvent:
    generation: int
    type: str  # "opened" | "frame" | "failed"
    data: Optional[str] = None


def default_client_factory(timeout: float = 30.0) -> ClientFactory:
    # no read timeout: the stream may stay quiet for as long as a crawl runs
    def _factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=None), follow_redirects=True)

    return _factory


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, StreamRefused):
        return str(exc)
    if isinstance(exc, httpx.TimeoutException):
        return f"Connection timed out ({type(exc).__name__})"
    if isinstance(exc, httpx.TransportError):
        return f"Connection error: {exc or type(exc).__name__}"
    return f"Stream error: {exc or type(exc).__name__}"


class ConnectionManager:
    def __init__(
        self,
        on_frame: FrameHandler,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        client_factory: Optional[ClientFactory] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._on_frame = on_frame
        self.reconnect_delay = float(reconnect_delay)
        self._client_factory = client_factory or default_client_factory()
        self._sleep = sleep

        self._state = ConnectionState.IDLE
        self._error: Optional[str] = None
        self._url: Optional[str] = None
        self._generation = 0
        self._active = False
        self._listeners: List[StateListener] = []

        self._events: "asyncio.Queue[_TransportEvent]" = asyncio.Queue()
        self._pump_task: Optional[asyncio.Task] = None
        self._transport_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

        # transports opened since construction, reconnects included
        self.attempts = 0

    # --- Observable state ---
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def connection_error(self) -> Optional[str]:
        return self._error

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # --- Lifecycle ---
    async def activate(self, url: str) -> None:
        """Open a stream to url, replacing any connection or pending reconnect."""
        await self._cancel_reconnect()
        await self._close_transport()

        self._url = url
        self._active = True
        self._generation += 1
        self.attempts += 1
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.create_task(self._pump(), name="crawl-stream-pump")

        self._set_state(ConnectionState.CONNECTING)
        logger.debug("Connecting to %s (attempt %d)", url, self.attempts)
        self._transport_task = asyncio.create_task(
            self._run_transport(url, self._generation), name=f"crawl-stream-transport-{self._generation}"
        )

    async def deactivate(self) -> None:
        """Close the live transport and cancel any pending reconnect."""
        self._active = False
        # anything still queued belongs to a transport that no longer exists
        self._generation += 1
        await self._cancel_reconnect()
        pump, self._pump_task = self._pump_task, None
        await _cancel_and_wait(pump)
        await self._close_transport()
        self._events = asyncio.Queue()
        if self._state is not ConnectionState.IDLE:
            logger.debug("Stream to %s deactivated", self._url)
        self._set_state(ConnectionState.IDLE)

    # --- Transport ---
    async def _run_transport(self, url: str, generation: int) -> None:
        def post(type_: str, data: Optional[str] = None) -> None:
            self._events.put_nowait(_TransportEvent(generation, type_, data))

        try:
            async with self._client_factory() as client:
                async with client.stream("GET", url, headers=STREAM_HEADERS) as response:
                    if not response.is_success:
                        raise StreamRefused(f"Server responded with HTTP {response.status_code}")
                    content_type = response.headers.get("content-type", "")
                    if not content_type.startswith("text/event-stream"):
                        raise StreamRefused(f"Unexpected content type {content_type!r}")
                    post("opened")

                    decoder = SSEDecoder()
                    async for line in response.aiter_lines():
                        event = decoder.decode(line)
                        if event is None:
                            continue
                        if event.event != "message":
                            logger.debug("Skipping named event %r", event.event)
                            continue
                        post("frame", event.data)
            post("failed", "Connection closed by server")
        except (httpx.HTTPError, StreamRefused, UnicodeDecodeError) as exc:
            post("failed", describe_failure(exc))
        except Exception as exc:
            logger.exception("Unexpected failure while streaming %s", url)
            post("failed", describe_failure(exc))

    async def _close_transport(self) -> None:
        task, self._transport_task = self._transport_task, None
        await _cancel_and_wait(task)

    # --- Reconnect ---
    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is asyncio.current_task():
            return
        await _cancel_and_wait(task)

    async def _reconnect_after_delay(self, url: str) -> None:
        await self._sleep(self.reconnect_delay)
        self._reconnect_task = None
        if self._active:
            await self.activate(url)

    # --- State machine ---
    async def _pump(self) -> None:
        while True:
            event = await self._events.get()
            if event.generation != self._generation:
                continue
            if event.type == "opened":
                self._error = None
                self._set_state(ConnectionState.OPEN)
                logger.info("Connected to %s", self._url)
            elif event.type == "frame":
                self._deliver(event.data or "")
            elif event.type == "failed":
                await self._handle_failure(event.data or "Connection error")

    async def _handle_failure(self, description: str) -> None:
        # stale events from this transport must not be applied any more
        self._generation += 1
        generation = self._generation
        self._error = description
        self._set_state(ConnectionState.ERRORED)
        await self._close_transport()
        if not self._active or generation != self._generation or self._url is None:
            # deactivated or re-activated while the transport was closing
            return
        logger.warning(
            "Event stream %s failed: %s; reconnecting in %.1fs", self._url, description, self.reconnect_delay
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after_delay(self._url), name="crawl-stream-reconnect"
        )

    def _deliver(self, frame: str) -> None:
        try:
            self._on_frame(frame)
        except Exception:
            logger.exception("Frame handler failed")

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state, self._error)
            except Exception:
                logger.exception("Connection listener failed")


async def _cancel_and_wait(task: Optional[asyncio.Task]) -> None:
    if task is None or task.done():
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
