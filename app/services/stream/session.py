"""Stream session: the single owner of client-side stream state.

Usage:
    async with StreamSession("http://localhost:8000/api/events") as session:
        ...
        session.results          # latest Success records
        session.is_connected     # advisory connection signal

The connection flags are written only by the ConnectionManager and the results
only by the Dispatcher; the session exposes both read-only.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Tuple

from app.config import Settings, get_settings
from app.models.stream import Record

from .codec import Rejection, decode_frame
from .connection import (
    DEFAULT_RECONNECT_DELAY,
    ClientFactory,
    ConnectionManager,
    ConnectionState,
    Sleep,
    default_client_factory,
)
from .dispatcher import Dispatcher


class StreamSession:
    def __init__(
        self,
        url: str,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        client_factory: Optional[ClientFactory] = None,
        sleep: Sleep = asyncio.sleep,
        dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        self.url = url
        self.dispatcher = dispatcher or Dispatcher()
        self.connection = ConnectionManager(
            self._on_frame,
            reconnect_delay=reconnect_delay,
            client_factory=client_factory,
            sleep=sleep,
        )
        self.rejected = 0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "StreamSession":
        settings = settings or get_settings()
        kwargs.setdefault("client_factory", default_client_factory(settings.http_timeout))
        return cls(settings.events_url, reconnect_delay=settings.reconnect_delay, **kwargs)

    @property
    def results(self) -> Tuple[Record, ...]:
        return self.dispatcher.results

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def connection_error(self) -> Optional[str]:
        return self.connection.connection_error

    def _on_frame(self, frame: str) -> None:
        decoded = decode_frame(frame)
        if isinstance(decoded, Rejection):
            self.rejected += 1
            return
        self.dispatcher.dispatch(decoded)

    async def start(self) -> None:
        await self.connection.activate(self.url)

    async def stop(self) -> None:
        await self.connection.deactivate()

    async def __aenter__(self) -> "StreamSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
