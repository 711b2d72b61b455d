"""Incremental decoder for the text/event-stream line protocol.

Feed lines (without terminators) one at a time; a complete event is returned when
a blank line closes it. Multi-line ``data:`` fields are joined with ``\\n``;
lines starting with ``:`` are comments (servers use them as keep-alives).
A partial event left when the stream ends is discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ServerSentEvent:
    data: str
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEDecoder:
    def __init__(self) -> None:
        self._data: List[str] = []
        self._event = ""
        self._last_event_id: Optional[str] = None
        self._retry: Optional[int] = None

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_event_id

    def decode(self, line: str) -> Optional[ServerSentEvent]:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._last_event_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        # unknown fields are ignored
        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if not self._data:
            self._event = ""
            return None
        sse = ServerSentEvent(
            data="\n".join(self._data),
            event=self._event or "message",
            id=self._last_event_id,
            retry=self._retry,
        )
        self._data = []
        self._event = ""
        return sse
