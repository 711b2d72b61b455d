import asyncio
import json
from typing import AsyncIterator, Iterable, Mapping

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

router = APIRouter(tags=["events"])

KEEPALIVE_SECONDS = 15.0


def format_sse(data: str) -> str:
    """Encode one default-type SSE event; multi-line data becomes several data: lines."""
    lines = data.split("\n")
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def _stream(script: Iterable[Mapping[str, str]], interval: float, hold_open: bool) -> AsyncIterator[str]:
    for envelope in script:
        yield format_sse(json.dumps(envelope, ensure_ascii=False))
        if interval:
            await asyncio.sleep(interval)
    while hold_open:
        await asyncio.sleep(KEEPALIVE_SECONDS)
        yield ": keep-alive\n\n"


@router.get("/events")
def api_events(request: Request):
    state = request.app.state
    return StreamingResponse(
        _stream(list(state.event_script), state.event_interval, state.hold_open),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
