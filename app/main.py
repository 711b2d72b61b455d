"""Mock crawl backend for local development and tests.

Serves the two endpoints the client consumes, under /api:

- POST /api/crawl   -> {"items": [...targets]}
- GET  /api/events  -> text/event-stream replaying a scripted envelope sequence

Run with: uvicorn app.main:app
"""

import json
from typing import List, Mapping, Optional

from fastapi import FastAPI

from app.api.routers.crawl import router as crawl_router
from app.api.routers.events import router as events_router
from app.config import configure_logging

DEFAULT_SCRIPT: List[Mapping[str, str]] = [
    {"kind": "Progress", "payload": "Starting AI processing..."},
    {"kind": "Raw", "payload": "<h2 class=\"title\">Example Domain</h2>"},
    {"kind": "Progress", "payload": "AI processing completed"},
    {
        "kind": "Success",
        "payload": json.dumps([{"title": "Example Domain", "url": "http://example.com"}]),
    },
]


def create_app(
    script: Optional[List[Mapping[str, str]]] = None,
    *,
    interval: float = 1.0,
    hold_open: bool = True,
) -> FastAPI:
    app = FastAPI(title="Crawl Mock Backend", version="0.1")
    app.state.event_script = list(DEFAULT_SCRIPT if script is None else script)
    app.state.event_interval = interval
    app.state.hold_open = hold_open
    app.state.submissions = []

    app.include_router(crawl_router, prefix="/api")
    app.include_router(events_router, prefix="/api")
    return app


configure_logging()
app = create_app()
