"""Frame codec: raw SSE data -> validated Envelope.

Frames use a relaxed JSON dialect (JSON5: trailing commas, single quotes,
unquoted keys, comments). A frame becomes an Envelope only when it has exactly
``kind`` and ``payload``; for Success envelopes the payload itself must decode
to a list of flat records. Anything else yields a Rejection and is logged, never
raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

import json5
from pydantic import ValidationError

from app.models.stream import Envelope, MessageKind, ResultPayload

logger = logging.getLogger(__name__)

_EXCERPT_CHARS = 200


@dataclass(frozen=True)
class Rejection:
    reason: str
    frame: str


def _excerpt(text: str) -> str:
    if len(text) <= _EXCERPT_CHARS:
        return text
    return text[:_EXCERPT_CHARS] + "..."


def _loads(text: str) -> Any:
    return json5.loads(text)


def decode_frame(raw: str) -> Union[Envelope, Rejection]:
    try:
        candidate = _loads(raw)
    except ValueError as exc:
        return _reject(f"frame is not valid JSON5: {exc}", raw)

    try:
        envelope = Envelope.model_validate(candidate)
    except ValidationError as exc:
        return _reject(f"invalid envelope: {_summarize(exc)}", raw)

    if envelope.kind is MessageKind.SUCCESS:
        try:
            records = ResultPayload.model_validate(_loads(envelope.payload))
        except ValueError as exc:
            # ValidationError is a ValueError subclass
            detail = _summarize(exc) if isinstance(exc, ValidationError) else str(exc)
            return _reject(f"invalid Success payload: {detail}", raw)
        envelope._results = records.root

    return envelope


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    more = exc.error_count() - len(parts)
    if more > 0:
        parts.append(f"(+{more} more)")
    return "; ".join(parts)


def _reject(reason: str, raw: str) -> Rejection:
    logger.warning("Dropping frame (%s): %s", reason, _excerpt(raw))
    return Rejection(reason=reason, frame=raw)
