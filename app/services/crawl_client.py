"""Crawl job trigger.

``CrawlApiClient.crawl`` sends exactly one POST to ``{base_url}/crawl`` and either
returns the server's acknowledgment or raises a ``SubmissionError`` whose
``kind`` tells the failures apart:

- validation: the parameters were rejected locally; nothing was sent
- network: the request could not be completed (connect error, timeout, ...)
- status: the server answered with a non-2xx status
- response_shape: 2xx, but the body is not a valid acknowledgment

Nothing is retried here. ``CrawlJobTrigger`` wraps the client for callers that
want a pending/success/error status instead of exceptions.

Note: the acknowledgment does not mean results have arrived on the event stream;
there is no identifier linking a submission to the events it produces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from app.config import get_settings
from app.models.crawl import CrawlAck, CrawlParams

logger = logging.getLogger(__name__)

_BODY_EXCERPT_CHARS = 500


class SubmissionErrorKind(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    STATUS = "status"
    RESPONSE_SHAPE = "response_shape"


class SubmissionError(Exception):
    def __init__(
        self,
        kind: SubmissionErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.body = body


ParamsLike = Union[CrawlParams, Mapping[str, Any]]


def validate_params(params: ParamsLike) -> CrawlParams:
    if isinstance(params, CrawlParams):
        return params
    try:
        return CrawlParams.model_validate(dict(params))
    except (ValidationError, TypeError, ValueError) as exc:
        raise SubmissionError(SubmissionErrorKind.VALIDATION, f"Invalid crawl parameters: {exc}") from exc


class CrawlApiClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = base_url or settings.api_base_url
            timeout = timeout if timeout is not None else settings.http_timeout
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.headers = headers or {"Content-Type": "application/json"}
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            transport=self._transport,
        )

    async def crawl(self, params: ParamsLike) -> CrawlAck:
        """Start a crawl job and return the server's acknowledgment."""
        job = validate_params(params)

        async with self._client() as client:
            try:
                resp = await client.post("/crawl", json=job.model_dump())
            except httpx.HTTPError as exc:
                logger.error("Crawl request failed: %s", exc)
                raise SubmissionError(
                    SubmissionErrorKind.NETWORK, f"Crawl request failed: {exc or type(exc).__name__}"
                ) from exc

        if not resp.is_success:
            body = resp.text[:_BODY_EXCERPT_CHARS]
            logger.error("Crawl request rejected with HTTP %d: %s", resp.status_code, body)
            raise SubmissionError(
                SubmissionErrorKind.STATUS,
                f"Server responded with HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            return CrawlAck.model_validate(resp.json())
        except ValueError as exc:
            body = resp.text[:_BODY_EXCERPT_CHARS]
            logger.error("Unexpected crawl response body: %s", body)
            raise SubmissionError(
                SubmissionErrorKind.RESPONSE_SHAPE,
                "Server returned an unexpected response body",
                status_code=resp.status_code,
                body=body,
            ) from exc


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SubmissionResult:
    ack: Optional[CrawlAck] = None
    error: Optional[SubmissionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CrawlJobTrigger:
    """Pending/success/error view over CrawlApiClient.

    Concurrent submissions are not queued; each call sends its own request and
    the status reflects whichever finished last.
    """

    def __init__(self, api: Optional[CrawlApiClient] = None) -> None:
        self.api = api or CrawlApiClient()
        self.status = SubmissionStatus.IDLE
        self.data: Optional[CrawlAck] = None
        self.error: Optional[SubmissionError] = None

    @property
    def is_pending(self) -> bool:
        return self.status is SubmissionStatus.PENDING

    async def submit(self, params: ParamsLike) -> SubmissionResult:
        self.status = SubmissionStatus.PENDING
        self.error = None
        try:
            ack = await self.api.crawl(params)
        except SubmissionError as exc:
            self.status = SubmissionStatus.ERROR
            self.error = exc
            return SubmissionResult(error=exc)
        self.status = SubmissionStatus.SUCCESS
        self.data = ack
        logger.info("Crawl job accepted (%d item(s) acknowledged)", len(ack.items))
        return SubmissionResult(ack=ack)
