import asyncio
import json

import httpx

from app.main import create_app
from app.models.crawl import CrawlParams
from app.services.crawl_client import (
    CrawlApiClient,
    CrawlJobTrigger,
    SubmissionErrorKind,
    SubmissionStatus,
)

JOB = {"targets": ["http://x"], "delay": 1, "crawling_concurrency": 2, "processing_concurrency": 2}


class _Recorder:
    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.respond(request)


def _trigger(respond):
    recorder = _Recorder(respond)
    api = CrawlApiClient(base_url="http://testserver/api", timeout=5, transport=httpx.MockTransport(recorder))
    return CrawlJobTrigger(api), recorder


def test_submit_success_sends_one_request():
    trigger, recorder = _trigger(lambda req: httpx.Response(200, json={"items": ["http://x"]}))
    result = asyncio.run(trigger.submit(JOB))

    assert result.ok
    assert result.ack.items == ["http://x"]
    assert trigger.status is SubmissionStatus.SUCCESS
    assert trigger.data == result.ack
    assert len(recorder.requests) == 1
    req = recorder.requests[0]
    assert req.method == "POST"
    assert str(req.url) == "http://testserver/api/crawl"
    assert json.loads(req.content) == JOB


def test_server_error_is_a_status_failure_not_an_exception():
    trigger, recorder = _trigger(lambda req: httpx.Response(500, text="internal error"))
    result = asyncio.run(trigger.submit(JOB))

    assert not result.ok
    assert result.error.kind is SubmissionErrorKind.STATUS
    assert result.error.status_code == 500
    assert result.error.body == "internal error"
    assert trigger.status is SubmissionStatus.ERROR
    assert trigger.error is result.error
    assert len(recorder.requests) == 1


def test_malformed_bodies_are_response_shape_failures():
    bodies = [
        httpx.Response(200, text="<html>ok</html>"),
        httpx.Response(200, json={"result": "ok"}),
        httpx.Response(201, json={"items": "not-a-list"}),
    ]
    for body in bodies:
        trigger, _ = _trigger(lambda req, body=body: body)
        result = asyncio.run(trigger.submit(JOB))
        assert result.error.kind is SubmissionErrorKind.RESPONSE_SHAPE


def test_network_failure_is_reported():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    trigger, recorder = _trigger(refuse)
    result = asyncio.run(trigger.submit(JOB))
    assert result.error.kind is SubmissionErrorKind.NETWORK
    assert "connection refused" in str(result.error)
    assert len(recorder.requests) == 1


def test_invalid_params_fail_before_any_request():
    bad_jobs = [
        {**JOB, "targets": []},
        {**JOB, "crawling_concurrency": 0},
        {**JOB, "processing_concurrency": -1},
        {**JOB, "crawling_concurrency": "2"},
        {**JOB, "delay": -5},
        {"targets": ["http://x"]},
    ]
    for job in bad_jobs:
        trigger, recorder = _trigger(lambda req: httpx.Response(200, json={"items": []}))
        result = asyncio.run(trigger.submit(job))
        assert result.error.kind is SubmissionErrorKind.VALIDATION, job
        assert recorder.requests == []


def test_accepts_model_instances():
    trigger, recorder = _trigger(lambda req: httpx.Response(200, json={"items": []}))
    result = asyncio.run(trigger.submit(CrawlParams(**JOB)))
    assert result.ok
    assert len(recorder.requests) == 1


def test_submit_against_mock_backend():
    backend = create_app(hold_open=False)
    api = CrawlApiClient(base_url="http://testserver/api", timeout=5, transport=httpx.ASGITransport(app=backend))
    trigger = CrawlJobTrigger(api)

    result = asyncio.run(trigger.submit({**JOB, "targets": ["http://a", "http://b"]}))
    assert result.ok
    assert result.ack.items == ["http://a", "http://b"]
    assert [p.targets for p in backend.state.submissions] == [["http://a", "http://b"]]
