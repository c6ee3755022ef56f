from __future__ import annotations

import json
import logging

import httpx
import pytest

from itly_iteratively.models import TrackModel, TrackType
from itly_iteratively.sender import BatchSender

URL = "https://data.example.com/t"


def _records(count: int = 2):
    return [TrackModel.build(TrackType.TRACK, properties={"n": n}) for n in range(count)]


def test_post_success_sends_batch() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(201)

    sender = BatchSender(URL, "key123", branch="main", version="1.0.0", transport=httpx.MockTransport(handler))

    assert sender.post(_records()) is True
    assert seen["url"] == URL
    assert seen["headers"]["Authorization"] == "Bearer key123"
    assert seen["headers"]["Content-Type"] == "application/json"
    body = seen["body"]
    assert list(body) == ["branchName", "trackingPlanVersion", "objects"]
    assert body["branchName"] == "main"
    assert body["trackingPlanVersion"] == "1.0.0"
    assert [obj["properties"]["n"] for obj in body["objects"]] == [0, 1]


def test_metadata_defaults_to_null() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200)

    sender = BatchSender(URL, "key123", transport=httpx.MockTransport(handler))
    sender.post(_records(1))

    assert bodies[0]["branchName"] is None
    assert bodies[0]["trackingPlanVersion"] is None


@pytest.mark.parametrize("status", [301, 400, 500, 503])
def test_post_non_2xx_is_failure(status: int, caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="nope", headers={"X-Trace": "abc"})

    sender = BatchSender(URL, "key123", transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.WARNING, logger="itly.iteratively.sender"):
        assert sender.post(_records(1)) is False

    message = caplog.records[-1].getMessage()
    assert URL in message
    assert f"status={status}" in message
    assert "nope" in message
    assert "x-trace" in message.lower()
    assert '"objects"' in message


def test_post_transport_error_is_failure(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sender = BatchSender(URL, "key123", transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.WARNING, logger="itly.iteratively.sender"):
        assert sender.post(_records(1)) is False

    assert "ConnectError" in caplog.records[-1].getMessage()
    assert "connection refused" in caplog.records[-1].getMessage()


def test_post_bad_endpoint_is_failure() -> None:
    sender = BatchSender("not a url", "key123")
    assert sender.post(_records(1)) is False
    sender.close()


def test_post_unexpected_exception_is_failure(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("boom")

    sender = BatchSender(URL, "key123", transport=httpx.MockTransport(handler))
    with caplog.at_level(logging.WARNING, logger="itly.iteratively.sender"):
        assert sender.post(_records(1)) is False

    assert "RuntimeError: boom" in caplog.records[-1].getMessage()


def test_post_unserializable_payload_is_failure(caplog: pytest.LogCaptureFixture) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    sender = BatchSender(URL, "key123", transport=httpx.MockTransport(handler))
    records = [TrackModel.build(TrackType.IDENTIFY, properties={"a": {(1, 2): "x"}})]
    with caplog.at_level(logging.WARNING, logger="itly.iteratively.sender"):
        assert sender.post(records) is False

    assert calls == []
    assert "TypeError" in caplog.records[-1].getMessage()
