from __future__ import annotations

import json
import threading
from typing import Callable, Iterator, List, Optional

import httpx
import pytest

from itly_iteratively.client import DeliveryClient
from itly_iteratively.config import IterativelyOptions

URL = "https://data.example.com/t"


class Endpoint:
    """MockTransport-backed collector that records every posted body."""

    def __init__(self) -> None:
        self.bodies: List[dict] = []
        self.requests: List[httpx.Request] = []
        self.statuses: List[int] = []
        self.default_status = 200
        self.posted = threading.Event()
        self.on_request: Optional[Callable[[httpx.Request], None]] = None
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            self.bodies.append(json.loads(request.content))
            status = self.statuses.pop(0) if self.statuses else self.default_status
        if self.on_request is not None:
            self.on_request(request)
        self.posted.set()
        return httpx.Response(status, json={"status": status})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def batches(self) -> List[List[dict]]:
        return [body["objects"] for body in self.bodies]


@pytest.fixture()
def endpoint() -> Endpoint:
    return Endpoint()


@pytest.fixture()
def make_client(endpoint: Endpoint) -> Iterator[Callable[..., DeliveryClient]]:
    created: List[DeliveryClient] = []

    def factory(**overrides) -> DeliveryClient:
        params = {"url": URL, "flush_interval": 0.0, "retry_delay_min": 0.0, "retry_delay_max": 0.0}
        params.update(overrides)
        client = DeliveryClient("key123", IterativelyOptions(**params), transport=endpoint.transport)
        created.append(client)
        return client

    yield factory

    for client in created:
        client.shutdown(force=True)
        client.close()
