from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from adsdash.config import Settings


class Recorder:
    """Wraps a handler for httpx.MockTransport and keeps every request it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def body(self, index: int) -> dict:
        return json.loads(self.requests[index].content or b"{}")


@pytest.fixture
def settings() -> Settings:
    return Settings(google_developer_token="dev-token").validate()


@pytest.fixture
def record() -> Callable[[Callable[[httpx.Request], httpx.Response]], Recorder]:
    return Recorder
