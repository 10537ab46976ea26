# tests/conftest.py
from typing import Callable, List

import httpx
import pytest

from app.config import FetchConfig, Settings, load_fetch_config


def make_settings(**overrides) -> Settings:
    base = dict(
        FETCH_SECRET="test-secret-123",
        FETCH_ALLOWED_URL_REGEX=r"^http://localhost:8888(/.*)?$",
        FETCH_ALLOWED_METHODS="GET,POST",
        FETCH_ALLOWED_TOOL_HEADER_NAMES="content-type,user-agent",
        FETCH_ALLOWED_PASSTHROUGH_HEADER_NAMES="authorization",
        FETCH_TIMEOUT_SEC=10,
        FETCH_MAX_RESPONSE_KB=100,
    )
    base.update(overrides)
    return Settings(**base)


def make_config(**overrides) -> FetchConfig:
    return load_fetch_config(make_settings(**overrides))


class RecordingTarget:
    """
    Stand-in for the fetched server: records every request it receives and
    answers with whatever the current responder returns.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response] | None = None):
        self.requests: List[httpx.Request] = []
        self.responder = responder or self.echo

    @staticmethod
    def echo(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "method": request.method,
                "url": str(request.url),
                "headers": dict(request.headers),
            },
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def target() -> RecordingTarget:
    return RecordingTarget()
