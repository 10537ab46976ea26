# tests/test_fetch_service.py
import logging

import pytest

from app.di import build_container
from app.logging import ACCESS_LOGGER_NAME

from conftest import make_settings


@pytest.mark.asyncio
async def test_rejection_never_contacts_target(target, caplog):
    svc = build_container(make_settings(), transport=target.transport).fetch_service
    with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
        result = (await svc.fetch("http://evil.com/malicious", "get")).to_dict()

    assert target.requests == []
    assert result["isError"] is True
    assert result["structuredContent"]["statusCode"] == -1
    assert "URL not allowed" in result["content"][0]["text"]
    # the rejected attempt is still logged once
    lines = [r.getMessage() for r in caplog.records if r.name == ACCESS_LOGGER_NAME]
    assert len(lines) == 1
    assert lines[0].endswith('"GET evil.com/malicious HTTP/1.1" -1 0')


@pytest.mark.asyncio
async def test_method_rejection(target):
    svc = build_container(make_settings(), transport=target.transport).fetch_service
    result = await svc.fetch("http://localhost:8888/test", "DELETE")
    assert target.requests == []
    assert result.is_error is True
    assert result.status_code == -1
    assert "Method not allowed" in result.content[0].text


@pytest.mark.asyncio
async def test_filtered_headers_reach_target(target):
    svc = build_container(make_settings(), transport=target.transport).fetch_service
    result = await svc.fetch(
        "http://localhost:8888/test",
        "GET",
        {"User-Agent": "TestClient/1.0", "X-Custom-Header": "should-be-filtered"},
        passthrough_headers={"authorization": ["Bearer x"], "x-forbidden-header": ["nope"]},
    )
    sent = target.requests[0].headers
    assert sent["user-agent"] == "TestClient/1.0"
    assert sent["authorization"] == "Bearer x"
    assert "x-custom-header" not in sent
    assert "x-forbidden-header" not in sent
    assert result.status_code == 200
    assert len(result.content) == 1
