# tests/test_config.py
import dataclasses

import pytest
from pydantic import ValidationError

from app.config import DEFAULT_URL_REGEX, Settings, load_fetch_config
from server.main import settings_from_args

from conftest import make_config


def test_defaults(monkeypatch):
    for name in ("FETCH_SECRET", "FETCH_ALLOWED_METHODS", "FETCH_TIMEOUT_SEC", "MCP_HTTP_PORT"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_fetch_config(Settings(_env_file=None))
    assert cfg.allowed_url_regex.pattern == DEFAULT_URL_REGEX
    assert cfg.allowed_methods == {"GET"}
    assert cfg.allowed_tool_header_names == {"content-type", "accept"}
    assert cfg.allowed_passthrough_header_names == frozenset()
    assert cfg.fetch_timeout == 30
    assert cfg.max_bytes == 100 * 1024
    assert cfg.port == 3000
    assert len(cfg.secret) == 64


def test_random_secret_differs_per_build(monkeypatch):
    monkeypatch.delenv("FETCH_SECRET", raising=False)
    s = Settings(_env_file=None)
    assert load_fetch_config(s).secret != load_fetch_config(s).secret


def test_lists_are_normalised():
    cfg = make_config(
        FETCH_ALLOWED_METHODS=" get , Post,,",
        FETCH_ALLOWED_TOOL_HEADER_NAMES="User-Agent, ACCEPT",
    )
    assert cfg.allowed_methods == {"GET", "POST"}
    assert cfg.allowed_tool_header_names == {"user-agent", "accept"}


def test_config_is_immutable():
    cfg = make_config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.secret = "other"


def test_invalid_regex_rejected_at_startup():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, FETCH_ALLOWED_URL_REGEX="([unclosed")


def test_non_positive_timeout_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, FETCH_TIMEOUT_SEC=0)


def test_cli_flags_override_settings(monkeypatch):
    monkeypatch.setenv("FETCH_ALLOWED_METHODS", "PUT")
    s = settings_from_args([
        "--secret", "abc",
        "--allowed-methods", "GET,POST",
        "--fetch-timeout", "5",
        "--fetch-max-response-size", "8",
        "--port", "4000",
    ])
    cfg = load_fetch_config(s)
    assert cfg.secret == "abc"
    assert cfg.allowed_methods == {"GET", "POST"}
    assert cfg.fetch_timeout == 5
    assert cfg.max_bytes == 8 * 1024
    assert cfg.port == 4000


def test_environment_used_when_flag_absent(monkeypatch):
    monkeypatch.setenv("FETCH_ALLOWED_METHODS", "PUT")
    assert load_fetch_config(settings_from_args([])).allowed_methods == {"PUT"}
