# app/config.py
from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from typing import FrozenSet, Pattern

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_URL_REGEX = r"^http://localhost(:[0-9]+)?(/.*)?$"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Shared secret; a random one is generated at startup when unset
    FETCH_SECRET: str | None = None

    # Fetch policy (comma-separated lists)
    FETCH_ALLOWED_URL_REGEX: str = DEFAULT_URL_REGEX
    FETCH_ALLOWED_METHODS: str = "GET"
    FETCH_ALLOWED_TOOL_HEADER_NAMES: str = "content-type, accept"
    FETCH_ALLOWED_PASSTHROUGH_HEADER_NAMES: str = ""
    FETCH_TIMEOUT_SEC: float = Field(30, gt=0)
    FETCH_MAX_RESPONSE_KB: int = Field(100, gt=0)

    # HTTP MCP transport
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_HTTP_PORT: int = 3000
    MCP_HTTP_PATH: str = "/mcp"

    # Security: allowed origins (DNS rebinding guard)
    MCP_HTTP_ALLOWED_ORIGINS: str = "http://localhost, http://127.0.0.1"
    MCP_HTTP_ALLOW_NO_ORIGIN: bool = True            # allow non-browser clients

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("FETCH_ALLOWED_URL_REGEX")
    @classmethod
    def _regex_compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid URL regex: {e}") from e
        return v


def _csv_set(raw: str, *, upper: bool = False) -> FrozenSet[str]:
    items = (x.strip() for x in raw.split(","))
    return frozenset(x.upper() if upper else x.lower() for x in items if x)


@dataclass(frozen=True)
class FetchConfig:
    """
    Immutable fetch policy, built once at startup and passed explicitly
    into every pipeline stage.
    """
    secret: str
    allowed_url_regex: Pattern[str]
    allowed_methods: FrozenSet[str]
    allowed_tool_header_names: FrozenSet[str]
    allowed_passthrough_header_names: FrozenSet[str]
    fetch_timeout: float = 30
    fetch_max_response_size: int = 100  # KB
    port: int = 3000

    @property
    def max_bytes(self) -> int:
        return self.fetch_max_response_size * 1024


def load_fetch_config(s: Settings) -> FetchConfig:
    return FetchConfig(
        secret=s.FETCH_SECRET or secrets.token_hex(32),
        allowed_url_regex=re.compile(s.FETCH_ALLOWED_URL_REGEX),
        allowed_methods=_csv_set(s.FETCH_ALLOWED_METHODS, upper=True),
        allowed_tool_header_names=_csv_set(s.FETCH_ALLOWED_TOOL_HEADER_NAMES),
        allowed_passthrough_header_names=_csv_set(s.FETCH_ALLOWED_PASSTHROUGH_HEADER_NAMES),
        fetch_timeout=s.FETCH_TIMEOUT_SEC,
        fetch_max_response_size=s.FETCH_MAX_RESPONSE_KB,
        port=s.MCP_HTTP_PORT,
    )
