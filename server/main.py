# server/main.py
import argparse
import logging
from typing import Any, Dict, List, Optional

import uvicorn

from app.config import Settings
from app.di import Container, build_container
from app.logging import configure_logging
from server.http_app import create_app

logger = logging.getLogger("fetch_mcp")

# CLI flag -> Settings field; flags override environment and .env
FLAG_FIELDS = {
    "secret": "FETCH_SECRET",
    "allowed_url_regex": "FETCH_ALLOWED_URL_REGEX",
    "allowed_methods": "FETCH_ALLOWED_METHODS",
    "allowed_tool_header_names": "FETCH_ALLOWED_TOOL_HEADER_NAMES",
    "allowed_passthrough_header_names": "FETCH_ALLOWED_PASSTHROUGH_HEADER_NAMES",
    "fetch_timeout": "FETCH_TIMEOUT_SEC",
    "fetch_max_response_size": "FETCH_MAX_RESPONSE_KB",
    "host": "MCP_HTTP_HOST",
    "port": "MCP_HTTP_PORT",
    "log_level": "LOG_LEVEL",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fetch-mcp",
        description="MCP server exposing a policy-constrained web_fetch tool",
    )
    parser.add_argument("--secret", help="Shared secret clients send in X-WebFetchMcp-Secret (random if omitted)")
    parser.add_argument("--allowed-url-regex", help="Regex the full target URL must match")
    parser.add_argument("--allowed-methods", help="Comma-separated HTTP methods, e.g. GET,POST")
    parser.add_argument("--allowed-tool-header-names", help="Comma-separated header names callers may set")
    parser.add_argument("--allowed-passthrough-header-names",
                        help="Comma-separated inbound request headers forwarded to the target")
    parser.add_argument("--fetch-timeout", type=float, help="Per-fetch timeout in seconds")
    parser.add_argument("--fetch-max-response-size", type=int, help="Response cap in KB")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Listen port")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser


def settings_from_args(argv: Optional[List[str]] = None) -> Settings:
    args = build_parser().parse_args(argv)
    overrides: Dict[str, Any] = {
        field: getattr(args, dest)
        for dest, field in FLAG_FIELDS.items()
        if getattr(args, dest) is not None
    }
    return Settings(**overrides)


def log_startup(container: Container) -> None:
    c = container.config
    logger.info("Server starting...")
    logger.info("Secret: %s", c.secret)
    logger.info("Allowed URL regex: %s", c.allowed_url_regex.pattern)
    logger.info("Allowed methods: %s", ", ".join(sorted(c.allowed_methods)))
    logger.info("Allowed tool headers: %s", ", ".join(sorted(c.allowed_tool_header_names)))
    logger.info("Allowed passthrough headers: %s",
                ", ".join(sorted(c.allowed_passthrough_header_names)) or "(none)")
    logger.info("Fetch timeout: %gs", c.fetch_timeout)
    logger.info("Max response size: %dKB", c.fetch_max_response_size)


def main(argv: Optional[List[str]] = None) -> None:
    settings = settings_from_args(argv)
    configure_logging(settings.LOG_LEVEL)

    container = build_container(settings)
    log_startup(container)
    app = create_app(container)

    logger.info("MCP endpoint: http://%s:%d%s",
                settings.MCP_HTTP_HOST, settings.MCP_HTTP_PORT, settings.MCP_HTTP_PATH)
    uvicorn.run(
        app,
        host=settings.MCP_HTTP_HOST,
        port=settings.MCP_HTTP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
