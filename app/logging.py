# app/logging.py
import json
import logging
import sys
import re
from datetime import datetime, timezone
from typing import Any, Dict
from urllib.parse import urlsplit

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction

ACCESS_LOGGER_NAME = "fetch_mcp.access"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Access lines are written bare (CLF), never through the root format
    access = logging.getLogger(ACCESS_LOGGER_NAME)
    if not access.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        access.addHandler(handler)
    access.setLevel(logging.INFO)
    access.propagate = False


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def redact_str(s: str) -> str:
    return PII_RE.sub("[redacted-email]", s)


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args))  # deep copy via JSON
    for k, v in list(safe.items()):
        if isinstance(v, str):
            safe[k] = redact_str(v)
        elif k == "headers" and isinstance(v, dict):
            # header values may carry credentials
            safe[k] = {name: "***" for name in v}
    return safe


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, redact_args(args))


def format_access_line(
    url: str,
    method: str,
    status_code: int,
    size: int,
    client_ip: str = "-",
    *,
    timestamp: str | None = None,
) -> str:
    """
    Common Log Format line for one fetch attempt:
      <client-ip> - - [<ts>] "<METHOD> <host><path?query> HTTP/1.1" <status> <bytes>
    Host and path come from the fetched URL, not the inbound transport URL.
    """
    u = urlsplit(url)
    host = u.netloc.rpartition("@")[2]
    path = u.path or ("/" if host else "")
    if u.query:
        path += "?" + u.query
    ts = timestamp or iso_now()
    return f'{client_ip} - - [{ts}] "{method} {host}{path} HTTP/1.1" {status_code} {size}'


def log_access(url: str, method: str, status_code: int, size: int, client_ip: str = "-"):
    logging.getLogger(ACCESS_LOGGER_NAME).info(
        format_access_line(url, method, status_code, size, client_ip)
    )
