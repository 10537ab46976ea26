# app/services/policy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from app.config import FetchConfig

HeaderValue = Union[str, Sequence[str]]


@dataclass(frozen=True)
class Rejection:
    """Terminal outcome of a validation stage; carries the caller-facing message."""
    message: str


def check_url(url: str, method: str, config: FetchConfig) -> Optional[Rejection]:
    # Matched against the full URL string, not the host alone
    pattern = config.allowed_url_regex
    if pattern.search(url) is None:
        return Rejection(
            f"URL not allowed: {url} does not match allowed regex {pattern.pattern}"
        )
    return None


def check_method(url: str, method: str, config: FetchConfig) -> Optional[Rejection]:
    if method.upper() not in config.allowed_methods:
        allowed = ", ".join(sorted(config.allowed_methods))
        return Rejection(f"Method not allowed: {method}. Allowed methods: {allowed}")
    return None


# Order matters: a request failing both reports the URL violation
CHECKS = (check_url, check_method)


def validate_request(url: str, method: str, config: FetchConfig) -> Optional[Rejection]:
    for check in CHECKS:
        rejection = check(url, method, config)
        if rejection is not None:
            return rejection
    return None


def merge_headers(
    tool_headers: Optional[Mapping[str, str]],
    passthrough_headers: Optional[Mapping[str, HeaderValue]],
    config: FetchConfig,
) -> Dict[str, str]:
    """
    Merge transport (passthrough) headers with caller-declared (tool) headers.

    Each side is filtered by its own lowercase allow-set; tool headers are
    applied last and replace a passthrough header of the same name regardless
    of case. Original name casing is kept for forwarding. Names outside both
    allow-sets are dropped silently.
    """
    merged: Dict[str, Tuple[str, str]] = {}

    for name, value in (passthrough_headers or {}).items():
        if name.lower() not in config.allowed_passthrough_header_names:
            continue
        if not isinstance(value, str):
            value = ", ".join(value)
        merged[name.lower()] = (name, value)

    for name, value in (tool_headers or {}).items():
        if name.lower() in config.allowed_tool_header_names:
            merged[name.lower()] = (name, value)

    return dict(merged.values())
