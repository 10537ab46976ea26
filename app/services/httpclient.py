# app/services/httpclient.py
import asyncio
import base64
import codecs
import logging
from typing import Dict, Optional, Tuple

import httpx

from app.config import FetchConfig
from app.logging import log_access
from app.services.envelope import (
    NO_RESPONSE_STATUS,
    BinaryContent,
    ContentPart,
    FetchResult,
    TextContent,
    error_result,
    success_result,
)

logger = logging.getLogger(__name__)


def is_text_media_type(content_type: str) -> bool:
    """
    Text path: text/*, or anything mentioning json or xml.
    image/* and application/pdf are always binary, as is anything unrecognised.
    """
    ct = content_type.lower()
    if ct.startswith("image/") or ct.startswith("application/pdf"):
        return False
    return ct.startswith("text/") or "json" in ct or "xml" in ct


def _codec_name(charset: Optional[str]) -> str:
    if charset:
        try:
            return codecs.lookup(charset).name
        except LookupError:
            pass
    return "utf-8"


class FetchExecutor:
    """
    Bounded HTTP client for the web_fetch tool:
    - One deadline (config.fetch_timeout) covering connect, send and read.
    - Body streamed and capped at config.max_bytes.
    - Deterministic truncation with a visible marker.
    - One access-log line per call.
    """

    def __init__(self, config: FetchConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.max_bytes = config.max_bytes
        self._transport = transport

    def _marker(self) -> str:
        return f"\n(... truncated after {self.config.fetch_max_response_size}KB)"

    async def execute(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Optional[str] = None,
        client_ip: str = "-",
    ) -> FetchResult:
        method = method.upper()
        try:
            result, size = await asyncio.wait_for(
                self._fetch(url, method, headers, body),
                timeout=self.config.fetch_timeout,
            )
        except asyncio.TimeoutError:
            message = f"Request timeout after {self.config.fetch_timeout:g}s"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = f"Failed to fetch URL: {str(e) or type(e).__name__}"
        except Exception as e:
            # e.g. a header value httpx cannot encode; still a tool-level failure
            logger.exception("unexpected fetch error %s %s", method, url)
            message = f"Failed to fetch URL: {str(e) or type(e).__name__}"
        else:
            log_access(url, method, result.status_code, size, client_ip)
            return result

        logger.warning("fetch failed %s %s: %s", method, url, message)
        log_access(url, method, NO_RESPONSE_STATUS, 0, client_ip)
        return error_result(url, message)

    async def _fetch(
        self, url: str, method: str, headers: Dict[str, str], body: Optional[str]
    ) -> Tuple[FetchResult, int]:
        # The deadline is owned by execute(); httpx's own timeouts are off
        async with httpx.AsyncClient(
            transport=self._transport, timeout=None, follow_redirects=False
        ) as client:
            async with client.stream(method, url, headers=headers, content=body) as resp:
                data, truncated = await self._read_capped(resp)
                content_type = resp.headers.get("content-type", "")
                if is_text_media_type(content_type):
                    part = self._text_part(data, truncated, resp.charset_encoding, content_type)
                else:
                    part = self._binary_part(data, truncated, content_type)
                result = success_result(
                    url,
                    resp.status_code,
                    part,
                    {k.lower(): v for k, v in resp.headers.items()},
                )
                # logged size is what was kept, never past the cap
                return result, min(len(data), self.max_bytes)

    async def _read_capped(self, resp: httpx.Response) -> Tuple[bytes, bool]:
        """Read until EOF or until more than max_bytes are buffered."""
        buf = bytearray()
        async for chunk in resp.aiter_bytes():
            buf.extend(chunk)
            if len(buf) > self.max_bytes:
                return bytes(buf), True
        return bytes(buf), False

    def _text_part(
        self, data: bytes, truncated: bool, charset: Optional[str], content_type: str
    ) -> ContentPart:
        encoding = _codec_name(charset)
        if not truncated:
            text = data.decode(encoding, errors="replace")
        else:
            # final=False drops a multi-byte character cut at the boundary
            decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
            text = decoder.decode(data[: self.max_bytes], final=False) + self._marker()
        return TextContent(text, content_type or "text/plain")

    def _binary_part(self, data: bytes, truncated: bool, content_type: str) -> ContentPart:
        if not truncated:
            payload = base64.b64encode(data).decode("ascii")
        else:
            # NOTE: the marker is appended to the base64 text, so a truncated
            # payload no longer decodes cleanly. Kept for wire compatibility.
            payload = base64.b64encode(data[: self.max_bytes]).decode("ascii") + self._marker()
        return BinaryContent(payload, content_type or "application/octet-stream")
