# app/services/envelope.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from app.logging import iso_now

# Reserved: no HTTP response was obtained (rejection, timeout, transport error)
NO_RESPONSE_STATUS = -1


@dataclass(frozen=True)
class TextContent:
    text: str
    mime_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": "text", "text": self.text}
        if self.mime_type:
            d["mimeType"] = self.mime_type
        return d


@dataclass(frozen=True)
class BinaryContent:
    data: str  # base64
    mime_type: str

    def to_dict(self) -> Dict[str, Any]:
        # MCP carries binary payloads as "image" content blocks
        return {"type": "image", "data": self.data, "mimeType": self.mime_type}


ContentPart = Union[TextContent, BinaryContent]


@dataclass(frozen=True)
class FetchResult:
    """
    Uniform tool result: content parts + structured metadata + error flag.
    `retrieved_at` is stamped once, when the result is built.
    """
    url: str
    status_code: int
    content: Tuple[ContentPart, ...]
    is_error: bool = False
    headers: Optional[Dict[str, str]] = None
    retrieved_at: str = field(default_factory=iso_now)

    def to_dict(self) -> Dict[str, Any]:
        structured: Dict[str, Any] = {
            "url": self.url,
            "retrievedAt": self.retrieved_at,
            "statusCode": self.status_code,
        }
        if self.headers is not None:
            structured["headers"] = dict(self.headers)
        return {
            "content": [part.to_dict() for part in self.content],
            "structuredContent": structured,
            "isError": self.is_error,
        }


def success_result(
    url: str, status_code: int, part: ContentPart, headers: Dict[str, str]
) -> FetchResult:
    return FetchResult(url=url, status_code=status_code, content=(part,), headers=headers)


def error_result(url: str, message: str) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=NO_RESPONSE_STATUS,
        content=(TextContent(message),),
        is_error=True,
    )
