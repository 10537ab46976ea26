# server/registry.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Type
from pydantic import BaseModel

from app.di import Container
from app.logging import log_tool_call
from app.services.policy import HeaderValue

from server.tools.http_fetch import FetchIn, WEB_FETCH_DESCRIPTION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Transport-side facts about one tools/call request."""
    headers: Dict[str, HeaderValue] = field(default_factory=dict)
    client_ip: str = "-"


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel, CallContext], Awaitable[Any]]


class ToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Keeps all cross-cutting logic and observability in one place.
    """
    def __init__(self, container: Container):
        self.container = container

    # ---- Web fetch
    async def web_fetch(self, args: FetchIn, ctx: CallContext) -> dict:
        result = await self.container.fetch_service.fetch(
            args.url,
            args.method,
            args.headers,
            args.body,
            passthrough_headers=ctx.headers,
            client_ip=ctx.client_ip,
        )
        return result.to_dict()


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(container: Container) -> Dict[str, ToolSpec]:
    """
    Build a registry once at startup from the DI container.
    The transport reads from this registry to expose tools.
    """
    handlers = ToolHandlers(container)

    return {
        "web_fetch": ToolSpec(
            name="web_fetch",
            description=WEB_FETCH_DESCRIPTION,
            input_model=FetchIn,
            handler=handlers.web_fetch,
        ),
    }


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body for MCP clients.
    """
    tools: List[Dict[str, Any]] = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


async def dispatch_tool_call(
    registry: Dict[str, ToolSpec], name: str, arguments: Dict[str, Any], ctx: CallContext
) -> Any:
    """
    Validate args with the tool's Pydantic model, then invoke the named handler.
    Raises KeyError for unknown tools and pydantic.ValidationError for bad args.
    """
    if name not in registry:
        raise KeyError(f"Tool not found: {name}")
    spec = registry[name]
    args_obj = spec.input_model(**arguments)
    log_tool_call(logger, name, args_obj.model_dump(exclude_none=True))
    return await spec.handler(args_obj, ctx)
