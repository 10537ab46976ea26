# server/http_app.py
from __future__ import annotations

import hmac
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import FetchConfig, Settings
from app.di import Container

from server.registry import (
    CallContext,
    build_tool_registry,
    dispatch_tool_call,
    list_tools_payload,
)

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"  # MCP protocol revision
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
SERVER_NAME = "fetch-mcp"
SERVER_VERSION = "0.1.0"

SECRET_HEADER = "x-webfetchmcp-secret"


# ---------- Security: Origin validation & shared secret ----------

def _origin_allowed(req: Request, settings: Settings) -> bool:
    origin = req.headers.get("origin")
    if not origin:
        return settings.MCP_HTTP_ALLOW_NO_ORIGIN
    allowed = {o.strip().lower() for o in settings.MCP_HTTP_ALLOWED_ORIGINS.split(",") if o.strip()}
    return origin.lower() in allowed


def is_authenticated(provided: str | None, config: FetchConfig) -> bool:
    # Exact match only; a missing header never matches
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), config.secret.encode("utf-8"))


def _auth_error() -> JSONResponse:
    return JSONResponse(
        {
            "jsonrpc": "2.0",
            "error": {
                "code": -32000,
                "message": "Authentication failed: Invalid or missing X-WebFetchMcp-Secret header",
            },
            "id": None,
        },
        status_code=401,
    )


def _jsonrpc_error(id_: Any, code: int, message: str, data: Any | None = None) -> JSONResponse:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "error": {"code": code, "message": message}}
    if data is not None:
        body["error"]["data"] = data
    return JSONResponse(body)

def _jsonrpc_result(id_: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": id_, "result": result})


def _call_context(request: Request) -> CallContext:
    # Keep every value of repeated headers; the header filter joins them
    headers = {name: request.headers.getlist(name) for name in set(request.headers.keys())}
    client_ip = request.client.host if request.client else "-"
    return CallContext(headers=headers, client_ip=client_ip)


def create_app(container: Container) -> FastAPI:
    """
    Build the MCP HTTP host around an already-built container.
    Protocol handling lives here; policy and fetching live in app.services.
    """
    settings = container.settings
    config = container.config
    registry = build_tool_registry(container)

    app = FastAPI(title="fetch-mcp", version=SERVER_VERSION)

    @app.middleware("http")
    async def secret_auth_mw(request: Request, call_next):
        # Rejected before any tool logic runs
        if not is_authenticated(request.headers.get(SECRET_HEADER), config):
            logger.warning("rejected unauthenticated request from %s",
                           request.client.host if request.client else "-")
            return _auth_error()
        return await call_next(request)

    @app.middleware("http")
    async def origin_validation_mw(request: Request, call_next):
        # MCP spec requires Origin validation to prevent DNS rebinding
        # If provided and not allowed → 403
        if not _origin_allowed(request, settings):
            return JSONResponse({"error": {"code": 403, "message": "Forbidden origin"}}, status_code=403)
        return await call_next(request)

    # ---------- MCP JSON-RPC endpoint (Streamable HTTP, JSON responses) ----------

    @app.post(settings.MCP_HTTP_PATH)
    async def mcp_endpoint(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            return _jsonrpc_error(None, -32700, "Parse error")

        if not isinstance(payload, dict):
            return _jsonrpc_error(None, -32600, "Invalid Request")

        if "id" not in payload:
            # Notifications (e.g. notifications/initialized) get no body
            return Response(status_code=202)

        id_ = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            return _jsonrpc_error(id_, -32602, "Invalid params")

        if method == "initialize":
            requested = params.get("protocolVersion")
            version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else PROTOCOL_VERSION
            return _jsonrpc_result(id_, {
                "protocolVersion": version,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            })

        if method == "ping":
            return _jsonrpc_result(id_, {})

        if method == "tools/list":
            return _jsonrpc_result(id_, list_tools_payload(registry))

        if method == "tools/call":
            name = params.get("name")
            args = params.get("arguments") or {}
            if not isinstance(args, dict):
                return _jsonrpc_error(id_, -32602, "Invalid params")
            try:
                result = await dispatch_tool_call(registry, name, args, _call_context(request))
            except KeyError as ke:
                return _jsonrpc_error(id_, -32601, ke.args[0])
            except ValidationError as ve:
                return _jsonrpc_error(id_, -32602, "Invalid params",
                                      ve.errors(include_url=False, include_context=False))
            except Exception as e:
                logger.exception("tool %s failed", name)
                return _jsonrpc_error(id_, -32603, "Internal error", str(e))
            return _jsonrpc_result(id_, result)

        return _jsonrpc_error(id_, -32601, f"Method not found: {method}")

    return app
