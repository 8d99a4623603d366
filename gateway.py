"""Tool-call gateway: the authenticated MCP endpoint.

Every POST to /call (or /mcp) is checked against the credential broker
before the body is read. An accepted request gets its own ToolCallSession,
a fresh tool registry plus a stateless Streamable HTTP transport, which is
torn down when the request finishes. Nothing is shared between calls except
the upstream client the registry factory binds in.
"""

import logging
from typing import Callable

from fastmcp import FastMCP
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from oauth.broker import CredentialBroker

logger = logging.getLogger(__name__)

GATEWAY_PATHS = ("/call", "/mcp")

UNAUTHORIZED = -32001
INTERNAL_ERROR = -32603


def rpc_error(code: int, message: str, status_code: int, headers: dict = None) -> JSONResponse:
    """JSON-RPC error envelope for failures that happen outside the MCP session."""
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
        headers=headers,
    )


class ToolCallSession:
    """One registry and one stateless transport, alive for a single call."""

    def __init__(self, registry: FastMCP):
        self.registry = registry
        self.manager = StreamableHTTPSessionManager(
            app=registry._mcp_server,
            json_response=True,
            stateless=True,
        )

    async def dispatch(self, scope: Scope, receive: Receive, send: Send) -> None:
        # run() owns the task group; leaving it cancels the server task
        async with self.manager.run():
            await self.manager.handle_request(scope, receive, send)


class ToolCallGateway:
    """ASGI endpoint that authenticates, then relays one MCP request."""

    def __init__(
        self,
        broker: CredentialBroker,
        registry_factory: Callable[[], FastMCP],
        server_url: str,
    ):
        self.broker = broker
        self.registry_factory = registry_factory
        self.server_url = server_url
        self.active_sessions = 0

    def unauthorized(self) -> JSONResponse:
        return rpc_error(
            UNAUTHORIZED,
            "Unauthorized",
            401,
            headers={
                "WWW-Authenticate": f'Bearer resource_metadata="{self.server_url}/.well-known/oauth-protected-resource"'
            },
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        headers = Headers(scope=scope)
        if not self.broker.validate(headers.get("authorization")):
            logger.info("[AUTH] Call rejected: missing or invalid bearer token")
            await self.unauthorized()(scope, receive, send)
            return

        response_started = False

        async def tracked_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        self.active_sessions += 1
        logger.info(f"[CALL] Session opened ({self.active_sessions} active)")
        try:
            session = ToolCallSession(self.registry_factory())
            await session.dispatch(scope, receive, tracked_send)
        except Exception:
            if response_started:
                logger.exception("[CALL] Dispatch failed after the response started")
            else:
                logger.exception("[CALL] Dispatch failed")
                await rpc_error(INTERNAL_ERROR, "Internal error", 500)(scope, receive, send)
        finally:
            self.active_sessions -= 1
            logger.info(f"[CALL] Session released ({self.active_sessions} active)")


async def method_not_allowed(request: Request) -> JSONResponse:
    """Sessions are never held open, so there is nothing to stream or delete."""
    return JSONResponse(
        {
            "error": "method_not_allowed",
            "error_description": f"{request.method} is not supported; send tool calls with POST",
        },
        status_code=405,
        headers={"Allow": "POST"},
    )


def gateway_routes(gateway: ToolCallGateway) -> list[Route]:
    routes = []
    for path in GATEWAY_PATHS:
        routes.append(Route(path, endpoint=gateway, methods=["POST"]))
        routes.append(Route(path, endpoint=method_not_allowed, methods=["GET", "DELETE"]))
    return routes
