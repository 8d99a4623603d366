"""Readwise MCP Server - FastAPI application.

It serves:
- The Readwise tools (via tools.py) behind an authenticated MCP endpoint
  (/call, also /mcp), one fresh registry per call
- The OAuth handshake MCP clients use to get a bearer token (via oauth/)
- Health and server info endpoints

There is no module-level app; uvicorn builds one with the factory:

    uvicorn main:create_app --factory
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastmcp import FastMCP

from config import Config, load_config
from gateway import ToolCallGateway, gateway_routes
from logging_config import setup_logging
from oauth.broker import CredentialBroker
from oauth.endpoints import router as oauth_router
from readwise_client import ReadwiseClient
from tools import SERVER_NAME, create_tool_registry, tool_names

logger = logging.getLogger(__name__)

VERSION = "2.1.0"
TRANSPORT = "streamable-http"


def create_app(
    config: Config = None,
    broker: CredentialBroker = None,
    client: ReadwiseClient = None,
    registry_factory: Callable[[], FastMCP] = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Settings; loaded from the environment when omitted.
        broker: Credential broker; built from ``config`` when omitted.
        client: Upstream Readwise client; built from ``config`` when omitted.
        registry_factory: Zero-argument callable returning a fresh tool
            registry per call; defaults to the full Readwise tool set.

    Raises:
        RuntimeError: a required setting is missing.
    """
    if config is None:
        config = load_config()
        setup_logging(level=config.log_level, json_output=config.log_json, service=SERVER_NAME)

    if not config.is_valid():
        raise RuntimeError(f"Missing required configuration: {', '.join(config.missing())}")

    if broker is None:
        broker = CredentialBroker(
            client_id=config.client_id,
            client_secret=config.client_secret,
            sweep_interval=config.sweep_interval,
            bind_refresh_tokens=config.bind_refresh_tokens,
        )
    if client is None:
        client = ReadwiseClient(config.readwise_api_key, timeout=config.upstream_timeout)
    if registry_factory is None:
        def registry_factory():
            return create_tool_registry(client)

    server_url = config.server_url
    gateway = ToolCallGateway(broker, registry_factory, server_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[STARTUP] {SERVER_NAME} {VERSION} serving {server_url}")
        broker.start()
        try:
            yield
        finally:
            await broker.stop()
            await client.aclose()
            logger.info("[STARTUP] Shutdown complete")

    app = FastAPI(
        title="Readwise MCP Server",
        description="Readwise and Reader tools over MCP, behind a local OAuth handshake",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.broker = broker
    app.state.client = client
    app.state.server_url = server_url
    app.state.gateway = gateway

    # CORS for browser-based MCP clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Mcp-Session-Id"],
        expose_headers=["Mcp-Session-Id"],
    )

    # ============== Routes ==============

    app.include_router(oauth_router)
    app.router.routes.extend(gateway_routes(gateway))

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": VERSION,
            "tools": len(tool_names()),
            "auth": "oauth2",
            "transport": TRANSPORT,
        }

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        return {
            "name": SERVER_NAME,
            "version": VERSION,
            "transport": TRANSPORT,
            "endpoints": {
                "call": "/call",
                "mcp": "/mcp",
                "authorize": "/authorize",
                "token": "/token",
                "health": "/health",
            },
            "tools": tool_names(),
            "oauth": {
                "protected_resource": f"{server_url}/.well-known/oauth-protected-resource",
                "authorization_server": f"{server_url}/.well-known/oauth-authorization-server",
            },
        }

    logger.info(f"[STARTUP] App created (OAuth client: {config.client_id})")
    return app
