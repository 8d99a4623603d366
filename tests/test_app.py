"""Tests for application assembly: config checks, info endpoints, CORS."""

import pytest

from config import Config
from main import VERSION, create_app


def test_missing_config_refuses_to_start():
    with pytest.raises(RuntimeError, match="READWISE_API_KEY"):
        create_app(config=Config({"OAUTH_CLIENT_ID": "id", "OAUTH_CLIENT_SECRET": "secret"}))


async def test_health(http):
    response = await http.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "server": "readwise-mcp-server",
        "version": VERSION,
        "tools": 35,
        "auth": "oauth2",
        "transport": "streamable-http",
    }


async def test_root_lists_endpoints(http):
    body = (await http.get("/")).json()

    assert body["endpoints"]["call"] == "/call"
    assert len(body["tools"]) == 35
    assert body["oauth"]["authorization_server"] == "http://testserver/.well-known/oauth-authorization-server"


async def test_cors_preflight(http):
    response = await http.options("/call", headers={
        "Origin": "https://claude.example",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "Authorization, Mcp-Session-Id",
    })

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
