"""
Shared test fixtures for the Readwise MCP server test suite.

Key fixtures:
- clock / store / broker: a CredentialBroker on a fake clock, so expiry is
  tested by moving time instead of sleeping
- upstream: a fake Readwise API behind httpx.MockTransport that records
  every request and answers from a small route table
- readwise: a ReadwiseClient wired to the fake API
- registry: a fresh tool registry bound to that client
- make_app / http: the FastAPI app and an httpx.AsyncClient talking to it
  in-memory (httpx.ASGITransport, no server process)

Tool handlers are exercised in-memory through fastmcp.Client (see
call_tool below); the HTTP gateway is exercised through `http`.
"""

import httpx
import pytest
from fastmcp import Client

from config import Config
from main import create_app
from oauth.broker import CredentialBroker
from oauth.stores import CredentialStore
from readwise_client import ReadwiseClient
from tools import create_tool_registry

CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
REDIRECT_URI = "https://client.example/callback"
API_KEY = "rw-test-key"


# ---------------------------------------------------------------------------
# Credential broker
# ---------------------------------------------------------------------------
class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return CredentialStore(clock=clock)


@pytest.fixture
def broker(store):
    return CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store)


@pytest.fixture
def issue_token(broker):
    """Factory: run the code exchange and return the token response body."""

    def _issue_token() -> dict:
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        return broker.exchange(CLIENT_ID, CLIENT_SECRET, "authorization_code", code=entry.code)

    return _issue_token


@pytest.fixture
def auth_header(issue_token):
    return f"Bearer {issue_token()['access_token']}"


# ---------------------------------------------------------------------------
# Fake Readwise API
# ---------------------------------------------------------------------------
class FakeReadwise:
    """Answers Readwise requests from a route table and records them.

    Routes are keyed by (method, path), with path the full URL path such as
    "/api/v3/list/". A route is either a (status, json) pair or a callable
    taking the httpx.Request. Unrouted requests get 200 {"results": []}.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes = {}

    def route(self, method: str, path: str, status: int = 200, json=None, handler=None):
        self.routes[(method, path)] = handler or (status, json)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(200, json={"results": []})
        if callable(answer):
            return answer(request)
        status, body = answer
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def sent(self, method: str = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]


@pytest.fixture
def upstream():
    return FakeReadwise()


@pytest.fixture
async def readwise(upstream):
    client = ReadwiseClient(API_KEY, transport=httpx.MockTransport(upstream))
    yield client
    await client.aclose()


@pytest.fixture
def registry(readwise):
    return create_tool_registry(readwise)


async def call_tool(registry, name: str, **arguments):
    """Call a tool in-memory and return the raw MCP CallToolResult."""
    async with Client(registry) as client:
        return await client.call_tool_mcp(name, arguments)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
@pytest.fixture
def config():
    return Config({
        "READWISE_API_KEY": API_KEY,
        "OAUTH_CLIENT_ID": CLIENT_ID,
        "OAUTH_CLIENT_SECRET": CLIENT_SECRET,
        "SERVER_URL": "http://testserver",
    })


@pytest.fixture
def make_app(config, broker, readwise):
    """Factory: the app with the test broker and client, optionally a custom registry factory."""

    def _make_app(registry_factory=None):
        return create_app(config=config, broker=broker, client=readwise, registry_factory=registry_factory)

    return _make_app


@pytest.fixture
async def make_http():
    """Factory: an httpx.AsyncClient bound in-memory to the given app."""
    clients = []

    def _make_http(app) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        clients.append(client)
        return client

    yield _make_http

    for client in clients:
        await client.aclose()


@pytest.fixture
async def http(make_app, make_http):
    return make_http(make_app())
