"""
Unit tests for the upstream Readwise client against httpx.MockTransport.
"""

import json

import httpx
import pytest

from conftest import API_KEY
from readwise_client import ReadwiseClient, UpstreamError


async def test_get_sends_token_and_query(readwise, upstream):
    upstream.route("GET", "/api/v2/highlights/", json={"count": 0, "results": []})

    data = await readwise.v2("/highlights/", params={"page": 2, "book_id": None, "seen": True})

    assert data == {"count": 0, "results": []}
    [request] = upstream.requests
    assert request.url.host == "readwise.io"
    assert request.headers["authorization"] == f"Token {API_KEY}"
    assert dict(request.url.params) == {"page": "2", "seen": "true"}
    assert request.content == b""


async def test_v3_surface(readwise, upstream):
    await readwise.v3("/list/", params={"id": "abc"})
    assert upstream.requests[0].url.path == "/api/v3/list/"


async def test_body_is_json_and_only_for_non_get(readwise, upstream):
    upstream.route("PATCH", "/api/v3/update/abc/", json={"id": "abc"})

    await readwise.v3("/update/abc/", method="PATCH", params={"ignored": 1}, body={"title": "New"})

    [request] = upstream.requests
    assert json.loads(request.content) == {"title": "New"}
    assert "ignored" not in request.url.params


async def test_get_never_sends_a_body(readwise, upstream):
    await readwise.v3("/list/", body={"ignored": True})
    assert upstream.requests[0].content == b""


async def test_no_content_is_success(readwise, upstream):
    upstream.route("DELETE", "/api/v3/delete/abc/", status=204)
    assert await readwise.v3("/delete/abc/", method="DELETE") == {"success": True}


async def test_error_status_raises(readwise, upstream):
    upstream.route("GET", "/api/v2/books/1/", status=404, json={"detail": "Not found."})

    with pytest.raises(UpstreamError) as exc_info:
        await readwise.v2("/books/1/")

    error = exc_info.value
    assert error.surface == "v2"
    assert error.status == 404
    assert str(error).startswith("Readwise v2 API error: 404 ")
    assert "Not found." in error.body


async def test_server_error_raises(readwise, upstream):
    upstream.route("POST", "/api/v3/save/", status=500, handler=lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(UpstreamError) as exc_info:
        await readwise.v3("/save/", method="POST", body={"url": "https://example.com"})
    assert str(exc_info.value) == "Readwise v3 API error: 500 boom"


async def test_transport_failure_has_no_status():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = ReadwiseClient(API_KEY, transport=httpx.MockTransport(refuse))
    try:
        with pytest.raises(UpstreamError) as exc_info:
            await client.v2("/review/")
    finally:
        await client.aclose()

    assert exc_info.value.status is None
    assert "connection refused" in str(exc_info.value)


async def test_unknown_surface(readwise):
    with pytest.raises(ValueError):
        await readwise.call("v4", "/list/")
