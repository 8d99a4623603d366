"""OAuth 2.0 endpoints for MCP client authentication.

This module contains the OAuth-related endpoints:
- Discovery metadata (/.well-known/*)
- Authorization (/authorize)
- Token endpoint (/token)

The broker and the public server URL are read from ``app.state``, where the
app factory puts them.
"""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse

from oauth.broker import CredentialBroker, OAuthError

logger = logging.getLogger(__name__)

# Router for OAuth endpoints
router = APIRouter(tags=["oauth"])

TOKEN_FIELDS = ("grant_type", "code", "redirect_uri", "client_id", "client_secret", "refresh_token")


def get_broker(request: Request) -> CredentialBroker:
    return request.app.state.broker


def get_server_url(request: Request) -> str:
    return request.app.state.server_url


def error_response(error: str, description: str = "", status_code: int = 400) -> JSONResponse:
    body = {"error": error}
    if description:
        body["error_description"] = description
    return JSONResponse(body, status_code=status_code)


def with_query(url: str, params: dict) -> str:
    """Set params in the query of url, replacing same-named ones and keeping the fragment."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


# ============== OAuth 2.0 Discovery Endpoints ==============

@router.get("/.well-known/oauth-protected-resource")
async def oauth_protected_resource(server_url: str = Depends(get_server_url)):
    """OAuth 2.0 Protected Resource Metadata (RFC 9728)."""
    return {
        "resource": server_url,
        "authorization_servers": [server_url],
        "bearer_methods_supported": ["header"],
    }


@router.get("/.well-known/oauth-authorization-server")
async def oauth_authorization_server(server_url: str = Depends(get_server_url)):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return {
        "issuer": server_url,
        "authorization_endpoint": f"{server_url}/authorize",
        "token_endpoint": f"{server_url}/token",
        "response_types_supported": ["code"],
        "response_modes_supported": ["query"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "token_endpoint_auth_methods_supported": ["client_secret_post"],
    }


# ============== Authorization ==============

@router.get("/authorize")
async def authorize(
    response_type: str = "code",
    client_id: str = "",
    redirect_uri: str = "",
    state: str = "",
    broker: CredentialBroker = Depends(get_broker),
):
    """OAuth 2.0 Authorization Endpoint - redirects straight back with a code."""
    if response_type != "code":
        return error_response("unsupported_response_type")
    if not redirect_uri:
        return error_response("invalid_request", "redirect_uri is required")

    try:
        entry = broker.issue_authorization_code(client_id, redirect_uri)
    except OAuthError as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    params = {"code": entry.code}
    if state:
        params["state"] = state
    return RedirectResponse(url=with_query(redirect_uri, params), status_code=302)


# ============== Token Endpoint ==============

@router.post("/token")
async def token(
    request: Request,
    grant_type: str = Form(None),
    code: str = Form(None),
    redirect_uri: str = Form(None),
    client_id: str = Form(None),
    client_secret: str = Form(None),
    refresh_token: str = Form(None),
    broker: CredentialBroker = Depends(get_broker),
):
    """OAuth 2.0 Token Endpoint."""
    # Handle form data or JSON
    if grant_type is None:
        try:
            data = await request.json()
        except ValueError:
            return error_response("invalid_request", "Body must be form-encoded or JSON")
        if not isinstance(data, dict):
            return error_response("invalid_request", "Body must be a JSON object")
        wrong_type = [k for k in TOKEN_FIELDS if data.get(k) is not None and not isinstance(data[k], str)]
        if wrong_type:
            return error_response("invalid_request", f"Fields must be strings: {', '.join(wrong_type)}")
        grant_type = data.get("grant_type")
        code = data.get("code")
        redirect_uri = data.get("redirect_uri")
        client_id = data.get("client_id")
        client_secret = data.get("client_secret")
        refresh_token = data.get("refresh_token")

    logger.debug(f"[TOKEN] grant_type: {grant_type}, client_id: {client_id}")

    try:
        body = broker.exchange(
            client_id=client_id,
            client_secret=client_secret,
            grant_type=grant_type,
            code=code,
            refresh_token=refresh_token,
            redirect_uri=redirect_uri,
        )
    except OAuthError as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    return JSONResponse(body, headers={"Cache-Control": "no-store"})
