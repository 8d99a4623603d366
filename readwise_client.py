"""Async client for the Readwise REST API.

Readwise exposes two surfaces: v2 (highlights, books, review, export) and
v3 (the Reader document API). Both take the same token header and speak JSON,
so one client serves both; ``call()`` picks the base URL by surface name.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SURFACES = {
    "v2": "https://readwise.io/api/v2",
    "v3": "https://readwise.io/api/v3",
}

DEFAULT_TIMEOUT = 30.0


class UpstreamError(Exception):
    """Readwise answered with a non-success status (or could not be reached).

    Attributes:
        surface: "v2" or "v3"
        status: HTTP status code, None when the request never got a response
        body: Response body text (or the transport error description)
    """

    def __init__(self, surface: str, status: int | None, body: str):
        self.surface = surface
        self.status = status
        self.body = body
        detail = status if status is not None else "request failed:"
        super().__init__(f"Readwise {surface} API error: {detail} {body}")


class ReadwiseClient:
    """One authenticated request per call, no retries."""

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self._http = httpx.AsyncClient(
            headers={
                "Authorization": f"Token {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def call(
        self,
        surface: str,
        path: str,
        method: str = "GET",
        params: dict = None,
        body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON payload.

        Query parameters are only sent with GET requests and None values are
        dropped; the JSON body is only sent with non-GET requests. A 204 is
        reported as ``{"success": True}``.
        """
        if surface not in SURFACES:
            raise ValueError(f"Unknown Readwise API surface: {surface}")

        method = method.upper()
        url = f"{SURFACES[surface]}{path}"
        query = None
        if method == "GET" and params:
            query = {k: _query_value(v) for k, v in params.items() if v is not None}

        kwargs = {}
        if body is not None and method != "GET":
            kwargs["json"] = body

        logger.debug(f"[UPSTREAM] {method} {surface}{path}")
        try:
            response = await self._http.request(method, url, params=query, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"[UPSTREAM] {method} {surface}{path} failed: {e!r}")
            raise UpstreamError(surface, None, str(e) or type(e).__name__) from e

        if response.status_code == 204:
            return {"success": True}
        if not response.is_success:
            logger.info(f"[UPSTREAM] {method} {surface}{path} -> {response.status_code}")
            raise UpstreamError(surface, response.status_code, response.text)

        return response.json()

    async def v2(self, path: str, **kwargs) -> Any:
        return await self.call("v2", path, **kwargs)

    async def v3(self, path: str, **kwargs) -> Any:
        return await self.call("v3", path, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()


def _query_value(value: Any) -> str:
    # JSON-style booleans, matching what the API documents
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
