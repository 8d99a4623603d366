"""Helpers shared by the Readwise tool handlers."""

import json
import logging
from typing import Any, Awaitable, Callable, Iterable, Literal

from fastmcp import Context
from fastmcp.exceptions import ToolError

from readwise_client import ReadwiseClient, UpstreamError

logger = logging.getLogger(__name__)

# Reader document locations; "shortlist" can be filtered on but not saved to
Location = Literal["new", "later", "shortlist", "archive", "feed"]
SaveLocation = Literal["new", "later", "archive", "feed"]
DocumentCategory = Literal["article", "email", "rss", "highlight", "note", "pdf", "epub", "tweet", "video"]
HighlightColor = Literal["yellow", "blue", "pink", "orange", "green", "purple"]


class ToolCalls:
    """
    Upstream calls made from inside a tool.

    The registry masks unexpected handler errors, so an UpstreamError is
    re-raised as a ToolError to keep the Readwise status and body visible
    to the caller.
    """

    def __init__(self, client: ReadwiseClient):
        self.client = client

    async def call(self, surface: str, path: str, **kwargs) -> Any:
        try:
            return await self.client.call(surface, path, **kwargs)
        except UpstreamError as e:
            raise ToolError(str(e)) from e

    async def v2(self, path: str, **kwargs) -> Any:
        return await self.call("v2", path, **kwargs)

    async def v3(self, path: str, **kwargs) -> Any:
        return await self.call("v3", path, **kwargs)


def client_for(ctx: Context) -> ToolCalls:
    """The upstream client of the registry serving this call."""
    return ToolCalls(ctx.fastmcp.client)


def to_text(data: Any) -> str:
    return json.dumps(data, indent=2)


def compact(**params: Any) -> dict:
    """Keyword arguments minus the ones left as None."""
    return {k: v for k, v in params.items() if v is not None}


async def fetch_document(client: ToolCalls, document_id: str) -> dict | None:
    """Single Reader document by id (the v3 API only lists, so filter by id)."""
    data = await client.v3("/list/", params={"id": document_id})
    results = data.get("results") or []
    return results[0] if results else None


def merge_tags(current: Iterable[str], added: Iterable[str]) -> list[str]:
    """Union that keeps first-seen order."""
    return list(dict.fromkeys([*current, *added]))


def tag_names(tags: Any) -> list[str]:
    """Reader returns tags as a {name: {...}} mapping; accept plain lists too."""
    if not tags:
        return []
    if isinstance(tags, dict):
        return list(tags.keys())
    return [t["name"] if isinstance(t, dict) else t for t in tags]


async def run_bulk(
    items: Iterable[Any],
    key: str,
    key_of: Callable[[Any], Any],
    operation: Callable[[Any], Awaitable[Any]],
    include_data: bool = True,
) -> list[dict]:
    """Apply ``operation`` to each item in turn, never stopping on a failure.

    Every item yields exactly one result: ``{key: ..., "success": True, "data": ...}``
    or ``{key: ..., "success": False, "error": "..."}``.
    """
    results = []
    for item in items:
        item_key = key_of(item)
        try:
            data = await operation(item)
        except Exception as e:
            logger.warning(f"[BULK] {key}={item_key} failed: {e}")
            results.append({key: item_key, "success": False, "error": str(e)})
            continue
        result = {key: item_key, "success": True}
        if include_data:
            result["data"] = data
        results.append(result)

    failed = sum(1 for r in results if not r["success"])
    logger.info(f"[BULK] {len(results)} items processed, {failed} failed")
    return results


def not_confirmed(action: str, count: int, consequence: str) -> str:
    return f"{action} not confirmed. This will {consequence.format(count=count)}. Set confirm=true."
