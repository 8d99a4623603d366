"""Reader tag tools (Readwise v3 API)."""

from typing import Annotated

from fastmcp import Context
from pydantic import Field

from toolsets.common import (
    client_for,
    compact,
    fetch_document,
    merge_tags,
    not_confirmed,
    run_bulk,
    tag_names,
    to_text,
)


async def get_tags(
    ctx: Context,
    page_cursor: str | None = None,
) -> str:
    """Get a list of all tags from your Readwise library"""
    data = await client_for(ctx).v3("/tags/", params=compact(pageCursor=page_cursor))
    return to_text(data)


async def bulk_tags(
    ctx: Context,
    document_ids: Annotated[list[str], Field(description="Array of document IDs")],
    tags: Annotated[list[str], Field(description="Tags to add to all documents")],
    confirm: Annotated[bool, Field(description="Confirm bulk operation (must be true)")],
) -> str:
    """Add tags to multiple documents in Readwise Reader"""
    if not confirm:
        return not_confirmed("Bulk tag", len(document_ids), "add tags to {count} documents")

    client = client_for(ctx)

    async def add_tags(document_id: str):
        doc = await fetch_document(client, document_id)
        current = tag_names(doc.get("tags")) if doc else []
        return await client.v3(
            f"/update/{document_id}/", method="PATCH", body={"tags": merge_tags(current, tags)}
        )

    results = await run_bulk(document_ids, "document_id", lambda d: d, add_tags, include_data=False)
    return to_text(results)


TOOLS = [get_tags, bulk_tags]
