"""Reader document tools (Readwise v3 API).

Tag edits (``document_tags`` add/remove) read the current tags, merge, and
write the full list back. Two concurrent edits of the same document race and
the last write wins.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal

from fastmcp import Context
from pydantic import BaseModel, Field

from toolsets.common import (
    DocumentCategory,
    Location,
    SaveLocation,
    client_for,
    compact,
    fetch_document,
    merge_tags,
    not_confirmed,
    run_bulk,
    tag_names,
    to_text,
)
from toolsets.formatting import render_text_document

DocumentId = Annotated[str, Field(description="ID of the document", min_length=1)]
Confirm = Annotated[bool, Field(description="Confirm the operation (must be true)")]

GENERATED_URL = "https://readwise-mcp.local/generated/{stamp}"


class DocumentToSave(BaseModel):
    url: str
    title: str | None = None
    author: str | None = None
    tags: list[str] | None = None
    location: SaveLocation | None = None


class DocumentUpdate(BaseModel):
    document_id: str = Field(min_length=1)
    title: str | None = None
    author: str | None = None
    location: Location | None = None
    tags: list[str] | None = None
    seen: bool | None = None


async def get_documents(
    ctx: Context,
    location: Location | None = None,
    category: DocumentCategory | None = None,
    updated_after: Annotated[str | None, Field(description="Filter by update date (ISO 8601)")] = None,
    page_cursor: str | None = None,
) -> str:
    """Retrieve documents from your Readwise Reader library"""
    data = await client_for(ctx).v3("/list/", params=compact(
        location=location, category=category,
        updatedAfter=updated_after, pageCursor=page_cursor,
    ))
    return to_text(data)


async def get_document(
    ctx: Context,
    document_id: DocumentId,
    with_html: Annotated[bool | None, Field(description="Include HTML content")] = None,
) -> str:
    """Get a specific document by ID from Readwise Reader"""
    params = {"id": document_id}
    if with_html:
        params["withHtmlContent"] = True
    data = await client_for(ctx).v3("/list/", params=params)
    return to_text(data)


async def save_document(
    ctx: Context,
    url: Annotated[str, Field(description=(
        "URL of the document. For generated content, use a unique placeholder URL"
    ))],
    html: Annotated[str | None, Field(description=(
        "HTML content to save directly. When provided, Readwise uses this instead of "
        "fetching the URL. Wrap text in basic HTML tags."
    ))] = None,
    title: Annotated[str | None, Field(description="Title of the document (required when using html parameter)")] = None,
    author: Annotated[str | None, Field(description="Author name")] = None,
    summary: str | None = None,
    published_date: Annotated[str | None, Field(description="Publication date (ISO 8601)")] = None,
    image_url: str | None = None,
    location: SaveLocation | None = None,
    category: DocumentCategory | None = None,
    tags: list[str] | None = None,
    notes: Annotated[str | None, Field(description="Top-level note for the document")] = None,
) -> str:
    """Save a new document to Readwise Reader. Can save by URL or by providing HTML content directly (bypasses bot protection)"""
    body = compact(
        url=url, html=html, title=title, author=author, summary=summary,
        published_date=published_date, image_url=image_url, location=location,
        category=category, tags=tags, notes=notes,
    )
    data = await client_for(ctx).v3("/save/", method="POST", body=body)
    return to_text(data)


async def save_text_content(
    ctx: Context,
    content: Annotated[str, Field(description="The text content to save (plain text or markdown)")],
    title: Annotated[str, Field(description="Title of the document")],
    author: Annotated[str, Field(description="Author name")] = "AI Assistant",
    summary: Annotated[str | None, Field(description="Brief summary of the content")] = None,
    tags: Annotated[list[str] | None, Field(description="Tags to apply")] = None,
    location: Literal["new", "later", "archive"] = "new",
    source: Annotated[str, Field(description="Source application name")] = "readwise-mcp",
) -> str:
    """Save text content directly to Readwise Reader (for generated content, bypasses bot protection)"""
    html = render_text_document(title, content, author=author)
    # Reader dedupes by URL, so every save gets its own placeholder
    url = GENERATED_URL.format(stamp=time.time_ns() // 1_000_000)

    body = compact(
        url=url, html=html, title=title, author=author, summary=summary, tags=tags,
        location=location, saved_using=source, category="article",
    )
    data = await client_for(ctx).v3("/save/", method="POST", body=body)
    return to_text(data)


async def update_document(
    ctx: Context,
    document_id: DocumentId,
    title: str | None = None,
    author: str | None = None,
    summary: str | None = None,
    published_date: str | None = None,
    image_url: str | None = None,
    location: Location | None = None,
    category: str | None = None,
    tags: list[str] | None = None,
    notes: str | None = None,
    seen: Annotated[bool | None, Field(description="Mark as read/unread")] = None,
) -> str:
    """Update metadata for an existing document in Readwise Reader"""
    updates = compact(
        title=title, author=author, summary=summary, published_date=published_date,
        image_url=image_url, location=location, category=category, tags=tags,
        notes=notes, seen=seen,
    )
    data = await client_for(ctx).v3(f"/update/{document_id}/", method="PATCH", body=updates)
    return to_text(data)


async def delete_document(
    ctx: Context,
    document_id: DocumentId,
    confirm: Confirm,
) -> str:
    """Delete a document from your Readwise Reader library"""
    if not confirm:
        return "Deletion not confirmed. Set confirm=true to delete."
    await client_for(ctx).v3(f"/delete/{document_id}/", method="DELETE")
    return f"Document {document_id} deleted successfully."


async def document_tags(
    ctx: Context,
    document_id: DocumentId,
    action: Annotated[Literal["get", "set", "add", "remove"], Field(description="Action to perform")],
    tags: Annotated[list[str] | None, Field(description="Tags to set/add/remove")] = None,
) -> str:
    """Get, add, or update tags for a document in Readwise Reader"""
    client = client_for(ctx)

    if action == "get":
        doc = await fetch_document(client, document_id)
        return to_text(tag_names(doc.get("tags")) if doc else [])

    if not tags:
        return "Tags array required for this action."

    if action == "set":
        new_tags = list(tags)
    else:
        doc = await fetch_document(client, document_id)
        current = tag_names(doc.get("tags")) if doc else []
        if action == "add":
            new_tags = merge_tags(current, tags)
        else:
            new_tags = [t for t in current if t not in tags]

    data = await client.v3(f"/update/{document_id}/", method="PATCH", body={"tags": new_tags})
    return to_text(data)


async def bulk_save_documents(
    ctx: Context,
    documents: Annotated[list[DocumentToSave], Field(description="Array of documents to save")],
    confirm: Confirm,
) -> str:
    """Save multiple documents to Readwise Reader in bulk"""
    if not confirm:
        return not_confirmed("Bulk save", len(documents), "save {count} documents")

    client = client_for(ctx)

    async def save(doc: DocumentToSave):
        return await client.v3("/save/", method="POST", body=doc.model_dump(exclude_none=True))

    results = await run_bulk(documents, "url", lambda doc: doc.url, save)
    return to_text(results)


async def bulk_update_documents(
    ctx: Context,
    updates: Annotated[list[DocumentUpdate], Field(description="Array of updates")],
    confirm: Confirm,
) -> str:
    """Update multiple documents in Readwise Reader in bulk"""
    if not confirm:
        return not_confirmed("Bulk update", len(updates), "update {count} documents")

    client = client_for(ctx)

    async def update(item: DocumentUpdate):
        body = item.model_dump(exclude_none=True, exclude={"document_id"})
        return await client.v3(f"/update/{item.document_id}/", method="PATCH", body=body)

    results = await run_bulk(updates, "document_id", lambda item: item.document_id, update)
    return to_text(results)


async def bulk_delete_documents(
    ctx: Context,
    document_ids: Annotated[list[str], Field(description="Array of document IDs to delete")],
    confirm: Annotated[bool, Field(description="Confirm bulk deletion (must be true)")],
) -> str:
    """Delete multiple documents from Readwise Reader in bulk"""
    if not confirm:
        return not_confirmed("Bulk delete", len(document_ids), "DELETE {count} documents permanently")

    client = client_for(ctx)

    async def delete(document_id: str):
        return await client.v3(f"/delete/{document_id}/", method="DELETE")

    results = await run_bulk(document_ids, "document_id", lambda d: d, delete, include_data=False)
    return to_text(results)


async def get_recent_content(
    ctx: Context,
    hours_ago: Annotated[float, Field(description="Get content from the last N hours (default 24)", gt=0)] = 24,
    category: str | None = None,
    location: Location | None = None,
) -> str:
    """Get the most recently added or updated content from your Readwise library"""
    since = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    data = await client_for(ctx).v3("/list/", params=compact(
        updatedAfter=since.isoformat(), category=category, location=location,
    ))
    return to_text(data)


TOOLS = [
    get_documents,
    get_document,
    save_document,
    save_text_content,
    update_document,
    delete_document,
    document_tags,
    bulk_save_documents,
    bulk_update_documents,
    bulk_delete_documents,
    get_recent_content,
]
