"""Reading progress tools (Readwise v3 API)."""

from typing import Annotated

from fastmcp import Context
from pydantic import Field

from toolsets.common import Location, client_for, compact, fetch_document, to_text

Progress = Annotated[float, Field(description="Progress from 0.0 to 1.0", ge=0, le=1)]

LIST_FIELDS = ("id", "title", "author", "reading_progress", "word_count", "location", "category")


async def get_reading_progress(
    ctx: Context,
    document_id: Annotated[str, Field(description="ID of the document", min_length=1)],
) -> str:
    """Get the reading progress of a document"""
    doc = await fetch_document(client_for(ctx), document_id)
    if not doc:
        return "Document not found"

    return to_text({
        "document_id": doc.get("id"),
        "title": doc.get("title"),
        "reading_progress": doc.get("reading_progress"),
        "word_count": doc.get("word_count"),
        "location": doc.get("location"),
        "seen": doc.get("seen"),
    })


async def update_reading_progress(
    ctx: Context,
    document_id: Annotated[str, Field(description="ID of the document", min_length=1)],
    reading_progress: Progress,
    seen: Annotated[bool | None, Field(description="Mark as seen/read")] = None,
) -> str:
    """Update the reading progress of a document"""
    body = compact(reading_progress=reading_progress, seen=seen)
    data = await client_for(ctx).v3(f"/update/{document_id}/", method="PATCH", body=body)
    return to_text(data)


def _within(doc: dict, low: float | None, high: float | None) -> bool:
    progress = doc.get("reading_progress") or 0
    if low is not None and progress < low:
        return False
    if high is not None and progress > high:
        return False
    return True


async def get_reading_list(
    ctx: Context,
    location: Location | None = None,
    min_progress: Annotated[float | None, Field(description="Minimum reading progress (0.0-1.0)", ge=0, le=1)] = None,
    max_progress: Annotated[float | None, Field(description="Maximum reading progress (0.0-1.0)", ge=0, le=1)] = None,
    page_cursor: str | None = None,
) -> str:
    """Get a list of documents with their reading progress"""
    data = await client_for(ctx).v3("/list/", params=compact(location=location, pageCursor=page_cursor))

    # Filtering is per page, so a page may come back short or empty
    docs = [d for d in data.get("results") or [] if _within(d, min_progress, max_progress)]
    rows = [{field: d.get(field) for field in LIST_FIELDS} for d in docs]

    return to_text({
        "count": len(rows),
        "results": rows,
        "nextPageCursor": data.get("nextPageCursor"),
    })


TOOLS = [get_reading_progress, update_reading_progress, get_reading_list]
