"""Highlight tools (Readwise v2 API)."""

from typing import Annotated, Literal

from fastmcp import Context
from pydantic import Field

from toolsets.common import HighlightColor, client_for, compact, to_text

HighlightCategory = Literal["books", "articles", "tweets", "podcasts"]
LocationType = Literal["page", "location", "order", "time_offset"]

Page = Annotated[int | None, Field(description="Page number for pagination", ge=1)]
PageSize = Annotated[int | None, Field(description="Number of results per page (max 1000)", ge=1, le=1000)]


async def get_highlights(
    ctx: Context,
    page: Page = None,
    page_size: PageSize = None,
    book_id: Annotated[int | None, Field(description="Filter by specific book ID")] = None,
    updated__gt: Annotated[str | None, Field(description="Filter highlights updated after this date (ISO 8601)")] = None,
    updated__lt: Annotated[str | None, Field(description="Filter highlights updated before this date (ISO 8601)")] = None,
) -> str:
    """Retrieve highlights from your Readwise library with optional filtering"""
    data = await client_for(ctx).v2("/highlights/", params=compact(
        page=page, page_size=page_size, book_id=book_id,
        updated__gt=updated__gt, updated__lt=updated__lt,
    ))
    return to_text(data)


async def search_highlights(
    ctx: Context,
    query: Annotated[str, Field(description="Search query")],
    page: Page = None,
    page_size: PageSize = None,
) -> str:
    """Search for highlights in your Readwise library by keyword"""
    data = await client_for(ctx).v2("/highlights/", params=compact(
        search=query, page=page, page_size=page_size,
    ))
    return to_text(data)


async def create_highlight(
    ctx: Context,
    text: Annotated[str, Field(description="The highlight text (required, max 8191 chars)", max_length=8191)],
    title: Annotated[str | None, Field(description="Source title (book, article, etc.)")] = None,
    author: Annotated[str | None, Field(description="Author name")] = None,
    source_url: Annotated[str | None, Field(description="URL of the source")] = None,
    source_type: Annotated[str | None, Field(description="Type: kindle, instapaper, pocket, etc.")] = None,
    category: HighlightCategory | None = None,
    note: Annotated[str | None, Field(description="Personal note on the highlight")] = None,
    location: Annotated[int | None, Field(description="Location in the source")] = None,
    location_type: LocationType | None = None,
    highlighted_at: Annotated[str | None, Field(description="When highlighted (ISO 8601)")] = None,
    image_url: Annotated[str | None, Field(description="Image URL for the source")] = None,
) -> str:
    """Create a new highlight in your Readwise library"""
    highlight = compact(
        text=text, title=title, author=author, source_url=source_url,
        source_type=source_type, category=category, note=note, location=location,
        location_type=location_type, highlighted_at=highlighted_at, image_url=image_url,
    )
    data = await client_for(ctx).v2("/highlights/", method="POST", body={"highlights": [highlight]})
    return to_text(data)


async def update_highlight(
    ctx: Context,
    highlight_id: Annotated[int, Field(description="ID of the highlight to update")],
    text: Annotated[str | None, Field(description="New highlight text")] = None,
    note: Annotated[str | None, Field(description="New note")] = None,
    location: Annotated[int | None, Field(description="New location")] = None,
    color: HighlightColor | None = None,
) -> str:
    """Update an existing highlight in your Readwise library"""
    updates = compact(text=text, note=note, location=location, color=color)
    data = await client_for(ctx).v2(f"/highlights/{highlight_id}/", method="PATCH", body=updates)
    return to_text(data)


async def delete_highlight(
    ctx: Context,
    highlight_id: Annotated[int, Field(description="ID of the highlight to delete")],
    confirm: Annotated[bool, Field(description="Confirm deletion (must be true)")],
) -> str:
    """Delete a highlight from your Readwise library"""
    if not confirm:
        return "Deletion not confirmed. Set confirm=true to delete."
    await client_for(ctx).v2(f"/highlights/{highlight_id}/", method="DELETE")
    return f"Highlight {highlight_id} deleted successfully."


async def create_note(
    ctx: Context,
    highlight_id: Annotated[int, Field(description="ID of the highlight")],
    note: Annotated[str, Field(description="Note text to add")],
) -> str:
    """Create or update a note on an existing highlight"""
    data = await client_for(ctx).v2(f"/highlights/{highlight_id}/", method="PATCH", body={"note": note})
    return to_text(data)


def _has_tag(highlight: dict, match) -> bool:
    return any(match(t.get("name", "").lower()) for t in highlight.get("tags") or [])


async def advanced_search(
    ctx: Context,
    query: Annotated[str | None, Field(description="Search query")] = None,
    book_id: Annotated[int | None, Field(description="Filter by book ID")] = None,
    tag: Annotated[str | None, Field(description="Filter by tag name")] = None,
    color: HighlightColor | None = None,
    highlighted_at__gt: Annotated[str | None, Field(description="Highlighted after (ISO 8601)")] = None,
    highlighted_at__lt: Annotated[str | None, Field(description="Highlighted before (ISO 8601)")] = None,
    updated__gt: Annotated[str | None, Field(description="Updated after (ISO 8601)")] = None,
    updated__lt: Annotated[str | None, Field(description="Updated before (ISO 8601)")] = None,
    page: Page = None,
    page_size: PageSize = None,
) -> str:
    """Search highlights with advanced filters and facets"""
    data = await client_for(ctx).v2("/highlights/", params=compact(
        search=query, book_id=book_id, color=color,
        highlighted_at__gt=highlighted_at__gt, highlighted_at__lt=highlighted_at__lt,
        updated__gt=updated__gt, updated__lt=updated__lt,
        page=page, page_size=page_size,
    ))

    # The list endpoint has no tag filter
    if tag and data.get("results") is not None:
        wanted = tag.lower()
        data["results"] = [h for h in data["results"] if _has_tag(h, lambda name: name == wanted)]

    return to_text(data)


async def search_by_tag(
    ctx: Context,
    tag: Annotated[str, Field(description="Tag name to search for")],
    page: Page = None,
    page_size: PageSize = None,
) -> str:
    """Search highlights by tag name"""
    data = await client_for(ctx).v2("/highlights/", params=compact(
        page=page, page_size=page_size or 1000,
    ))

    if data.get("results") is not None:
        wanted = tag.lower()
        data["results"] = [h for h in data["results"] if _has_tag(h, lambda name: wanted in name)]
        data["count"] = len(data["results"])

    return to_text(data)


async def search_by_date(
    ctx: Context,
    start_date: Annotated[str, Field(description="Start date (ISO 8601, e.g., 2024-01-01)")],
    end_date: Annotated[str | None, Field(description="End date (ISO 8601)")] = None,
    date_field: Annotated[
        Literal["highlighted_at", "updated"], Field(description="Which date to filter by")
    ] = "highlighted_at",
    page: Page = None,
    page_size: PageSize = None,
) -> str:
    """Search highlights by date range"""
    params = compact(page=page, page_size=page_size)
    params[f"{date_field}__gt"] = start_date
    if end_date:
        params[f"{date_field}__lt"] = end_date

    data = await client_for(ctx).v2("/highlights/", params=params)
    return to_text(data)


async def export_highlights(
    ctx: Context,
    updated_after: Annotated[str | None, Field(description="Only export highlights updated after this date (ISO 8601)")] = None,
    book_ids: Annotated[str | None, Field(description="Comma-separated list of book IDs to export")] = None,
    page_cursor: Annotated[str | None, Field(description="Pagination cursor")] = None,
) -> str:
    """Export all highlights with optional filtering"""
    data = await client_for(ctx).v2("/export/", params=compact(
        updatedAfter=updated_after, ids=book_ids, pageCursor=page_cursor,
    ))
    return to_text(data)


async def get_daily_review(ctx: Context) -> str:
    """Get your daily review highlights for spaced repetition learning"""
    data = await client_for(ctx).v2("/review/")
    return to_text(data)


TOOLS = [
    get_highlights,
    search_highlights,
    create_highlight,
    update_highlight,
    delete_highlight,
    create_note,
    advanced_search,
    search_by_tag,
    search_by_date,
    export_highlights,
    get_daily_review,
]
