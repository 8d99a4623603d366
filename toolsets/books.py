"""Book (source) tools (Readwise v2 API)."""

from typing import Annotated, Literal

from fastmcp import Context
from pydantic import Field

from toolsets.common import client_for, compact, to_text

BookCategory = Literal["books", "articles", "tweets", "supplementals", "podcasts"]


async def get_books(
    ctx: Context,
    page: Annotated[int | None, Field(ge=1)] = None,
    page_size: Annotated[int | None, Field(ge=1, le=1000)] = None,
    category: BookCategory | None = None,
    source: Annotated[str | None, Field(description="Filter by source (kindle, instapaper, etc.)")] = None,
    updated__gt: str | None = None,
    updated__lt: str | None = None,
) -> str:
    """Get a list of books from your Readwise library"""
    data = await client_for(ctx).v2("/books/", params=compact(
        page=page, page_size=page_size, category=category, source=source,
        updated__gt=updated__gt, updated__lt=updated__lt,
    ))
    return to_text(data)


async def get_book(
    ctx: Context,
    book_id: Annotated[int, Field(description="ID of the book")],
) -> str:
    """Get details of a specific book by ID"""
    data = await client_for(ctx).v2(f"/books/{book_id}/")
    return to_text(data)


TOOLS = [get_books, get_book]
