"""Video tools.

Videos are Reader documents with ``category == "video"``; their highlights
live in the v2 API as podcast highlights positioned by ``time_offset``.
Playback position is stored as reading progress (position / duration).
"""

import math
from typing import Annotated

from fastmcp import Context
from pydantic import Field

from toolsets.common import Location, client_for, compact, fetch_document, to_text

VideoId = Annotated[str, Field(description="ID of the video document", min_length=1)]


async def get_videos(
    ctx: Context,
    location: Location | None = None,
    page_cursor: str | None = None,
) -> str:
    """Get videos from your Readwise Reader library"""
    data = await client_for(ctx).v3("/list/", params=compact(
        category="video", location=location, pageCursor=page_cursor,
    ))
    return to_text(data)


async def get_video(ctx: Context, document_id: VideoId) -> str:
    """Get details of a specific video by document ID"""
    video = await fetch_document(client_for(ctx), document_id)
    if not video or video.get("category") != "video":
        return "Video not found or document is not a video"
    return to_text(video)


async def create_video_highlight(
    ctx: Context,
    video_title: Annotated[str, Field(description="Title of the video")],
    video_url: Annotated[str, Field(description="URL of the video")],
    text: Annotated[str, Field(description="Highlight text/transcript")],
    timestamp_seconds: Annotated[int, Field(description="Timestamp in seconds", ge=0)],
    note: Annotated[str | None, Field(description="Personal note")] = None,
    author: Annotated[str | None, Field(description="Video creator/channel")] = None,
) -> str:
    """Create a highlight on a video at a specific timestamp"""
    highlight = compact(
        text=text,
        title=video_title,
        source_url=video_url,
        source_type="video",
        category="podcasts",
        location=timestamp_seconds,
        location_type="time_offset",
        note=note,
        author=author,
    )
    data = await client_for(ctx).v2("/highlights/", method="POST", body={"highlights": [highlight]})
    return to_text(data)


async def get_video_highlights(
    ctx: Context,
    book_id: Annotated[int, Field(description="Book/source ID of the video in Readwise")],
    page: Annotated[int | None, Field(ge=1)] = None,
    page_size: Annotated[int | None, Field(ge=1, le=1000)] = None,
) -> str:
    """Get all highlights from a specific video"""
    data = await client_for(ctx).v2("/highlights/", params=compact(
        book_id=book_id, page=page, page_size=page_size,
    ))
    return to_text(data)


async def update_video_position(
    ctx: Context,
    document_id: VideoId,
    position_seconds: Annotated[float, Field(description="Current position in seconds", ge=0)],
    duration_seconds: Annotated[float | None, Field(description="Total video duration")] = None,
) -> str:
    """Update the playback position of a video"""
    progress = None
    if duration_seconds and duration_seconds > 0:
        progress = min(position_seconds / duration_seconds, 1.0)

    data = await client_for(ctx).v3(
        f"/update/{document_id}/", method="PATCH", body=compact(reading_progress=progress)
    )
    return to_text({
        "document_id": document_id,
        "position_seconds": position_seconds,
        "reading_progress": progress,
        **(data if isinstance(data, dict) else {}),
    })


async def get_video_position(ctx: Context, document_id: VideoId) -> str:
    """Get the current playback position of a video"""
    video = await fetch_document(client_for(ctx), document_id)
    if not video:
        return "Video not found"

    progress = video.get("reading_progress")
    word_count = video.get("word_count")
    return to_text({
        "document_id": video.get("id"),
        "title": video.get("title"),
        "reading_progress": progress,
        "word_count": word_count,
        # word_count stands in for duration on video documents
        "estimated_position": math.floor(progress * word_count + 0.5) if progress and word_count else None,
    })


TOOLS = [
    get_videos,
    get_video,
    create_video_highlight,
    get_video_highlights,
    update_video_position,
    get_video_position,
]
