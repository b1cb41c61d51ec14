"""Video post creation, per-user listings and favourites."""
from __future__ import annotations

import logging

from ..backend import BackendClient, BackendError, InvalidRequestError, NotFoundError, Query, and_, eq, in_
from ..config import get_settings
from ..constants import FAVOURITES_TABLE, VIDEO_TYPE_BY_MEDIA, VIDEO_TYPES, VIDEOS_TABLE
from ..models import VideoPost, utcnow
from .media_service import MediaUpload, upload_media

logger = logging.getLogger(__name__)


async def create_video_post(
    backend: BackendClient,
    *,
    owner_id: str,
    media: MediaUpload,
    caption: str = "",
) -> VideoPost:
    """Upload the media, then insert the ``videos`` row pointing at it.

    Videos are published as shorts and images as stories. Counters start at
    zero and are maintained by the backend afterwards.
    """

    media_url = await upload_media(backend, media, bucket=get_settings().video_bucket, upsert=False)

    timestamp = utcnow().isoformat()
    rows = await backend.insert(
        VIDEOS_TABLE,
        {
            "user_id": owner_id,
            "video_url": media_url,
            "type": VIDEO_TYPE_BY_MEDIA[media.media_type],
            "caption": (caption or "").strip(),
            "view_count": 0,
            "like_count": 0,
            "comment_count": 0,
            "created_at": timestamp,
            "updated_at": timestamp,
        },
    )
    if not rows:
        raise BackendError("Video insert returned no row")
    post = VideoPost.from_row(rows[0])
    logger.info("Published %s %s for %s", post.kind, post.id, owner_id)
    return post


async def get_video(backend: BackendClient, *, video_id: str) -> VideoPost:
    row = await backend.select_one(Query(VIDEOS_TABLE).where(eq("id", video_id)))
    if row is None:
        raise NotFoundError("Video not found")
    return VideoPost.from_row(row)


async def list_user_videos(
    backend: BackendClient,
    *,
    owner_id: str,
    kind: str | None = None,
    limit: int | None = None,
) -> list[VideoPost]:
    """A user's posts newest first, optionally only shorts or only stories."""

    condition = eq("user_id", owner_id)
    if kind is not None:
        if kind not in VIDEO_TYPES:
            raise InvalidRequestError(f"Unknown video type '{kind}'")
        condition = and_(condition, eq("type", kind))
    query = Query(VIDEOS_TABLE).where(condition).order_by("created_at", desc=True)
    if limit:
        query.limit(limit)
    rows = await backend.select(query)
    return [VideoPost.from_row(row) for row in rows]


async def set_favourite_state(
    backend: BackendClient,
    *,
    viewer_id: str,
    video_id: str,
    should_favourite: bool,
) -> bool:
    """Insert or remove the viewer's favourite; returns whether anything changed."""

    edge = and_(eq("video_id", video_id), eq("user_id", viewer_id))
    existing = await backend.select_one(Query(FAVOURITES_TABLE).where(edge))

    if should_favourite and existing is None:
        await get_video(backend, video_id=video_id)
        await backend.insert(FAVOURITES_TABLE, {"video_id": video_id, "user_id": viewer_id})
        return True
    if not should_favourite and existing is not None:
        await backend.delete(FAVOURITES_TABLE, where=edge)
        return True
    return False


async def list_favourites(backend: BackendClient, *, user_id: str) -> list[VideoPost]:
    """Favourited videos, most recently favourited first."""

    rows = await backend.select(
        Query(FAVOURITES_TABLE).where(eq("user_id", user_id)).order_by("created_at", desc=True)
    )
    video_ids = [str(row["video_id"]) for row in rows if row.get("video_id")]
    if not video_ids:
        return []

    videos = await backend.select(Query(VIDEOS_TABLE).where(in_("id", video_ids)))
    by_id = {str(row.get("id")): VideoPost.from_row(row) for row in videos}
    return [by_id[video_id] for video_id in video_ids if video_id in by_id]


__all__ = [
    "create_video_post",
    "get_video",
    "list_user_videos",
    "set_favourite_state",
    "list_favourites",
]
