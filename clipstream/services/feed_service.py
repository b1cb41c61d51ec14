"""Feed loading and engagement side effects for short videos."""
from __future__ import annotations

import logging
from datetime import datetime

from ..backend import BackendClient, BackendError, Query, and_, eq
from ..config import get_settings
from ..constants import LIKES_TABLE, VIDEO_TYPE_SHORT, VIDEO_VIEWS_TABLE, VIDEOS_TABLE
from ..models import VideoPost, utcnow
from .feed_ranking import RankedPost, rank_posts
from .follow_service import following_ids

logger = logging.getLogger(__name__)


async def fetch_short_videos(backend: BackendClient, *, limit: int | None = None) -> list[VideoPost]:
    query = Query(VIDEOS_TABLE).where(eq("type", VIDEO_TYPE_SHORT)).order_by("created_at", desc=True)
    if limit:
        query.limit(limit)
    rows = await backend.select(query)
    return [VideoPost.from_row(row) for row in rows]


async def load_feed(
    backend: BackendClient,
    *,
    viewer_id: str,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[RankedPost]:
    """Fetch the viewer's candidate shorts and return them ranked.

    Errors propagate: a feed refresh is always user-triggered.
    """

    page_size = limit or get_settings().feed_page_size
    following = await following_ids(backend, viewer_id)
    posts = await fetch_short_videos(backend, limit=page_size)
    ranked = rank_posts(posts, following, now=now or utcnow())
    logger.debug("Ranked %d shorts for %s (%d followed owners)", len(ranked), viewer_id, len(following))
    return ranked


async def record_view(backend: BackendClient, *, viewer_id: str, video_id: str) -> bool:
    """Record at most one view per viewer and video. Failures are logged only."""

    try:
        existing = await backend.select_one(
            Query(VIDEO_VIEWS_TABLE).where(and_(eq("video_id", video_id), eq("user_id", viewer_id)))
        )
        if existing is not None:
            return False
        await backend.insert(VIDEO_VIEWS_TABLE, {"video_id": video_id, "user_id": viewer_id})
    except BackendError:
        logger.exception("Failed to record view of %s by %s", video_id, viewer_id)
        return False
    return True


async def set_like_state(backend: BackendClient, *, viewer_id: str, video_id: str, should_like: bool) -> bool:
    """Insert or remove the viewer's like; returns whether anything changed.

    The denormalised ``like_count`` is maintained by the backend.
    """

    edge = and_(eq("video_id", video_id), eq("user_id", viewer_id))
    existing = await backend.select_one(Query(LIKES_TABLE).where(edge))

    if should_like and existing is None:
        await backend.insert(LIKES_TABLE, {"video_id": video_id, "user_id": viewer_id})
        return True
    if not should_like and existing is not None:
        await backend.delete(LIKES_TABLE, where=edge)
        return True
    return False


__all__ = ["fetch_short_videos", "load_feed", "record_view", "set_like_state"]
