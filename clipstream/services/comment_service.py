"""Comment threads under videos."""
from __future__ import annotations

import logging

from ..backend import AuthorizationError, BackendClient, BackendError, InvalidRequestError, NotFoundError, Query, eq
from ..constants import COMMENTS_TABLE, MAX_COMMENT_LENGTH
from ..models import Comment
from .profile_service import fetch_profiles
from .video_service import get_video

logger = logging.getLogger(__name__)


def _clean_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        raise InvalidRequestError("Comment cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise InvalidRequestError(f"Comment exceeds {MAX_COMMENT_LENGTH} characters")
    return text


async def _get_comment(backend: BackendClient, comment_id: str) -> Comment:
    row = await backend.select_one(Query(COMMENTS_TABLE).where(eq("id", comment_id)))
    if row is None:
        raise NotFoundError("Comment not found")
    return Comment.from_row(row)


async def _with_authors(backend: BackendClient, comments: list[Comment]) -> list[Comment]:
    profiles = await fetch_profiles(backend, (comment.user_id for comment in comments))
    for comment in comments:
        comment.author = profiles.get(comment.user_id)
    return comments


async def list_comments(backend: BackendClient, *, video_id: str) -> list[Comment]:
    """Comments on a video, newest first, with their authors attached."""

    rows = await backend.select(
        Query(COMMENTS_TABLE).where(eq("video_id", video_id)).order_by("created_at", desc=True)
    )
    return await _with_authors(backend, [Comment.from_row(row) for row in rows])


async def add_comment(backend: BackendClient, *, video_id: str, author_id: str, content: str) -> Comment:
    text = _clean_content(content)
    await get_video(backend, video_id=video_id)

    rows = await backend.insert(COMMENTS_TABLE, {"video_id": video_id, "user_id": author_id, "content": text})
    if not rows:
        raise BackendError("Comment insert returned no row")
    comment = Comment.from_row(rows[0])
    logger.info("Comment %s added to %s by %s", comment.id, video_id, author_id)
    (comment,) = await _with_authors(backend, [comment])
    return comment


async def edit_comment(backend: BackendClient, *, comment_id: str, editor_id: str, content: str) -> Comment:
    """Only the author may rewrite a comment."""

    text = _clean_content(content)
    comment = await _get_comment(backend, comment_id)
    if comment.user_id != editor_id:
        raise AuthorizationError("You can only edit your own comments")

    rows = await backend.update(COMMENTS_TABLE, {"content": text}, where=eq("id", comment_id))
    (updated,) = await _with_authors(backend, [Comment.from_row(rows[0])])
    return updated


async def delete_comment(backend: BackendClient, *, comment_id: str, requester_id: str) -> None:
    """Remove a comment as its author or as the owner of the video."""

    comment = await _get_comment(backend, comment_id)
    if comment.user_id != requester_id:
        video = await get_video(backend, video_id=comment.video_id)
        if video.owner_id != requester_id:
            raise AuthorizationError("Only the author or the video owner can delete this comment")

    await backend.delete(COMMENTS_TABLE, where=eq("id", comment_id))
    logger.info("Comment %s deleted by %s", comment_id, requester_id)


__all__ = [
    "list_comments",
    "add_comment",
    "edit_comment",
    "delete_comment",
]
