"""Short-video post snapshots as read from the ``videos`` table."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..constants import VIDEO_TYPE_SHORT
from .base import coerce_count, optional_str, parse_timestamp


@dataclass(slots=True)
class VideoPost:
    """Read-only snapshot; counts are maintained by the backend."""

    id: str
    owner_id: str | None
    created_at: datetime | None = None
    media_url: str | None = None
    caption: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    kind: str = VIDEO_TYPE_SHORT

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> VideoPost:
        return cls(
            id=str(row.get("id")),
            owner_id=optional_str(row.get("user_id")),
            created_at=parse_timestamp(row.get("created_at")),
            media_url=optional_str(row.get("video_url") or row.get("media_url")),
            caption=str(row.get("caption") or row.get("description") or ""),
            view_count=coerce_count(row.get("view_count")),
            like_count=coerce_count(row.get("like_count")),
            comment_count=coerce_count(row.get("comment_count")),
            kind=str(row.get("type") or VIDEO_TYPE_SHORT),
        )


__all__ = ["VideoPost"]
