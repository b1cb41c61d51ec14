"""Comments left on videos."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .base import parse_timestamp
from .user import UserProfile


@dataclass(slots=True)
class Comment:
    id: str
    video_id: str
    user_id: str
    content: str
    created_at: datetime | None = None
    author: UserProfile | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Comment:
        return cls(
            id=str(row["id"]),
            video_id=str(row["video_id"]),
            user_id=str(row["user_id"]),
            content=str(row.get("content") or ""),
            created_at=parse_timestamp(row.get("created_at")),
        )


__all__ = ["Comment"]
