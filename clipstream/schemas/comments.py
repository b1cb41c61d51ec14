"""Schemas for video comment threads."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..constants import MAX_COMMENT_LENGTH
from .messages import PeerProfileResponse


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)


class CommentUpdate(CommentCreate):
    pass


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    video_id: str
    user_id: str
    content: str
    created_at: datetime | None = None
    author: PeerProfileResponse | None = None


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


__all__ = ["CommentCreate", "CommentUpdate", "CommentResponse", "CommentListResponse"]
