"""Pydantic schemas for the ranked short-video feed."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ScoreBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engagement_rate: float
    engagement_score: float
    following_boost: float
    recency_boost: float
    trending_boost: float


class VideoPostResponse(BaseModel):
    """Serialized snapshot of a ``videos`` row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str | None = None
    created_at: datetime | None = None
    media_url: str | None = None
    caption: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    kind: str = "short"


class RankedVideoResponse(BaseModel):
    post: VideoPostResponse
    score: float
    breakdown: ScoreBreakdownResponse


class FeedResponse(BaseModel):
    """Envelope used when returning the ranked feed."""

    items: list[RankedVideoResponse]


class LikeStateResponse(BaseModel):
    video_id: str
    liked: bool
    changed: bool


class ViewRecordedResponse(BaseModel):
    video_id: str
    recorded: bool


class VideoListResponse(BaseModel):
    items: list[VideoPostResponse]


class FavouriteStateResponse(BaseModel):
    video_id: str
    favourited: bool
    changed: bool


__all__ = [
    "ScoreBreakdownResponse",
    "VideoPostResponse",
    "RankedVideoResponse",
    "FeedResponse",
    "LikeStateResponse",
    "ViewRecordedResponse",
    "VideoListResponse",
    "FavouriteStateResponse",
]
