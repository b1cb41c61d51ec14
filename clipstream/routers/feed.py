"""Ranked short-video feed routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..schemas import (
    FeedResponse,
    LikeStateResponse,
    RankedVideoResponse,
    ScoreBreakdownResponse,
    VideoPostResponse,
    ViewRecordedResponse,
)
from ..services import RankedPost, load_feed, record_view, set_like_state
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/feed", tags=["feed"])


def _serialize_ranked(item: RankedPost) -> RankedVideoResponse:
    breakdown = item.breakdown
    return RankedVideoResponse(
        post=VideoPostResponse.model_validate(item.post),
        score=item.score,
        breakdown=ScoreBreakdownResponse(
            engagement_rate=breakdown.engagement_rate,
            engagement_score=breakdown.engagement_score,
            following_boost=breakdown.following_boost,
            recency_boost=breakdown.recency_boost,
            trending_boost=breakdown.trending_boost,
        ),
    )


@router.get("", response_model=FeedResponse)
async def get_feed(
    limit: int | None = Query(None, ge=1, le=200),
    viewer: Viewer = Depends(get_current_user),
) -> FeedResponse:
    ranked = await load_feed(viewer.backend, viewer_id=viewer.user_id, limit=limit)
    return FeedResponse(items=[_serialize_ranked(item) for item in ranked])


@router.post("/{video_id}/views", response_model=ViewRecordedResponse, status_code=status.HTTP_202_ACCEPTED)
async def record_view_endpoint(video_id: str, viewer: Viewer = Depends(get_current_user)) -> ViewRecordedResponse:
    recorded = await record_view(viewer.backend, viewer_id=viewer.user_id, video_id=video_id)
    return ViewRecordedResponse(video_id=video_id, recorded=recorded)


@router.put("/{video_id}/like", response_model=LikeStateResponse)
async def like_video(video_id: str, viewer: Viewer = Depends(get_current_user)) -> LikeStateResponse:
    changed = await set_like_state(viewer.backend, viewer_id=viewer.user_id, video_id=video_id, should_like=True)
    return LikeStateResponse(video_id=video_id, liked=True, changed=changed)


@router.delete("/{video_id}/like", response_model=LikeStateResponse)
async def unlike_video(video_id: str, viewer: Viewer = Depends(get_current_user)) -> LikeStateResponse:
    changed = await set_like_state(viewer.backend, viewer_id=viewer.user_id, video_id=video_id, should_like=False)
    return LikeStateResponse(video_id=video_id, liked=False, changed=changed)


__all__ = ["router"]
