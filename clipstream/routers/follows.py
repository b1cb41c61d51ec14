"""Follow management API routes."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from ..schemas import FollowActionResponse, FollowStatsResponse
from ..services import follow_user, get_follow_stats, unfollow_user
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/follows", tags=["follows"])


@router.post("/{target_id}", response_model=FollowActionResponse, status_code=status.HTTP_201_CREATED)
async def follow_user_endpoint(
    target_id: str,
    viewer: Viewer = Depends(get_current_user),
) -> FollowActionResponse:
    changed = await follow_user(viewer.backend, follower_id=viewer.user_id, target_id=target_id)
    stats = await get_follow_stats(viewer.backend, user_id=target_id, viewer_id=viewer.user_id)
    payload = asdict(stats)
    payload["status"] = "followed" if changed else "noop"
    return FollowActionResponse(**payload)


@router.delete("/{target_id}", response_model=FollowActionResponse)
async def unfollow_user_endpoint(
    target_id: str,
    viewer: Viewer = Depends(get_current_user),
) -> FollowActionResponse:
    changed = await unfollow_user(viewer.backend, follower_id=viewer.user_id, target_id=target_id)
    stats = await get_follow_stats(viewer.backend, user_id=target_id, viewer_id=viewer.user_id)
    payload = asdict(stats)
    payload["status"] = "unfollowed" if changed else "noop"
    return FollowActionResponse(**payload)


@router.get("/stats/{user_id}", response_model=FollowStatsResponse)
async def follow_stats_endpoint(
    user_id: str,
    viewer: Viewer = Depends(get_current_user),
) -> FollowStatsResponse:
    stats = await get_follow_stats(viewer.backend, user_id=user_id, viewer_id=viewer.user_id)
    return FollowStatsResponse(**asdict(stats))


__all__ = ["router"]
