"""Profile and settings routes."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, File, UploadFile

from ..schemas import (
    ProfileDetailResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
)
from ..services import (
    ensure_profile,
    get_follow_stats,
    get_profile,
    get_user_settings,
    update_profile,
    update_profile_picture,
    update_user_settings,
)
from ..services.auth_service import Viewer, get_current_user
from ..services.media_service import extension_of

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def read_my_profile(viewer: Viewer = Depends(get_current_user)) -> ProfileResponse:
    """The viewer's profile, created with defaults on first access."""

    return ProfileResponse.model_validate(await ensure_profile(viewer.backend, user_id=viewer.user_id))


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    viewer: Viewer = Depends(get_current_user),
) -> ProfileResponse:
    await ensure_profile(viewer.backend, user_id=viewer.user_id)
    profile = await update_profile(
        viewer.backend, user_id=viewer.user_id, changes=payload.model_dump(exclude_unset=True)
    )
    return ProfileResponse.model_validate(profile)


@router.post("/me/photo", response_model=ProfileResponse)
async def upload_my_photo(
    file: UploadFile = File(...),
    viewer: Viewer = Depends(get_current_user),
) -> ProfileResponse:
    await ensure_profile(viewer.backend, user_id=viewer.user_id)
    profile = await update_profile_picture(
        viewer.backend,
        user_id=viewer.user_id,
        data=await file.read(),
        extension=extension_of(file.filename) or "jpg",
    )
    return ProfileResponse.model_validate(profile)


@router.get("/me/settings", response_model=SettingsResponse)
async def read_my_settings(viewer: Viewer = Depends(get_current_user)) -> SettingsResponse:
    return SettingsResponse.model_validate(await get_user_settings(viewer.backend, user_id=viewer.user_id))


@router.patch("/me/settings", response_model=SettingsResponse)
async def update_my_settings(
    payload: SettingsUpdateRequest,
    viewer: Viewer = Depends(get_current_user),
) -> SettingsResponse:
    submitted = payload.model_dump(exclude_unset=True)
    changes = {field: value for field, value in submitted.items() if value is not None}
    settings = await update_user_settings(viewer.backend, user_id=viewer.user_id, changes=changes)
    return SettingsResponse.model_validate(settings)


@router.get("/{user_id}", response_model=ProfileDetailResponse)
async def read_profile(user_id: str, viewer: Viewer = Depends(get_current_user)) -> ProfileDetailResponse:
    profile = await get_profile(viewer.backend, user_id=user_id)
    stats = await get_follow_stats(viewer.backend, user_id=user_id, viewer_id=viewer.user_id)
    return ProfileDetailResponse(
        **asdict(profile),
        followers_count=stats.followers_count,
        following_count=stats.following_count,
        is_following=stats.is_following,
    )


__all__ = ["router"]
