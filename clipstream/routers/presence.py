"""Presence lookups."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import PresenceResponse
from ..services import fetch_status, format_last_seen
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/presence", tags=["presence"])


@router.get("/{user_id}", response_model=PresenceResponse)
async def get_presence(user_id: str, viewer: Viewer = Depends(get_current_user)) -> PresenceResponse:
    state = await fetch_status(viewer.backend, user_id=user_id)
    return PresenceResponse(
        user_id=state.user_id,
        is_online=state.is_online,
        last_seen=state.last_seen,
        last_seen_label="Online" if state.is_online else format_last_seen(state.last_seen),
    )


__all__ = ["router"]
