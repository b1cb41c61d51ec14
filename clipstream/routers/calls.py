"""Call signaling routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..models import Call
from ..schemas import CallCreate, CallRespondRequest, CallResponse
from ..services import end_call, respond_to_call, start_call
from ..services.auth_service import Viewer, get_current_user
from ..services.profile_service import fetch_profiles

router = APIRouter(prefix="/calls", tags=["calls"])


def _serialize_call(call: Call) -> CallResponse:
    return CallResponse(
        id=call.id,
        caller_id=call.caller_id,
        receiver_id=call.receiver_id,
        type=call.type,
        status=call.status.value,
        created_at=call.created_at,
    )


@router.post("", response_model=CallResponse, status_code=status.HTTP_201_CREATED)
async def start_call_endpoint(payload: CallCreate, viewer: Viewer = Depends(get_current_user)) -> CallResponse:
    profiles = await fetch_profiles(viewer.backend, [viewer.user_id])
    call = await start_call(
        viewer.backend,
        caller_id=viewer.user_id,
        receiver_id=payload.receiver_id,
        call_type=payload.type,
        caller=profiles.get(viewer.user_id),
    )
    return _serialize_call(call)


@router.post("/{call_id}/respond", response_model=CallResponse)
async def respond_call_endpoint(
    call_id: str,
    payload: CallRespondRequest,
    viewer: Viewer = Depends(get_current_user),
) -> CallResponse:
    call = await respond_to_call(viewer.backend, call_id=call_id, responder_id=viewer.user_id, accept=payload.accept)
    return _serialize_call(call)


@router.post("/{call_id}/end", response_model=CallResponse)
async def end_call_endpoint(call_id: str, viewer: Viewer = Depends(get_current_user)) -> CallResponse:
    call = await end_call(viewer.backend, call_id=call_id, user_id=viewer.user_id)
    return _serialize_call(call)


__all__ = ["router"]
