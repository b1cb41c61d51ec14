"""Messaging API routes."""
from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas import MessageResponse, MessageSendRequest, MessageThreadResponse, SeenRequest, SeenResponse
from ..services import MediaUpload, delete_message, list_thread, mark_seen, send_message
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/messages", tags=["messages"])


def _decode_media(payload: MessageSendRequest) -> MediaUpload | None:
    if not payload.media_base64:
        return None
    if payload.media_type is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="media_type is required with media")
    try:
        data = base64.b64decode(payload.media_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid base64 media") from exc
    return MediaUpload(data=data, media_type=payload.media_type, extension=payload.media_extension or "")


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    payload: MessageSendRequest,
    viewer: Viewer = Depends(get_current_user),
) -> MessageResponse:
    message = await send_message(
        viewer.backend,
        sender_id=viewer.user_id,
        receiver_id=payload.receiver_id,
        content=payload.content,
        media=_decode_media(payload),
    )
    return MessageResponse.model_validate(message)


@router.get("/{peer_id}", response_model=MessageThreadResponse)
async def get_thread(peer_id: str, viewer: Viewer = Depends(get_current_user)) -> MessageThreadResponse:
    """Return the two-party thread in chronological order."""

    messages = await list_thread(viewer.backend, user_id=viewer.user_id, peer_id=peer_id)
    return MessageThreadResponse(
        peer_id=peer_id,
        messages=[MessageResponse.model_validate(message) for message in messages],
    )


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message_endpoint(message_id: str, viewer: Viewer = Depends(get_current_user)) -> None:
    await delete_message(viewer.backend, message_id=message_id, requester_id=viewer.user_id)


@router.post("/{peer_id}/seen", response_model=SeenResponse)
async def mark_seen_endpoint(
    peer_id: str,
    payload: SeenRequest,
    viewer: Viewer = Depends(get_current_user),
) -> SeenResponse:
    """Mark messages from ``peer_id`` as seen; defaults to every unseen one."""

    ids = payload.message_ids
    if not ids:
        thread = await list_thread(viewer.backend, user_id=viewer.user_id, peer_id=peer_id)
        ids = [message.id for message in thread if message.is_received_by(viewer.user_id) and not message.is_seen]
    marked = await mark_seen(viewer.backend, viewer_id=viewer.user_id, peer_id=peer_id, message_ids=ids)
    return SeenResponse(peer_id=peer_id, message_ids=marked)


__all__ = ["router"]
