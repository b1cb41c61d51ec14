"""Conversation list routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..models import ConversationSummary
from ..schemas import ConversationListResponse, ConversationSummaryResponse, MessageResponse, PeerProfileResponse
from ..services import load_conversations
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/conversations", tags=["conversations"])


def serialize_summary(summary: ConversationSummary) -> ConversationSummaryResponse:
    return ConversationSummaryResponse(
        peer_id=summary.peer_id,
        peer=PeerProfileResponse.model_validate(summary.peer) if summary.peer else None,
        last_message=MessageResponse.model_validate(summary.last_message),
        unread_count=summary.unread_count,
        is_unread=summary.is_unread,
        is_seen=summary.is_seen,
    )


@router.get("", response_model=ConversationListResponse)
async def list_conversations(viewer: Viewer = Depends(get_current_user)) -> ConversationListResponse:
    """Return one summary per peer, most recent activity first."""

    summaries = await load_conversations(viewer.backend, viewer_id=viewer.user_id)
    return ConversationListResponse(items=[serialize_summary(item) for item in summaries])


__all__ = ["router", "serialize_summary"]
