"""Schemas used by messaging and conversation endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class MessageSendRequest(BaseModel):
    receiver_id: str = Field(..., min_length=1, description="Direct message recipient")
    content: str = Field("", max_length=2000)
    media_base64: str | None = Field(None, description="Optional base64 encoded attachment")
    media_type: Literal["image", "video"] | None = None
    media_extension: str | None = Field(None, max_length=8)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime | None = None
    media_url: str | None = None
    media_type: str | None = None
    is_seen: bool = False


class MessageThreadResponse(BaseModel):
    peer_id: str
    messages: List[MessageResponse]


class PeerProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str | None = None
    fullname: str | None = None
    photo_url: str | None = None


class ConversationSummaryResponse(BaseModel):
    peer_id: str
    peer: PeerProfileResponse | None = None
    last_message: MessageResponse
    unread_count: int
    is_unread: bool
    is_seen: bool


class ConversationListResponse(BaseModel):
    items: List[ConversationSummaryResponse]


class SeenRequest(BaseModel):
    message_ids: List[str] = Field(default_factory=list)


class SeenResponse(BaseModel):
    peer_id: str
    message_ids: List[str]


__all__ = [
    "MessageSendRequest",
    "MessageResponse",
    "MessageThreadResponse",
    "PeerProfileResponse",
    "ConversationSummaryResponse",
    "ConversationListResponse",
    "SeenRequest",
    "SeenResponse",
]
