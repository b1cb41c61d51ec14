"""Schemas for call signaling."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class CallCreate(BaseModel):
    receiver_id: str
    type: Literal["audio", "video"]


class CallRespondRequest(BaseModel):
    accept: bool


class CallResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    caller_id: str
    receiver_id: str
    type: str
    status: str
    created_at: datetime | None = None


__all__ = ["CallCreate", "CallRespondRequest", "CallResponse"]
