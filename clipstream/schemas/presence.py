"""Schemas for presence lookups."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PresenceResponse(BaseModel):
    user_id: str
    is_online: bool
    last_seen: datetime | None = None
    last_seen_label: str


__all__ = ["PresenceResponse"]
