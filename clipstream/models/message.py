"""Direct messages exchanged between two users."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .base import optional_str, parse_timestamp


@dataclass(slots=True)
class Message:
    id: str
    sender_id: str
    receiver_id: str
    content: str = ""
    created_at: datetime | None = None
    media_url: str | None = None
    media_type: str | None = None
    is_seen: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Message:
        return cls(
            id=str(row["id"]),
            sender_id=str(row["sender_id"]),
            receiver_id=str(row["receiver_id"]),
            content=str(row.get("content") or ""),
            created_at=parse_timestamp(row.get("created_at")),
            media_url=optional_str(row.get("media_url")),
            media_type=optional_str(row.get("media_type")),
            is_seen=bool(row.get("is_seen") or False),
        )

    def involves(self, user_id: str) -> bool:
        return user_id in (self.sender_id, self.receiver_id)

    def peer_of(self, user_id: str) -> str:
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def is_received_by(self, user_id: str) -> bool:
        return self.receiver_id == user_id and self.sender_id != user_id


__all__ = ["Message"]
