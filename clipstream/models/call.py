"""Audio/video call records used for call signaling."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .base import parse_timestamp


class CallStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ENDED = "ended"


@dataclass(slots=True)
class Call:
    id: str
    caller_id: str
    receiver_id: str
    type: str
    status: CallStatus = CallStatus.PENDING
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Call:
        return cls(
            id=str(row["id"]),
            caller_id=str(row["caller_id"]),
            receiver_id=str(row["receiver_id"]),
            type=str(row.get("type") or "audio"),
            status=CallStatus(row.get("status") or CallStatus.PENDING.value),
            created_at=parse_timestamp(row.get("created_at")),
        )


__all__ = ["Call", "CallStatus"]
