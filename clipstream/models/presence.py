"""Ephemeral online/last-seen state for a user."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .base import parse_timestamp


@dataclass(slots=True)
class PresenceState:
    user_id: str
    is_online: bool = False
    last_seen: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PresenceState:
        return cls(
            user_id=str(row["user_id"]),
            is_online=bool(row.get("is_online") or False),
            last_seen=parse_timestamp(row.get("last_seen")),
        )


__all__ = ["PresenceState"]
