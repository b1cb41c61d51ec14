"""Conversation identity and per-peer summaries."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .message import Message
from .user import UserProfile


@dataclass(frozen=True, slots=True)
class ConversationId:
    """Unordered pair of participants; ``of(a, b) == of(b, a)``."""

    first: str
    second: str

    @classmethod
    def of(cls, user_a: str, user_b: str) -> ConversationId:
        low, high = sorted((str(user_a), str(user_b)))
        return cls(low, high)

    @property
    def key(self) -> str:
        return f"{self.first}:{self.second}"

    @property
    def participants(self) -> tuple[str, str]:
        return (self.first, self.second)

    def peer_of(self, user_id: str) -> str:
        if user_id == self.first:
            return self.second
        if user_id == self.second:
            return self.first
        raise ValueError(f"{user_id} is not part of conversation {self.key}")


@dataclass(slots=True)
class ConversationSummary:
    conversation_id: ConversationId
    peer_id: str
    last_message: Message
    unread_count: int = 0
    is_seen: bool = False
    peer: UserProfile | None = None

    @property
    def is_unread(self) -> bool:
        return self.unread_count > 0

    @property
    def last_activity(self) -> datetime | None:
        return self.last_message.created_at


__all__ = ["ConversationId", "ConversationSummary"]
