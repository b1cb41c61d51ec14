"""Public profile data and per-user preferences."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .base import optional_str


@dataclass(slots=True)
class UserProfile:
    id: str
    username: str | None = None
    fullname: str | None = None
    photo_url: str | None = None
    bio: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> UserProfile:
        return cls(
            id=str(row["id"]),
            username=optional_str(row.get("username")),
            fullname=optional_str(row.get("fullname")),
            photo_url=optional_str(row.get("photo_url")),
            bio=optional_str(row.get("bio")),
        )


@dataclass(slots=True)
class UserSettings:
    """A ``user_settings`` row; missing flags default to enabled."""

    user_id: str
    theme: str = "light"
    notification_enabled: bool = True
    email_notifications: bool = True
    push_notifications: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> UserSettings:
        return cls(
            user_id=str(row["user_id"]),
            theme=str(row.get("theme") or "light"),
            notification_enabled=bool(row.get("notification_enabled", True)),
            email_notifications=bool(row.get("email_notifications", True)),
            push_notifications=bool(row.get("push_notifications", True)),
        )

    def as_row(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "theme": self.theme,
            "notification_enabled": self.notification_enabled,
            "email_notifications": self.email_notifications,
            "push_notifications": self.push_notifications,
        }


__all__ = ["UserProfile", "UserSettings"]
