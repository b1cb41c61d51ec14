"""Profile and preference payloads."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str | None = None
    fullname: str | None = None
    photo_url: str | None = None
    bio: str | None = None


class ProfileDetailResponse(ProfileResponse):
    """Someone's public profile together with their follow counts."""

    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=50)
    fullname: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=500)


class SettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    theme: str
    notification_enabled: bool
    email_notifications: bool
    push_notifications: bool


class SettingsUpdateRequest(BaseModel):
    theme: Literal["light", "dark", "system"] | None = None
    notification_enabled: bool | None = None
    email_notifications: bool | None = None
    push_notifications: bool | None = None


__all__ = [
    "ProfileResponse",
    "ProfileDetailResponse",
    "ProfileUpdateRequest",
    "SettingsResponse",
    "SettingsUpdateRequest",
]
