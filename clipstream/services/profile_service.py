"""Profiles in ``users``, preferences in ``user_settings`` and avatar uploads."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..backend import BackendClient, BackendError, InvalidRequestError, NotFoundError, Query, eq, in_
from ..config import get_settings
from ..constants import THEMES, USER_SETTINGS_TABLE, USERS_TABLE
from ..models import UserProfile, UserSettings
from .media_service import MediaUpload, upload_media

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"username", "fullname", "bio"})
SETTINGS_FLAGS = frozenset({"notification_enabled", "email_notifications", "push_notifications"})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def fetch_profiles(backend: BackendClient, user_ids: Iterable[str]) -> dict[str, UserProfile]:
    """Profiles keyed by id; unknown ids are simply absent."""

    ids = sorted(set(user_ids))
    if not ids:
        return {}
    rows = await backend.select(Query(USERS_TABLE).where(in_("id", ids)))
    profiles = [UserProfile.from_row(row) for row in rows]
    return {profile.id: profile for profile in profiles}


async def get_profile(backend: BackendClient, *, user_id: str) -> UserProfile:
    row = await backend.select_one(Query(USERS_TABLE).where(eq("id", user_id)))
    if row is None:
        raise NotFoundError("User not found")
    return UserProfile.from_row(row)


async def ensure_profile(backend: BackendClient, *, user_id: str) -> UserProfile:
    """Return the viewer's profile, creating a default row on first use."""

    try:
        return await get_profile(backend, user_id=user_id)
    except NotFoundError:
        pass

    logger.info("Creating profile for %s", user_id)
    rows = await backend.insert(
        USERS_TABLE,
        {
            "id": user_id,
            "username": f"user-{user_id[:8]}",
            "fullname": None,
            "photo_url": None,
            "bio": "",
            "updated_at": _now_iso(),
        },
    )
    return UserProfile.from_row(rows[0])


async def _ensure_username_free(backend: BackendClient, *, user_id: str, username: str) -> None:
    owner = await backend.select_one(Query(USERS_TABLE).where(eq("username", username)))
    if owner is not None and str(owner.get("id")) != user_id:
        raise InvalidRequestError("Username already taken")


async def update_profile(backend: BackendClient, *, user_id: str, changes: Mapping[str, Any]) -> UserProfile:
    """Apply the supplied profile fields; unknown fields are rejected."""

    unknown = set(changes) - PROFILE_FIELDS
    if unknown:
        raise InvalidRequestError(f"Unsupported profile field(s): {', '.join(sorted(unknown))}")
    if not changes:
        raise InvalidRequestError("No profile changes supplied")

    values: dict[str, Any] = {}
    for field, value in changes.items():
        text = str(value).strip() if value is not None else ""
        if field == "username":
            if not text:
                raise InvalidRequestError("Username cannot be empty")
            await _ensure_username_free(backend, user_id=user_id, username=text)
        values[field] = text or None

    await get_profile(backend, user_id=user_id)
    values["updated_at"] = _now_iso()
    rows = await backend.update(USERS_TABLE, values, where=eq("id", user_id))
    return UserProfile.from_row(rows[0])


async def update_profile_picture(
    backend: BackendClient,
    *,
    user_id: str,
    data: bytes,
    extension: str = "jpg",
) -> UserProfile:
    """Upload a new avatar to the profile bucket and point ``photo_url`` at it."""

    await get_profile(backend, user_id=user_id)
    media = MediaUpload(data=data, media_type="image", extension=extension)
    photo_url = await upload_media(backend, media, bucket=get_settings().profile_bucket, upsert=True)
    rows = await backend.update(
        USERS_TABLE,
        {"photo_url": photo_url, "updated_at": _now_iso()},
        where=eq("id", user_id),
    )
    return UserProfile.from_row(rows[0])


async def get_user_settings(backend: BackendClient, *, user_id: str) -> UserSettings:
    """Stored preferences, inserting the defaults when the row is missing."""

    row = await backend.select_one(Query(USER_SETTINGS_TABLE).where(eq("user_id", user_id)))
    if row is not None:
        return UserSettings.from_row(row)

    defaults = UserSettings(user_id=user_id)
    try:
        await backend.insert(USER_SETTINGS_TABLE, {**defaults.as_row(), "updated_at": _now_iso()})
    except BackendError:
        logger.exception("Failed to create default settings for %s", user_id)
    return defaults


async def update_user_settings(
    backend: BackendClient,
    *,
    user_id: str,
    changes: Mapping[str, Any],
) -> UserSettings:
    unknown = set(changes) - SETTINGS_FLAGS - {"theme"}
    if unknown:
        raise InvalidRequestError(f"Unsupported setting(s): {', '.join(sorted(unknown))}")
    if "theme" in changes and changes["theme"] not in THEMES:
        raise InvalidRequestError(f"Theme must be one of {', '.join(THEMES)}")

    current = await get_user_settings(backend, user_id=user_id)
    values = {field: (bool(value) if field in SETTINGS_FLAGS else value) for field, value in changes.items()}
    if not values:
        return current

    rows = await backend.update(
        USER_SETTINGS_TABLE,
        {**values, "updated_at": _now_iso()},
        where=eq("user_id", user_id),
    )
    if not rows:
        raise NotFoundError("Settings not found")
    return UserSettings.from_row(rows[0])


__all__ = [
    "fetch_profiles",
    "get_profile",
    "ensure_profile",
    "update_profile",
    "update_profile_picture",
    "get_user_settings",
    "update_user_settings",
]
