"""Online status heartbeats and last-seen lookups."""
from __future__ import annotations

import logging
from datetime import datetime

from ..backend import BackendClient, Query, eq
from ..constants import USER_STATUS_TABLE
from ..models import PresenceState, utcnow

logger = logging.getLogger(__name__)


async def update_status(backend: BackendClient, *, user_id: str, online: bool, now: datetime | None = None) -> PresenceState:
    """Insert or update the caller's ``user_status`` row."""

    seen_at = now or utcnow()
    values = {"is_online": online, "last_seen": seen_at.isoformat()}
    existing = await backend.select_one(Query(USER_STATUS_TABLE).where(eq("user_id", user_id)))
    if existing is None:
        await backend.insert(USER_STATUS_TABLE, {"user_id": user_id, **values})
    else:
        await backend.update(USER_STATUS_TABLE, values, where=eq("user_id", user_id))
    logger.debug("Status of %s set to %s", user_id, "online" if online else "offline")
    return PresenceState(user_id=user_id, is_online=online, last_seen=seen_at)


async def fetch_status(backend: BackendClient, *, user_id: str) -> PresenceState:
    """A user without a status row is reported offline with no last-seen."""

    row = await backend.select_one(Query(USER_STATUS_TABLE).where(eq("user_id", user_id)))
    if row is None:
        return PresenceState(user_id=user_id)
    return PresenceState.from_row(row)


def format_last_seen(last_seen: datetime | None, *, now: datetime | None = None) -> str:
    if last_seen is None:
        return "Unknown"
    current = now or utcnow()
    seconds = int((current - last_seen).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return last_seen.date().isoformat()


__all__ = ["update_status", "fetch_status", "format_last_seen"]
