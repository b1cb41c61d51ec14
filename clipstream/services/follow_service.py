"""Business logic for follower relationships."""
from __future__ import annotations

from dataclasses import dataclass

from ..backend import BackendClient, InvalidRequestError, Query, and_, eq
from ..config import get_settings


@dataclass(slots=True)
class FollowStats:
    user_id: str
    followers_count: int
    following_count: int
    is_following: bool


def _follows_table(table: str | None) -> str:
    return table or get_settings().follows_table


def _edge(follower_id: str, target_id: str):
    return and_(eq("follower_id", follower_id), eq("following_id", target_id))


async def following_ids(backend: BackendClient, user_id: str, *, table: str | None = None) -> set[str]:
    """Return the ids of every user ``user_id`` follows."""

    rows = await backend.select(
        Query(_follows_table(table), columns="following_id").where(eq("follower_id", user_id))
    )
    return {str(row["following_id"]) for row in rows if row.get("following_id")}


async def is_following(backend: BackendClient, *, follower_id: str, target_id: str, table: str | None = None) -> bool:
    row = await backend.select_one(Query(_follows_table(table)).where(_edge(follower_id, target_id)))
    return row is not None


async def follow_user(backend: BackendClient, *, follower_id: str, target_id: str, table: str | None = None) -> bool:
    if follower_id == target_id:
        raise InvalidRequestError("Cannot follow yourself")

    if await is_following(backend, follower_id=follower_id, target_id=target_id, table=table):
        return False

    await backend.insert(_follows_table(table), {"follower_id": follower_id, "following_id": target_id})
    return True


async def unfollow_user(backend: BackendClient, *, follower_id: str, target_id: str, table: str | None = None) -> bool:
    if follower_id == target_id:
        return False

    removed = await backend.delete(_follows_table(table), where=_edge(follower_id, target_id))
    return bool(removed)


async def get_follow_stats(
    backend: BackendClient,
    *,
    user_id: str,
    viewer_id: str | None = None,
    table: str | None = None,
) -> FollowStats:
    name = _follows_table(table)
    followers = await backend.select(Query(name, columns="follower_id").where(eq("following_id", user_id)))
    following = await backend.select(Query(name, columns="following_id").where(eq("follower_id", user_id)))

    viewer_follows = False
    if viewer_id is not None:
        viewer_follows = any(str(row.get("follower_id")) == viewer_id for row in followers)

    return FollowStats(
        user_id=user_id,
        followers_count=len(followers),
        following_count=len(following),
        is_following=viewer_follows,
    )


__all__ = [
    "FollowStats",
    "following_ids",
    "is_following",
    "follow_user",
    "unfollow_user",
    "get_follow_stats",
]
