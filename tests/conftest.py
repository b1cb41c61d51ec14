"""Shared fixtures for the service and API tests."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

os.environ.setdefault("BACKEND_MODE", "memory")
os.environ.setdefault("CHAT_POLL_INTERVAL_SECONDS", "0")
os.environ.setdefault("FETCH_BACKOFF_SECONDS", "0")

from clipstream.backend import InMemoryBackend  # noqa: E402
from clipstream.models import Message, VideoPost  # noqa: E402

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def post_factory() -> Callable[..., VideoPost]:
    counter = iter(range(1, 10_000))

    def _factory(
        *,
        views: int = 0,
        likes: int = 0,
        comments: int = 0,
        age: timedelta | None = timedelta(days=30),
        owner_id: str | None = "owner",
        post_id: str | None = None,
    ) -> VideoPost:
        return VideoPost(
            id=post_id or f"post-{next(counter)}",
            owner_id=owner_id,
            created_at=NOW - age if age is not None else None,
            view_count=views,
            like_count=likes,
            comment_count=comments,
        )

    return _factory


@pytest.fixture
def message_factory() -> Callable[..., Message]:
    counter = iter(range(1, 10_000))

    def _factory(
        sender_id: str,
        receiver_id: str,
        minute: int,
        *,
        is_seen: bool = False,
        message_id: str | None = None,
        content: str = "hi",
    ) -> Message:
        return Message(
            id=message_id or f"msg-{next(counter)}",
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            created_at=NOW + timedelta(minutes=minute),
            is_seen=is_seen,
        )

    return _factory


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def connect_users(backend: InMemoryBackend) -> Callable[[str, str], None]:
    """Seed a follow edge so the message policy lets the pair talk."""

    def _connect(follower_id: str, following_id: str) -> None:
        backend.seed("follows", [{"follower_id": follower_id, "following_id": following_id}])

    return _connect


@pytest.fixture
def message_row() -> Callable[..., dict[str, Any]]:
    return _message_row


def _message_row(sender_id: str, receiver_id: str, minute: int, **extra: Any) -> dict[str, Any]:
    row = {
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "content": extra.pop("content", "hi"),
        "created_at": (NOW + timedelta(minutes=minute)).isoformat(),
        "is_seen": extra.pop("is_seen", False),
    }
    row.update(extra)
    return row
