"""Direct messaging backed by the hosted ``messages`` table."""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ..backend import (
    AuthorizationError,
    BackendClient,
    BackendError,
    InvalidRequestError,
    NotFoundError,
    Query,
    Topic,
    and_,
    eq,
    in_,
    or_,
)
from ..constants import MESSAGES_TABLE, NOTIFICATIONS_TABLE
from ..models import Message
from .media_service import MediaUpload, upload_media, validate_upload

logger = logging.getLogger(__name__)

INBOX_TOPIC = "inbox"
SEEN_EVENT = "seen"
DELETE_EVENT = "delete"
NEW_MESSAGE_EVENT = "new_message"


def inbox_topic(user_id: str) -> Topic:
    return Topic.for_user(INBOX_TOPIC, user_id)


def conversation_filter(user_a: str, user_b: str):
    """Rows exchanged between the two users, in either direction."""

    return or_(
        and_(eq("sender_id", user_a), eq("receiver_id", user_b)),
        and_(eq("sender_id", user_b), eq("receiver_id", user_a)),
    )


def participant_filter(user_id: str):
    return or_(eq("sender_id", user_id), eq("receiver_id", user_id))


async def list_for_user(backend: BackendClient, *, user_id: str) -> list[Message]:
    """Every message the user sent or received, newest first."""

    rows = await backend.select(
        Query(MESSAGES_TABLE).where(participant_filter(user_id)).order_by("created_at", desc=True)
    )
    return [Message.from_row(row) for row in rows]


async def list_thread(backend: BackendClient, *, user_id: str, peer_id: str) -> list[Message]:
    """Messages of a two-party conversation ordered chronologically."""

    rows = await backend.select(
        Query(MESSAGES_TABLE).where(conversation_filter(user_id, peer_id)).order_by("created_at")
    )
    return [Message.from_row(row) for row in rows]


async def _notify_receiver(backend: BackendClient, message: Message) -> None:
    payload = {
        "message": {
            "id": message.id,
            "content": message.content,
            "sender_id": message.sender_id,
            "created_at": message.created_at.isoformat() if message.created_at else None,
        }
    }
    try:
        await backend.channel(inbox_topic(message.receiver_id)).send(NEW_MESSAGE_EVENT, payload)
        await backend.insert(
            NOTIFICATIONS_TABLE,
            {
                "user_id": message.receiver_id,
                "type": NEW_MESSAGE_EVENT,
                "data": {
                    "message_id": message.id,
                    "sender_id": message.sender_id,
                    "content": message.content,
                },
                "read": False,
            },
        )
    except BackendError:
        logger.exception("Failed to notify %s about message %s", message.receiver_id, message.id)


async def send_message(
    backend: BackendClient,
    *,
    sender_id: str,
    receiver_id: str,
    content: str = "",
    media: MediaUpload | None = None,
) -> Message:
    """Persist a message, uploading its media first when present."""

    text = (content or "").strip()
    if not text and media is None:
        raise InvalidRequestError("Message requires text or media")
    if sender_id == receiver_id:
        raise InvalidRequestError("Cannot message yourself")
    if media is not None:
        validate_upload(media)

    media_url: str | None = None
    if media is not None:
        media_url = await upload_media(backend, media)

    rows = await backend.insert(
        MESSAGES_TABLE,
        {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": text,
            "media_url": media_url,
            "media_type": media.media_type if media is not None else None,
            "is_seen": False,
        },
    )
    if not rows:
        raise BackendError("Message insert returned no row")
    message = Message.from_row(rows[0])

    await _notify_receiver(backend, message)
    return message


async def delete_message(backend: BackendClient, *, message_id: str, requester_id: str) -> Message:
    row = await backend.select_one(Query(MESSAGES_TABLE).where(eq("id", message_id)))
    if row is None:
        raise NotFoundError("Message not found")
    message = Message.from_row(row)
    if message.sender_id != requester_id:
        raise AuthorizationError("You can only delete your own messages")

    await backend.delete(MESSAGES_TABLE, where=eq("id", message_id))

    try:
        await backend.channel(inbox_topic(message.receiver_id)).send(
            DELETE_EVENT, {"user_id": requester_id, "message_id": message_id}
        )
    except BackendError:
        logger.exception("Failed to broadcast deletion of %s", message_id)
    return message


async def mark_seen(
    backend: BackendClient,
    *,
    viewer_id: str,
    peer_id: str,
    message_ids: Sequence[str] | Iterable[str],
) -> list[str]:
    """Persist ``is_seen`` for received messages and notify the sender.

    A rejected persist is logged; callers keep their optimistic cache until
    the next authoritative refresh.
    """

    ids = [message_id for message_id in dict.fromkeys(message_ids) if message_id]
    if not ids:
        return []

    try:
        await backend.update(
            MESSAGES_TABLE,
            {"is_seen": True},
            where=and_(in_("id", ids), eq("receiver_id", viewer_id)),
        )
    except BackendError as exc:
        logger.warning("Could not persist seen state for %d message(s): %s", len(ids), exc)

    try:
        await backend.channel(inbox_topic(peer_id)).send(SEEN_EVENT, {"user_id": viewer_id, "message_ids": ids})
    except BackendError:
        logger.exception("Failed to broadcast seen receipt to %s", peer_id)
    return ids


__all__ = [
    "INBOX_TOPIC",
    "SEEN_EVENT",
    "DELETE_EVENT",
    "NEW_MESSAGE_EVENT",
    "inbox_topic",
    "conversation_filter",
    "participant_filter",
    "list_for_user",
    "list_thread",
    "send_message",
    "delete_message",
    "mark_seen",
]
