"""A viewer's open two-party conversation: thread, typing, presence, calls.

Every timer (typing expiry, heartbeat, polling fallback) and every channel
subscription belongs to the session and is released by ``close``.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable

from ..backend import BackendClient, ChangeEvent, Subscription, Topic, call_with_retry
from ..backend.channels import PRESENCE_EVENT
from ..config import Settings, get_settings
from ..constants import MESSAGES_TABLE
from ..models import Call, ConversationId, Message, PresenceState
from . import call_service, message_service, presence_service
from .conversations import ConversationInbox
from .media_service import MediaUpload
from .message_service import DELETE_EVENT, SEEN_EVENT, conversation_filter, inbox_topic
from .scheduling import ExpiringFlag, PeriodicTask

logger = logging.getLogger(__name__)

TYPING_TOPIC = "typing"
PRESENCE_TOPIC = "presence"
TYPING_EVENT = "typing"

SessionListener = Callable[[str, dict[str, Any]], "Awaitable[None] | None"]


class ChatSession:
    def __init__(
        self,
        backend: BackendClient,
        viewer_id: str,
        peer_id: str,
        *,
        inbox: ConversationInbox | None = None,
        settings: Settings | None = None,
        on_event: SessionListener | None = None,
    ) -> None:
        self.backend = backend
        self.viewer_id = viewer_id
        self.peer_id = peer_id
        self.conversation = ConversationId.of(viewer_id, peer_id)
        self.inbox = inbox
        self._settings = settings or get_settings()
        self._listeners: list[SessionListener] = [on_event] if on_event else []

        self.thread: list[Message] = []
        self.peer_status = PresenceState(user_id=peer_id)
        self.peer_online = False
        self._seen_ids: set[str] = set()
        self._receipts: set[str] = set()

        self._typing = ExpiringFlag(self._settings.typing_expiry_seconds, on_change=self._typing_changed)
        self._heartbeat = PeriodicTask(
            self._settings.heartbeat_interval_seconds,
            self._beat,
            name=f"heartbeat:{viewer_id}",
        )
        self._poller: PeriodicTask | None = None
        if self._settings.chat_poll_interval_seconds > 0:
            self._poller = PeriodicTask(
                self._settings.chat_poll_interval_seconds,
                self.refresh_thread,
                name=f"poll:{self.conversation.key}",
                run_immediately=False,
            )

        self._typing_channel = backend.channel(Topic.for_conversation(TYPING_TOPIC, self.conversation))
        self._presence_channel = backend.channel(Topic.for_conversation(PRESENCE_TOPIC, self.conversation))
        self._inbox_channel = backend.channel(inbox_topic(viewer_id))
        self._call_channel = backend.channel(call_service.call_topic(viewer_id))
        self._subscriptions: list[Subscription] = []
        self._opened = False
        self._closed = False

    # Lifecycle ----------------------------------------------------------------

    @property
    def peer_typing(self) -> bool:
        return self._typing.value

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def open(self) -> None:
        if self._opened:
            return
        self._opened = True
        self._subscriptions.extend(
            [
                await self._typing_channel.on(TYPING_EVENT, self._handle_typing),
                await self._presence_channel.on(PRESENCE_EVENT, self._handle_presence),
                await self._inbox_channel.on(SEEN_EVENT, self._handle_seen),
                await self._inbox_channel.on(DELETE_EVENT, self._handle_delete),
                await self._call_channel.on(None, self._handle_call),
                await self.backend.subscribe_changes(
                    MESSAGES_TABLE,
                    self._handle_change,
                    where=conversation_filter(self.viewer_id, self.peer_id),
                ),
            ]
        )
        await self._presence_channel.track(self.viewer_id, {"online": True})
        self._update_online(self._presence_channel.members())

        await self.refresh_thread()
        await self.refresh_peer_status()
        self._heartbeat.start()
        if self._poller is not None:
            self._poller.start()
        if self.inbox is not None:
            await self.inbox.mark_opened(self.peer_id)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._typing.cancel()
        await self._heartbeat.stop()
        if self._poller is not None:
            await self._poller.stop()
        for subscription in self._subscriptions:
            await subscription.unsubscribe()
        self._subscriptions.clear()
        try:
            await self._presence_channel.untrack(self.viewer_id)
            await presence_service.update_status(self.backend, user_id=self.viewer_id, online=False)
        except Exception:
            logger.exception("Failed to publish offline status for %s", self.viewer_id)
        self._listeners.clear()

    # Thread -------------------------------------------------------------------

    async def refresh_thread(self) -> bool:
        if self._closed:
            return False
        try:
            messages = await call_with_retry(
                lambda: message_service.list_thread(self.backend, user_id=self.viewer_id, peer_id=self.peer_id),
                retries=self._settings.fetch_retries,
                backoff=self._settings.fetch_backoff_seconds,
                description="thread fetch",
            )
        except Exception:
            logger.exception("Failed to fetch thread %s", self.conversation.key)
            return False
        if self._closed:
            return False
        self.thread = messages
        await self._emit("thread", {"count": len(messages)})
        await self._mark_latest_seen()
        return True

    def is_seen(self, message: Message) -> bool:
        """Seen state as shown in the thread: persisted flag, receipts or our own marks."""

        return message.is_seen or message.id in self._receipts or message.id in self._seen_ids

    async def _mark_latest_seen(self) -> None:
        if not self.thread:
            return
        latest = self.thread[-1]
        if not latest.is_received_by(self.viewer_id) or self.is_seen(latest):
            return
        self._seen_ids.add(latest.id)
        if self.inbox is not None:
            self.inbox.remember_seen([latest.id])
        await message_service.mark_seen(
            self.backend, viewer_id=self.viewer_id, peer_id=self.peer_id, message_ids=[latest.id]
        )

    async def send(self, content: str = "", *, media: MediaUpload | None = None) -> Message:
        """User-triggered: errors propagate to the caller."""

        message = await message_service.send_message(
            self.backend,
            sender_id=self.viewer_id,
            receiver_id=self.peer_id,
            content=content,
            media=media,
        )
        if all(item.id != message.id for item in self.thread):
            self.thread.append(message)
        return message

    async def delete(self, message_id: str) -> None:
        await message_service.delete_message(self.backend, message_id=message_id, requester_id=self.viewer_id)
        self.thread = [item for item in self.thread if item.id != message_id]
        await self._emit("delete", {"message_id": message_id})

    # Typing and presence ------------------------------------------------------

    async def notify_typing(self) -> None:
        try:
            await self._typing_channel.send(TYPING_EVENT, {"user_id": self.viewer_id})
        except Exception:
            logger.exception("Failed to broadcast typing for %s", self.viewer_id)

    async def refresh_peer_status(self) -> PresenceState:
        try:
            self.peer_status = await presence_service.fetch_status(self.backend, user_id=self.peer_id)
        except Exception:
            logger.exception("Failed to fetch status of %s", self.peer_id)
            self.peer_status = PresenceState(user_id=self.peer_id)
        return self.peer_status

    async def _beat(self) -> None:
        await presence_service.update_status(self.backend, user_id=self.viewer_id, online=True)

    async def _typing_changed(self, value: bool) -> None:
        await self._emit("typing", {"user_id": self.peer_id, "typing": value})

    def _update_online(self, members: dict[str, Any]) -> bool:
        online = self.peer_id in members
        changed = online != self.peer_online
        self.peer_online = online
        return changed

    # Event handlers -----------------------------------------------------------

    async def _handle_typing(self, _event: str, payload: dict[str, Any]) -> None:
        if self._closed or payload.get("user_id") != self.peer_id:
            return
        await self._typing.set()

    async def _handle_presence(self, _event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        members = payload.get("members") or {}
        if self._update_online(members):
            await self._emit("presence", {"user_id": self.peer_id, "online": self.peer_online})

    async def _handle_seen(self, _event: str, payload: dict[str, Any]) -> None:
        if self._closed or payload.get("user_id") != self.peer_id:
            return
        ids = [str(item) for item in payload.get("message_ids") or []]
        self._receipts.update(ids)
        await self._emit("seen", {"message_ids": ids})

    async def _handle_delete(self, _event: str, payload: dict[str, Any]) -> None:
        if self._closed or payload.get("user_id") != self.peer_id:
            return
        message_id = str(payload.get("message_id") or "")
        before = len(self.thread)
        self.thread = [item for item in self.thread if item.id != message_id]
        if len(self.thread) != before:
            await self._emit("delete", {"message_id": message_id})

    async def _handle_change(self, _change: ChangeEvent) -> None:
        if self._closed:
            return
        await self.refresh_thread()

    async def _handle_call(self, event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        await self._emit(event, dict(payload))

    async def start_call(self, call_type: str) -> Call:
        return await call_service.start_call(
            self.backend, caller_id=self.viewer_id, receiver_id=self.peer_id, call_type=call_type
        )

    async def _emit(self, kind: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(kind, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Chat session listener failed for %s", self.conversation.key)


__all__ = ["ChatSession", "TYPING_TOPIC", "PRESENCE_TOPIC", "TYPING_EVENT"]
