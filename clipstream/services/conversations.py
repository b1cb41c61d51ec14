"""Per-peer conversation summaries kept live against realtime events.

``ConversationComposer`` is the synchronous state machine: it folds a
message history into summaries and applies change and seen events.
``ConversationInbox`` wires a composer to the backend: fetches, change-feed
subscription, seen receipts and lifecycle.
"""
from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping

from ..backend import BackendClient, ChangeEvent, Subscription, call_with_retry
from ..config import Settings, get_settings
from ..constants import MESSAGES_TABLE
from ..models import ConversationId, ConversationSummary, Message, UserProfile
from .message_service import SEEN_EVENT, inbox_topic, list_for_user, participant_filter
from .profile_service import fetch_profiles

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

SummaryListener = Callable[[list[ConversationSummary]], "Awaitable[None] | None"]


def _timestamp(message: Message) -> datetime:
    return message.created_at or _EPOCH


class ConversationComposer:
    """Fold messages into most-recent-first summaries for one viewer.

    The persisted ``is_seen`` flag is authoritative. ``remember_seen`` adds
    ids to an optimistic cache that is dropped on every ``build``.
    """

    def __init__(self, viewer_id: str) -> None:
        self.viewer_id = viewer_id
        self._summaries: list[ConversationSummary] = []
        self._seen_cache: set[str] = set()

    @property
    def summaries(self) -> list[ConversationSummary]:
        return list(self._summaries)

    def get(self, peer_id: str) -> ConversationSummary | None:
        for summary in self._summaries:
            if summary.peer_id == peer_id:
                return summary
        return None

    def is_seen(self, message: Message) -> bool:
        return message.is_seen or message.id in self._seen_cache

    def remember_seen(self, message_ids: Iterable[str]) -> None:
        self._seen_cache.update(message_ids)

    def _is_unread(self, message: Message) -> bool:
        return message.is_received_by(self.viewer_id) and not self.is_seen(message)

    def _seen_flag(self, message: Message) -> bool:
        # Receipts only matter for our own messages.
        if message.sender_id == self.viewer_id:
            return self.is_seen(message)
        return True

    def _new_summary(self, message: Message) -> ConversationSummary:
        peer_id = message.peer_of(self.viewer_id)
        return ConversationSummary(
            conversation_id=ConversationId.of(self.viewer_id, peer_id),
            peer_id=peer_id,
            last_message=message,
            unread_count=1 if self._is_unread(message) else 0,
            is_seen=self._seen_flag(message),
        )

    def build(self, messages: Iterable[Message]) -> list[ConversationSummary]:
        """Rebuild all summaries from an authoritative message list."""

        self._seen_cache.clear()
        relevant = [message for message in messages if message.involves(self.viewer_id)]
        by_peer: dict[str, ConversationSummary] = {}
        for message in sorted(relevant, key=_timestamp):
            peer_id = message.peer_of(self.viewer_id)
            summary = by_peer.get(peer_id)
            if summary is None:
                by_peer[peer_id] = self._new_summary(message)
                continue
            if _timestamp(message) <= _timestamp(summary.last_message):
                continue
            summary.last_message = message
            summary.is_seen = self._seen_flag(message)
            if self._is_unread(message):
                summary.unread_count += 1

        self._summaries = sorted(
            by_peer.values(),
            key=lambda item: _timestamp(item.last_message),
            reverse=True,
        )
        return self.summaries

    def apply_message(self, message: Message) -> bool:
        """Apply a message-changed event.

        Returns False when the peer is unknown and a full rebuild is needed.
        """

        if not message.involves(self.viewer_id):
            return True
        peer_id = message.peer_of(self.viewer_id)
        index = next((i for i, item in enumerate(self._summaries) if item.peer_id == peer_id), None)
        if index is None:
            return False

        summary = self._summaries[index]
        is_current = summary.last_message.id == message.id
        if not is_current and self._is_unread(message):
            summary.unread_count += 1
        # Events for older messages never displace the newest one.
        if is_current or _timestamp(message) >= _timestamp(summary.last_message):
            summary.last_message = message
            summary.is_seen = self._seen_flag(message)
            self._summaries.insert(0, self._summaries.pop(index))
        return True

    def apply_seen(self, peer_id: str) -> int:
        """The peer saw our messages: flag their summaries' last message seen."""

        if peer_id == self.viewer_id:
            return 0
        updated = 0
        for summary in self._summaries:
            if summary.peer_id != peer_id:
                continue
            summary.last_message = dataclasses.replace(summary.last_message, is_seen=True)
            summary.is_seen = True
            updated += 1
        return updated

    def reset_unread(self, peer_id: str) -> None:
        """The viewer opened the conversation."""

        summary = self.get(peer_id)
        if summary is not None:
            summary.unread_count = 0

    def attach_profiles(self, profiles: Mapping[str, UserProfile]) -> None:
        for summary in self._summaries:
            profile = profiles.get(summary.peer_id)
            if profile is not None:
                summary.peer = profile


async def load_conversations(backend: BackendClient, *, viewer_id: str) -> list[ConversationSummary]:
    """One-shot cold build, used by request/response callers."""

    composer = ConversationComposer(viewer_id)
    composer.build(await list_for_user(backend, user_id=viewer_id))
    composer.attach_profiles(await fetch_profiles(backend, (item.peer_id for item in composer.summaries)))
    return composer.summaries


class ConversationInbox:
    """Live conversation list for one viewer.

    Failures while fetching or handling events are logged and the last
    known-good summaries are kept. Only the most recently started refresh
    may rebuild the summaries, and events applied while its fetch was in
    flight are replayed on top of the fetched snapshot. ``close`` cancels
    in-flight fetches and drops subscriptions; results arriving afterwards
    are discarded.
    """

    def __init__(
        self,
        backend: BackendClient,
        viewer_id: str,
        *,
        settings: Settings | None = None,
        on_change: SummaryListener | None = None,
    ) -> None:
        self.backend = backend
        self.viewer_id = viewer_id
        self.composer = ConversationComposer(viewer_id)
        self._settings = settings or get_settings()
        self._listeners: list[SummaryListener] = [on_change] if on_change else []
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task[Any]] = set()
        self._generation = 0
        self._missed_messages: list[Message] = []
        self._missed_seen: set[str] = set()
        self._missed_opened: set[str] = set()
        self._closed = False

    @property
    def summaries(self) -> list[ConversationSummary]:
        return self.composer.summaries

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: SummaryListener) -> None:
        self._listeners.append(listener)

    async def start(self) -> None:
        self._subscriptions.append(
            await self.backend.subscribe_changes(
                MESSAGES_TABLE, self._handle_change, where=participant_filter(self.viewer_id)
            )
        )
        self._subscriptions.append(
            await self.backend.channel(inbox_topic(self.viewer_id)).on(SEEN_EVENT, self._handle_seen)
        )
        await self.refresh()

    async def refresh(self) -> bool:
        """Rebuild from the backend.

        Returns False if the fetch failed or a newer refresh superseded it.
        """

        if self._closed:
            return False
        self._generation += 1
        generation = self._generation
        task = asyncio.create_task(self._fetch())
        self._pending.add(task)
        try:
            messages, profiles = await task
        except asyncio.CancelledError:
            if self._closed:
                return False
            raise
        except Exception:
            logger.exception("Failed to refresh conversations for %s", self.viewer_id)
            if generation == self._generation:
                self._clear_missed()
            return False
        finally:
            self._pending.discard(task)

        if self._closed:
            return False
        if generation != self._generation:
            logger.debug("Dropping superseded conversation refresh for %s", self.viewer_id)
            return False
        self.composer.build(messages)
        self._replay_missed(messages)
        self.composer.attach_profiles(profiles)
        await self._notify()
        return True

    def _replay_missed(self, fetched: list[Message]) -> None:
        fetched_ids = {message.id for message in fetched}
        for message in self._missed_messages:
            if message.id not in fetched_ids:
                self.composer.apply_message(message)
        for peer_id in self._missed_seen:
            self.composer.apply_seen(peer_id)
        for peer_id in self._missed_opened:
            self.composer.reset_unread(peer_id)
        self._clear_missed()

    def _clear_missed(self) -> None:
        self._missed_messages.clear()
        self._missed_seen.clear()
        self._missed_opened.clear()

    async def _fetch(self) -> tuple[list[Message], dict[str, UserProfile]]:
        messages = await call_with_retry(
            lambda: list_for_user(self.backend, user_id=self.viewer_id),
            retries=self._settings.fetch_retries,
            backoff=self._settings.fetch_backoff_seconds,
            description="conversation fetch",
        )
        peers = {message.peer_of(self.viewer_id) for message in messages}
        try:
            profiles = await fetch_profiles(self.backend, peers)
        except Exception:
            logger.warning("Profile lookup failed for %s; summaries keep previous metadata", self.viewer_id)
            profiles = {summary.peer_id: summary.peer for summary in self.composer.summaries if summary.peer}
        return messages, profiles

    async def _handle_change(self, change: ChangeEvent) -> None:
        if self._closed or change.new is None:
            return
        try:
            message = Message.from_row(change.new)
            if self.composer.apply_message(message):
                if self._pending:
                    self._missed_messages.append(message)
                await self._notify()
                return
        except Exception:
            logger.exception("Failed to apply message event for %s", self.viewer_id)
            return
        await self.refresh()

    async def _handle_seen(self, _event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            peer_id = str(payload.get("user_id") or "")
            if peer_id and self._pending:
                self._missed_seen.add(peer_id)
            if peer_id and self.composer.apply_seen(peer_id):
                await self._notify()
        except Exception:
            logger.exception("Failed to apply seen receipt for %s", self.viewer_id)

    def remember_seen(self, message_ids: Iterable[str]) -> None:
        self.composer.remember_seen(message_ids)

    async def mark_opened(self, peer_id: str) -> None:
        if self._pending:
            self._missed_opened.add(peer_id)
        self.composer.reset_unread(peer_id)
        await self._notify()

    async def _notify(self) -> None:
        snapshot = self.composer.summaries
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Conversation listener failed for %s", self.viewer_id)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        for subscription in self._subscriptions:
            await subscription.unsubscribe()
        self._subscriptions.clear()
        self._listeners.clear()


__all__ = [
    "ConversationComposer",
    "ConversationInbox",
    "load_conversations",
]
