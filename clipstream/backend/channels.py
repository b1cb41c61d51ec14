"""Topic-scoped broadcast, presence and change-event fan-out."""
from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from .query import Filter, Row

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
EventHandler = Callable[[str, Payload], "Awaitable[None] | None"]

PRESENCE_EVENT = "presence"


class _Keyed(Protocol):
    @property
    def key(self) -> str: ...


@dataclass(frozen=True, slots=True)
class Topic:
    """Structured channel identifier: a kind plus the scope it belongs to."""

    kind: str
    scope: str

    @property
    def name(self) -> str:
        return f"{self.kind}:{self.scope}"

    @classmethod
    def for_conversation(cls, kind: str, conversation: _Keyed) -> Topic:
        return cls(kind, conversation.key)

    @classmethod
    def for_user(cls, kind: str, user_id: str) -> Topic:
        return cls(kind, user_id)

    @classmethod
    def for_table(cls, table: str) -> Topic:
        return cls("changes", table)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A row change delivered by the backend's change feed."""

    table: str
    type: str
    new: Row | None = None
    old: Row | None = None

    @property
    def row(self) -> Row | None:
        return self.new if self.new is not None else self.old

    def as_payload(self) -> Payload:
        return {"table": self.table, "type": self.type, "new": self.new, "old": self.old}

    @classmethod
    def from_payload(cls, payload: Payload) -> ChangeEvent:
        return cls(
            table=str(payload.get("table") or ""),
            type=str(payload.get("type") or ""),
            new=payload.get("new"),
            old=payload.get("old"),
        )


@dataclass(slots=True)
class Subscription:
    """Handle returned by every subscribe call; ``unsubscribe`` is idempotent."""

    hub: ChannelHub
    topic: str
    token: int
    active: bool = field(default=True)

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self.hub.unsubscribe(self)


class ChannelHub:
    """Tracks per-topic handlers and presence members and fans out events."""

    def __init__(self) -> None:
        self._handlers: dict[str, dict[int, tuple[str | None, EventHandler]]] = {}
        self._presence: dict[str, dict[str, Payload]] = {}
        self._tokens = itertools.count(1)
        self._lock = asyncio.Lock()

    async def subscribe(self, topic: str, handler: EventHandler, *, event: str | None = None) -> Subscription:
        async with self._lock:
            token = next(self._tokens)
            group = self._handlers.setdefault(topic, {})
            group[token] = (event, handler)
        return Subscription(hub=self, topic=topic, token=token)

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            group = self._handlers.get(subscription.topic)
            if group is None:
                return
            group.pop(subscription.token, None)
            if not group:
                self._handlers.pop(subscription.topic, None)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, {}))

    async def publish(self, topic: str, event: str, payload: Payload) -> None:
        async with self._lock:
            targets = [
                handler
                for wanted, handler in self._handlers.get(topic, {}).values()
                if wanted is None or wanted == event
            ]
        for handler in targets:
            try:
                result = handler(event, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s/%s failed", topic, event)

    async def track(self, topic: str, key: str, meta: Payload | None = None) -> None:
        async with self._lock:
            self._presence.setdefault(topic, {})[key] = dict(meta or {})
        await self._publish_presence(topic)

    async def untrack(self, topic: str, key: str) -> None:
        async with self._lock:
            members = self._presence.get(topic)
            if members is None or key not in members:
                return
            members.pop(key, None)
            if not members:
                self._presence.pop(topic, None)
        await self._publish_presence(topic)

    def members(self, topic: str) -> dict[str, Payload]:
        return {key: dict(meta) for key, meta in self._presence.get(topic, {}).items()}

    async def _publish_presence(self, topic: str) -> None:
        await self.publish(topic, PRESENCE_EVENT, {"members": self.members(topic)})


class BroadcastChannel:
    """Capability handle for a single topic: send, listen and track presence."""

    def __init__(
        self,
        hub: ChannelHub,
        topic: Topic,
        *,
        relay: Callable[[Topic, str, Payload], Awaitable[None]] | None = None,
    ) -> None:
        self._hub = hub
        self.topic = topic
        self._relay = relay

    async def send(self, event: str, payload: Payload) -> None:
        if self._relay is not None:
            await self._relay(self.topic, event, payload)
        await self._hub.publish(self.topic.name, event, payload)

    async def on(self, event: str | None, handler: EventHandler) -> Subscription:
        return await self._hub.subscribe(self.topic.name, handler, event=event)

    async def track(self, key: str, meta: Payload | None = None) -> None:
        await self._hub.track(self.topic.name, key, meta)

    async def untrack(self, key: str) -> None:
        await self._hub.untrack(self.topic.name, key)

    def members(self) -> dict[str, Payload]:
        return self._hub.members(self.topic.name)


ChangeHandler = Callable[[ChangeEvent], "Awaitable[None] | None"]


async def subscribe_to_changes(
    hub: ChannelHub,
    table: str,
    handler: ChangeHandler,
    *,
    where: Filter | None = None,
) -> Subscription:
    """Subscribe ``handler`` to change events on ``table`` matching ``where``."""

    async def _dispatch(_event: str, payload: Payload) -> None:
        change = ChangeEvent.from_payload(payload)
        row = change.row
        if where is not None and (row is None or not where.matches(row)):
            return
        result = handler(change)
        if inspect.isawaitable(result):
            await result

    return await hub.subscribe(Topic.for_table(table).name, _dispatch)


async def publish_change(hub: ChannelHub, change: ChangeEvent) -> None:
    await hub.publish(Topic.for_table(change.table).name, change.type, change.as_payload())


__all__ = [
    "Topic",
    "ChangeEvent",
    "Subscription",
    "ChannelHub",
    "BroadcastChannel",
    "subscribe_to_changes",
    "publish_change",
    "PRESENCE_EVENT",
]
