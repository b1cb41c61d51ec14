"""Backend client interface injected into every service and session."""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any

from .channels import BroadcastChannel, ChangeHandler, ChannelHub, Subscription, Topic, subscribe_to_changes
from .errors import AuthenticationError
from .query import Filter, Query, Row


class BackendClient(ABC):
    """Query, storage, change-feed and broadcast access to the hosted backend.

    A client is bound to at most one session token; ``with_token`` returns a
    view sharing transport and realtime state but acting as another user.
    """

    def __init__(self, *, hub: ChannelHub | None = None) -> None:
        self.hub = hub or ChannelHub()
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def with_token(self, token: str | None) -> BackendClient:
        clone = copy.copy(self)
        clone._token = token
        return clone

    def _require_token(self) -> str:
        if not self._token:
            raise AuthenticationError("No active session")
        return self._token

    @abstractmethod
    async def current_user(self) -> str:
        """Return the user id of the bound session or raise AuthenticationError."""

    @abstractmethod
    async def select(self, query: Query) -> list[Row]:
        raise NotImplementedError

    async def select_one(self, query: Query) -> Row | None:
        rows = await self.select(query.limit(1))
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, values: Row | list[Row]) -> list[Row]:
        raise NotImplementedError

    @abstractmethod
    async def update(self, table: str, values: Row, *, where: Filter) -> list[Row]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, table: str, *, where: Filter) -> list[Row]:
        raise NotImplementedError

    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        raise NotImplementedError

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        raise NotImplementedError

    def channel(self, topic: Topic) -> BroadcastChannel:
        return BroadcastChannel(self.hub, topic)

    async def subscribe_changes(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        where: Filter | None = None,
    ) -> Subscription:
        return await subscribe_to_changes(self.hub, table, handler, where=where)

    async def aclose(self) -> None:
        return None

    def describe(self) -> dict[str, Any]:
        return {"kind": type(self).__name__, "authenticated": bool(self._token)}


__all__ = ["BackendClient"]
