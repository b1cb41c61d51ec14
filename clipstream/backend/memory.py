"""In-process backend used for local development and tests."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from ..constants import COMMENTS_TABLE, LIKES_TABLE, MESSAGES_TABLE, VIDEO_VIEWS_TABLE, VIDEOS_TABLE
from ..models.base import coerce_count
from .channels import ChangeEvent, ChannelHub, publish_change
from .client import BackendClient
from .errors import AuthenticationError, AuthorizationError, InvalidRequestError, NotFoundError
from .query import Filter, Query, Row, and_, eq, or_

logger = logging.getLogger(__name__)

# (action, user_id, existing_row, new_values) -> allowed
Policy = Callable[[str, str | None, Row | None, Row], bool]

# Engagement tables whose row counts are mirrored onto ``videos`` by triggers
_VIDEO_COUNTERS = {LIKES_TABLE: "like_count", COMMENTS_TABLE: "comment_count", VIDEO_VIEWS_TABLE: "view_count"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryBackend(BackendClient):
    """Dictionary-backed tables with optional row-level policies.

    Writes publish change events on the shared ``ChannelHub`` so realtime
    subscribers behave as they would against the hosted backend. Inserts and
    deletes on engagement tables adjust the matching ``videos`` counters the
    way the hosted triggers do.
    """

    def __init__(
        self,
        *,
        hub: ChannelHub | None = None,
        follows_table: str = "follows",
        enforce_policies: bool = True,
    ) -> None:
        super().__init__(hub=hub)
        self._tables: dict[str, list[Row]] = {}
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self._sessions: dict[str, str] = {}
        self._policies: dict[str, Policy] = {}
        self.follows_table = follows_table
        if enforce_policies:
            self._policies[MESSAGES_TABLE] = self._message_policy

    # Sessions -----------------------------------------------------------------

    def sign_in(self, user_id: str, *, token: str | None = None) -> str:
        token = token or secrets.token_urlsafe(16)
        self._sessions[token] = user_id
        return token

    def session_for(self, user_id: str) -> BackendClient:
        return self.with_token(self.sign_in(user_id))

    async def current_user(self) -> str:
        token = self._require_token()
        user_id = self._sessions.get(token)
        if user_id is None:
            raise AuthenticationError("Invalid session token")
        return user_id

    def _acting_user(self) -> str | None:
        if not self._token:
            return None
        return self._sessions.get(self._token)

    # Policies -----------------------------------------------------------------

    def set_policy(self, table: str, policy: Policy | None) -> None:
        if policy is None:
            self._policies.pop(table, None)
        else:
            self._policies[table] = policy

    def _check(self, table: str, action: str, existing: Row | None, values: Row) -> None:
        policy = self._policies.get(table)
        if policy is None:
            return
        user_id = self._acting_user()
        if user_id is None:
            raise AuthenticationError("No active session")
        if not policy(action, user_id, existing, values):
            raise AuthorizationError(
                f"Row-level policy rejected {action} on {table}", code="42501", status_code=403
            )

    def _message_policy(self, action: str, user_id: str | None, existing: Row | None, values: Row) -> bool:
        if action == "select":
            return existing is not None and user_id in (existing.get("sender_id"), existing.get("receiver_id"))
        if action == "insert":
            if values.get("sender_id") != user_id:
                return False
            receiver_id = values.get("receiver_id")
            relation = or_(
                and_(eq("follower_id", user_id), eq("following_id", receiver_id)),
                and_(eq("follower_id", receiver_id), eq("following_id", user_id)),
            )
            return any(relation.matches(row) for row in self._tables.get(self.follows_table, []))
        if existing is None:
            return False
        if action == "update":
            if existing.get("sender_id") == user_id:
                return True
            # Receivers may only flip the seen flag.
            return existing.get("receiver_id") == user_id and set(values) <= {"is_seen"}
        if action == "delete":
            return existing.get("sender_id") == user_id
        return False

    # Rows ---------------------------------------------------------------------

    def seed(self, table: str, rows: list[Row]) -> list[Row]:
        """Insert rows directly, bypassing policies and change events."""

        stored = [self._prepare(row) for row in rows]
        self._tables.setdefault(table, []).extend(stored)
        return [dict(row) for row in stored]

    def rows(self, table: str) -> list[Row]:
        return [dict(row) for row in self._tables.get(table, [])]

    @staticmethod
    def _prepare(values: Row) -> Row:
        row = dict(values)
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", _now_iso())
        return row

    async def select(self, query: Query) -> list[Row]:
        rows = self._tables.get(query.table, [])
        if query.table in self._policies:
            visible = []
            for row in rows:
                try:
                    self._check(query.table, "select", row, {})
                except AuthorizationError:
                    continue
                visible.append(row)
            rows = visible
        return query.apply(rows)

    async def insert(self, table: str, values: Row | list[Row]) -> list[Row]:
        batch = [values] if isinstance(values, dict) else list(values)
        if not batch:
            raise InvalidRequestError("Nothing to insert")
        prepared = [self._prepare(row) for row in batch]
        for row in prepared:
            self._check(table, "insert", None, row)
        self._tables.setdefault(table, []).extend(prepared)
        self._bump_video_counts(table, prepared, 1)
        for row in prepared:
            await publish_change(self.hub, ChangeEvent(table=table, type="INSERT", new=dict(row)))
        return [dict(row) for row in prepared]

    async def update(self, table: str, values: Row, *, where: Filter) -> list[Row]:
        targets = [row for row in self._tables.get(table, []) if where.matches(row)]
        for row in targets:
            self._check(table, "update", row, values)
        changes: list[ChangeEvent] = []
        for row in targets:
            old = dict(row)
            row.update(values)
            changes.append(ChangeEvent(table=table, type="UPDATE", new=dict(row), old=old))
        for change in changes:
            await publish_change(self.hub, change)
        return [dict(row) for row in targets]

    async def delete(self, table: str, *, where: Filter) -> list[Row]:
        rows = self._tables.get(table, [])
        targets = [row for row in rows if where.matches(row)]
        for row in targets:
            self._check(table, "delete", row, {})
        self._tables[table] = [row for row in rows if not where.matches(row)]
        self._bump_video_counts(table, targets, -1)
        for row in targets:
            await publish_change(self.hub, ChangeEvent(table=table, type="DELETE", old=dict(row)))
        return [dict(row) for row in targets]

    def _bump_video_counts(self, table: str, rows: list[Row], delta: int) -> None:
        column = _VIDEO_COUNTERS.get(table)
        if column is None:
            return
        videos = {str(video.get("id")): video for video in self._tables.get(VIDEOS_TABLE, [])}
        for row in rows:
            video = videos.get(str(row.get("video_id")))
            if video is not None:
                video[column] = max(coerce_count(video.get(column)) + delta, 0)

    # Storage ------------------------------------------------------------------

    async def upload(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        self._require_token()
        key = (bucket, path)
        if key in self._objects and not upsert:
            raise InvalidRequestError(f"Object {path} already exists", code="409", status_code=409)
        self._objects[key] = (bytes(data), content_type)
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"memory://{bucket}/{path}"

    def download(self, bucket: str, path: str) -> tuple[bytes, str]:
        try:
            return self._objects[(bucket, path)]
        except KeyError as exc:
            raise NotFoundError(f"Object {path} not found") from exc

    def describe(self) -> dict[str, Any]:
        info = super().describe()
        info["tables"] = sorted(self._tables)
        return info


__all__ = ["InMemoryBackend", "Policy"]
