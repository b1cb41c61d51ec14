"""HTTP client for a PostgREST-compatible hosted backend.

Covers the data API (``/rest/v1``), object storage (``/storage/v1``), session
lookup (``/auth/v1/user``) and the HTTP broadcast endpoint
(``/realtime/v1/api/broadcast``). Change events for writes issued through
this client, and broadcasts it sends, are also fanned out on the
process-local ``ChannelHub`` that the websocket routes relay to clients.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from .channels import BroadcastChannel, ChangeEvent, ChannelHub, Payload, Topic, publish_change
from .client import BackendClient
from .errors import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    InvalidRequestError,
    NotFoundError,
    TransientBackendError,
)
from .query import Filter, Query, Row

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"PGRST116"}
_FORBIDDEN_CODES = {"42501"}


def error_from_response(response: httpx.Response) -> BackendError:
    """Map an error response onto the backend error taxonomy."""

    code: str | None = None
    message = response.reason_phrase or "Backend request failed"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("code")) if body.get("code") is not None else None
        message = str(body.get("message") or body.get("msg") or body.get("error") or message)

    status_code = response.status_code
    if status_code == 401:
        return AuthenticationError(message, code=code, status_code=status_code)
    if status_code == 403 or code in _FORBIDDEN_CODES:
        return AuthorizationError(message, code=code, status_code=status_code)
    if status_code == 404 or code in _NOT_FOUND_CODES:
        return NotFoundError(message, code=code, status_code=status_code)
    if status_code in (408, 429) or status_code >= 500:
        return TransientBackendError(message, code=code, status_code=status_code)
    return InvalidRequestError(message, code=code, status_code=status_code)


class RestBackend(BackendClient):
    """Backend client speaking to the hosted data, storage and auth APIs."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        hub: ChannelHub | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(hub=hub)
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._http = http or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._user_cache: dict[str, str] = {}

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._token or self._api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                content=content,
                headers=self._headers(headers),
            )
        except httpx.TimeoutException as exc:
            raise TransientBackendError(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise TransientBackendError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise error_from_response(response)
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> list[Row]:
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, list):
            return [row for row in data if isinstance(row, dict)]
        if isinstance(data, dict):
            return [data]
        return []

    async def current_user(self) -> str:
        token = self._require_token()
        cached = self._user_cache.get(token)
        if cached is not None:
            return cached
        response = await self._request("GET", "/auth/v1/user")
        payload = response.json()
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthenticationError("Session has no user")
        self._user_cache[token] = str(user_id)
        return str(user_id)

    async def select(self, query: Query) -> list[Row]:
        response = await self._request("GET", f"/rest/v1/{query.table}", params=query.to_params())
        return self._rows(response)

    async def insert(self, table: str, values: Row | list[Row]) -> list[Row]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=values,
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        for row in rows:
            await publish_change(self.hub, ChangeEvent(table=table, type="INSERT", new=row))
        return rows

    async def update(self, table: str, values: Row, *, where: Filter) -> list[Row]:
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=where.to_params(),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        for row in rows:
            await publish_change(self.hub, ChangeEvent(table=table, type="UPDATE", new=row))
        return rows

    async def delete(self, table: str, *, where: Filter) -> list[Row]:
        response = await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params=where.to_params(),
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(response)
        for row in rows:
            await publish_change(self.hub, ChangeEvent(table=table, type="DELETE", old=row))
        return rows

    async def upload(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=data,
            headers={
                "Content-Type": content_type,
                "Cache-Control": "max-age=3600",
                "x-upsert": "true" if upsert else "false",
            },
        )
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    async def _broadcast(self, topic: Topic, event: str, payload: Payload) -> None:
        await self._request(
            "POST",
            "/realtime/v1/api/broadcast",
            json={"messages": [{"topic": topic.name, "event": event, "payload": payload}]},
        )

    def channel(self, topic: Topic) -> BroadcastChannel:
        return BroadcastChannel(self.hub, topic, relay=self._broadcast)

    async def aclose(self) -> None:
        await self._http.aclose()


__all__ = ["RestBackend", "error_from_response"]
