"""RestBackend request shaping and error mapping, driven by httpx.MockTransport."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from clipstream.backend import (
    AuthenticationError,
    AuthorizationError,
    InvalidRequestError,
    NotFoundError,
    Query,
    RestBackend,
    Topic,
    TransientBackendError,
    and_,
    eq,
    in_,
    or_,
)

BASE_URL = "https://project.example"


def _backend(handler) -> RestBackend:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return RestBackend(BASE_URL, "anon-key", http=http)


def test_select_renders_postgrest_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = list(request.url.params.multi_items())
        seen["auth"] = request.headers["Authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json=[{"id": "m1"}])

    query = (
        Query("messages")
        .where(or_(and_(eq("sender_id", "a"), eq("receiver_id", "b")), and_(eq("sender_id", "b"), eq("receiver_id", "a"))))
        .order_by("created_at", desc=True)
        .limit(5)
    )
    backend = _backend(handler).with_token("user-jwt")

    rows = asyncio.run(backend.select(query))

    assert rows == [{"id": "m1"}]
    assert seen["path"] == "/rest/v1/messages"
    assert seen["params"] == [
        ("select", "*"),
        ("or", "(and(sender_id.eq.a,receiver_id.eq.b),and(sender_id.eq.b,receiver_id.eq.a))"),
        ("order", "created_at.desc"),
        ("limit", "5"),
    ]
    assert seen["auth"] == "Bearer user-jwt"
    assert seen["apikey"] == "anon-key"


def test_anonymous_requests_use_api_key():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer anon-key"
        return httpx.Response(200, json=[])

    assert asyncio.run(_backend(handler).select(Query("videos"))) == []


def test_update_sends_filters_and_publishes_change():
    seen = {}
    changes = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["params"] = list(request.url.params.multi_items())
        seen["body"] = json.loads(request.content)
        seen["prefer"] = request.headers["Prefer"]
        return httpx.Response(200, json=[{"id": "m1", "is_seen": True}])

    backend = _backend(handler)

    async def scenario():
        await backend.subscribe_changes("messages", changes.append)
        return await backend.update("messages", {"is_seen": True}, where=and_(in_("id", ["m1", "m2"]), eq("receiver_id", "b")))

    rows = asyncio.run(scenario())

    assert rows == [{"id": "m1", "is_seen": True}]
    assert seen["method"] == "PATCH"
    assert seen["params"] == [("id", "in.(m1,m2)"), ("receiver_id", "eq.b")]
    assert seen["body"] == {"is_seen": True}
    assert seen["prefer"] == "return=representation"
    assert [change.type for change in changes] == ["UPDATE"]


@pytest.mark.parametrize(
    "status, body, error",
    [
        (401, {"message": "JWT expired"}, AuthenticationError),
        (403, {"message": "denied"}, AuthorizationError),
        (400, {"code": "42501", "message": "row-level security"}, AuthorizationError),
        (406, {"code": "PGRST116", "message": "no rows"}, NotFoundError),
        (404, {}, NotFoundError),
        (429, {}, TransientBackendError),
        (503, {}, TransientBackendError),
        (422, {"message": "bad column"}, InvalidRequestError),
    ],
)
def test_error_responses_are_mapped(status, body, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    with pytest.raises(error):
        asyncio.run(_backend(handler).select(Query("messages")))


def test_transport_failures_are_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientBackendError) as excinfo:
        asyncio.run(_backend(handler).select(Query("messages")))
    assert excinfo.value.retryable is True


def test_current_user_is_resolved_and_cached():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"id": "user-1"})

    backend = _backend(handler).with_token("jwt")

    async def scenario():
        return await backend.current_user(), await backend.current_user()

    assert asyncio.run(scenario()) == ("user-1", "user-1")
    assert calls == ["/auth/v1/user"]


def test_current_user_without_token_fails():
    with pytest.raises(AuthenticationError):
        asyncio.run(_backend(lambda request: httpx.Response(200, json={})).current_user())


def test_channel_send_posts_broadcast_and_fans_out_locally():
    posted = []
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append((request.url.path, json.loads(request.content)))
        return httpx.Response(202)

    backend = _backend(handler)
    channel = backend.channel(Topic("typing", "a:b"))

    async def scenario():
        await channel.on("typing", lambda event, payload: received.append(payload))
        await channel.send("typing", {"user_id": "a"})

    asyncio.run(scenario())

    assert posted == [
        (
            "/realtime/v1/api/broadcast",
            {"messages": [{"topic": "typing:a:b", "event": "typing", "payload": {"user_id": "a"}}]},
        )
    ]
    assert received == [{"user_id": "a"}]


def test_upload_and_public_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["upsert"] = request.headers["x-upsert"]
        seen["content"] = request.content
        return httpx.Response(200, json={"Key": "chat-media/images/a.jpg"})

    backend = _backend(handler).with_token("jwt")

    path = asyncio.run(backend.upload("chat-media", "images/a.jpg", b"data", content_type="image/jpeg"))

    assert path == "images/a.jpg"
    assert seen == {"path": "/storage/v1/object/chat-media/images/a.jpg", "upsert": "true", "content": b"data"}
    assert backend.public_url("chat-media", path) == f"{BASE_URL}/storage/v1/object/public/chat-media/images/a.jpg"
