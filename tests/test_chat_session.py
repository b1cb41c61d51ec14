"""Open-conversation lifecycle: typing expiry, presence, heartbeat, teardown."""
from __future__ import annotations

import asyncio

from clipstream.backend import Topic
from clipstream.config import Settings
from clipstream.models import ConversationId
from clipstream.services import ChatSession, ConversationInbox, message_service
from clipstream.services.chat_session import PRESENCE_TOPIC, TYPING_EVENT, TYPING_TOPIC


def _settings(**overrides) -> Settings:
    values = {
        "typing_expiry_seconds": 0.05,
        "heartbeat_interval_seconds": 60.0,
        "chat_poll_interval_seconds": 0.0,
        "fetch_retries": 0,
        "fetch_backoff_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


def _typing_channel(backend):
    return backend.channel(Topic.for_conversation(TYPING_TOPIC, ConversationId.of("A", "B")))


def _presence_channel(backend):
    return backend.channel(Topic.for_conversation(PRESENCE_TOPIC, ConversationId.of("A", "B")))


def test_peer_typing_expires_after_ttl(backend, connect_users):
    connect_users("A", "B")
    events = []

    async def scenario():
        session = ChatSession(
            backend.session_for("B"), "B", "A", settings=_settings(), on_event=lambda kind, data: events.append((kind, data))
        )
        await session.open()
        await _typing_channel(backend).send(TYPING_EVENT, {"user_id": "A"})
        typing_now = session.peer_typing
        await asyncio.sleep(0.15)
        typing_later = session.peer_typing
        await session.close()
        return typing_now, typing_later

    typing_now, typing_later = asyncio.run(scenario())

    assert typing_now is True
    assert typing_later is False
    typing_events = [data["typing"] for kind, data in events if kind == "typing"]
    assert typing_events == [True, False]


def test_repeated_typing_rearms_expiry(backend, connect_users):
    connect_users("A", "B")

    async def scenario():
        session = ChatSession(backend.session_for("B"), "B", "A", settings=_settings(typing_expiry_seconds=0.1))
        await session.open()
        channel = _typing_channel(backend)
        await channel.send(TYPING_EVENT, {"user_id": "A"})
        await asyncio.sleep(0.06)
        await channel.send(TYPING_EVENT, {"user_id": "A"})
        await asyncio.sleep(0.06)
        still_typing = session.peer_typing
        await session.close()
        return still_typing

    assert asyncio.run(scenario()) is True


def test_own_typing_is_ignored(backend, connect_users):
    connect_users("A", "B")

    async def scenario():
        session = ChatSession(backend.session_for("B"), "B", "A", settings=_settings())
        await session.open()
        await session.notify_typing()
        typing = session.peer_typing
        await session.close()
        return typing

    assert asyncio.run(scenario()) is False


def test_presence_follows_peer_membership(backend, connect_users):
    connect_users("A", "B")

    async def scenario():
        session = ChatSession(backend.session_for("B"), "B", "A", settings=_settings())
        await session.open()
        presence = _presence_channel(backend)
        before = session.peer_online
        await presence.track("A", {"online": True})
        during = session.peer_online
        await presence.untrack("A")
        after = session.peer_online
        await session.close()
        return before, during, after

    assert asyncio.run(scenario()) == (False, True, False)


def test_heartbeat_writes_status_and_close_marks_offline(backend, connect_users):
    connect_users("A", "B")

    async def scenario():
        session = ChatSession(
            backend.session_for("B"), "B", "A", settings=_settings(heartbeat_interval_seconds=0.02)
        )
        await session.open()
        await asyncio.sleep(0.07)
        online_rows = backend.rows("user_status")
        await session.close()
        return online_rows, backend.rows("user_status")

    online_rows, final_rows = asyncio.run(scenario())

    assert len(online_rows) == 1
    assert online_rows[0]["user_id"] == "B" and online_rows[0]["is_online"] is True
    assert len(final_rows) == 1
    assert final_rows[0]["is_online"] is False


def test_close_cancels_timers_and_subscriptions(backend, connect_users):
    connect_users("A", "B")
    events = []

    async def scenario():
        session = ChatSession(
            backend.session_for("B"),
            "B",
            "A",
            settings=_settings(heartbeat_interval_seconds=0.02, chat_poll_interval_seconds=0.02),
            on_event=lambda kind, data: events.append(kind),
        )
        await session.open()
        await _typing_channel(backend).send(TYPING_EVENT, {"user_id": "A"})
        await session.close()
        heartbeat_running = session._heartbeat.running
        poller_running = session._poller.running
        count = len(events)
        await _typing_channel(backend).send(TYPING_EVENT, {"user_id": "A"})
        await asyncio.sleep(0.1)
        return heartbeat_running, poller_running, count, session.peer_typing

    heartbeat_running, poller_running, count, typing = asyncio.run(scenario())

    assert heartbeat_running is False
    assert poller_running is False
    assert typing is False
    assert len(events) == count
    assert backend.hub.subscriber_count("typing:A:B") == 0
    assert backend.hub.subscriber_count("changes:messages") == 0
    assert backend.hub.members("presence:A:B") == {}


def test_open_marks_latest_received_message_seen(backend, connect_users, message_row):
    connect_users("A", "B")
    backend.seed("messages", [message_row("A", "B", 1, id="m1"), message_row("A", "B", 2, id="m2")])

    async def scenario():
        viewer = backend.session_for("B")
        inbox = ConversationInbox(viewer, "B", settings=_settings())
        await inbox.start()
        session = ChatSession(viewer, "B", "A", inbox=inbox, settings=_settings())
        await session.open()
        thread_ids = [item.id for item in session.thread]
        unread = inbox.composer.get("A").unread_count
        await session.close()
        await inbox.close()
        return thread_ids, unread

    thread_ids, unread = asyncio.run(scenario())

    assert thread_ids == ["m1", "m2"]
    assert unread == 0
    seen = {row["id"]: row["is_seen"] for row in backend.rows("messages")}
    assert seen["m2"] is True


def test_peer_seen_receipt_marks_our_messages(backend, connect_users, message_row):
    connect_users("A", "B")
    backend.seed("messages", [message_row("B", "A", 1, id="mine")])
    events = []

    async def scenario():
        session = ChatSession(
            backend.session_for("B"), "B", "A", settings=_settings(), on_event=lambda kind, data: events.append(kind)
        )
        await session.open()
        before = session.is_seen(session.thread[0])
        await message_service.mark_seen(backend.session_for("A"), viewer_id="A", peer_id="B", message_ids=["mine"])
        after = session.is_seen(session.thread[0])
        await session.close()
        return before, after

    before, after = asyncio.run(scenario())

    assert before is False
    assert after is True
    assert "seen" in events


def test_send_and_delete_update_thread(backend, connect_users):
    connect_users("B", "A")

    async def scenario():
        session = ChatSession(backend.session_for("B"), "B", "A", settings=_settings())
        await session.open()
        message = await session.send("hello there")
        ids_after_send = [item.id for item in session.thread]
        await session.delete(message.id)
        ids_after_delete = [item.id for item in session.thread]
        await session.close()
        return message, ids_after_send, ids_after_delete

    message, ids_after_send, ids_after_delete = asyncio.run(scenario())

    assert message.content == "hello there"
    assert ids_after_send == [message.id]
    assert ids_after_delete == []
