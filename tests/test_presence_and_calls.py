"""Presence rows, last-seen labels and call signaling."""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from clipstream.backend import AuthorizationError, InvalidRequestError, NotFoundError
from clipstream.models import CallStatus
from clipstream.services import call_service, presence_service


def test_status_row_is_created_then_updated(backend, now):
    async def scenario():
        await presence_service.update_status(backend, user_id="A", online=True, now=now)
        await presence_service.update_status(backend, user_id="A", online=False, now=now + timedelta(minutes=5))
        return await presence_service.fetch_status(backend, user_id="A")

    state = asyncio.run(scenario())

    assert len(backend.rows("user_status")) == 1
    assert state.is_online is False
    assert state.last_seen == now + timedelta(minutes=5)


def test_missing_status_means_offline(backend):
    state = asyncio.run(presence_service.fetch_status(backend, user_id="ghost"))

    assert state.is_online is False
    assert state.last_seen is None


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=10), "Just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=42), "42 minutes ago"),
        (timedelta(hours=1), "1 hour ago"),
        (timedelta(hours=5), "5 hours ago"),
        (timedelta(days=3), "2024-04-28"),
    ],
)
def test_format_last_seen(now, delta, expected):
    assert presence_service.format_last_seen(now - delta, now=now) == expected


def test_format_last_seen_unknown():
    assert presence_service.format_last_seen(None) == "Unknown"


def test_call_flow_notifies_both_sides(backend):
    incoming = []
    updates = []

    async def scenario():
        await backend.channel(call_service.call_topic("B")).on(
            call_service.INCOMING_CALL_EVENT, lambda event, payload: incoming.append(payload)
        )
        await backend.channel(call_service.call_topic("A")).on(
            call_service.CALL_STATUS_EVENT, lambda event, payload: updates.append(payload)
        )
        call = await call_service.start_call(backend, caller_id="A", receiver_id="B", call_type="video")
        answered = await call_service.respond_to_call(backend, call_id=call.id, responder_id="B", accept=True)
        ended = await call_service.end_call(backend, call_id=call.id, user_id="B")
        return call, answered, ended

    call, answered, ended = asyncio.run(scenario())

    assert call.status is CallStatus.PENDING
    assert incoming[0]["call_id"] == call.id and incoming[0]["type"] == "video"
    assert answered.status is CallStatus.ACCEPTED
    assert ended.status is CallStatus.ENDED
    assert updates == [
        {"call_id": call.id, "status": "accepted"},
        {"call_id": call.id, "status": "ended"},
    ]
    assert backend.rows("calls")[0]["status"] == "ended"


def test_only_callee_answers_pending_calls(backend):
    async def scenario():
        call = await call_service.start_call(backend, caller_id="A", receiver_id="B", call_type="audio")
        with pytest.raises(AuthorizationError):
            await call_service.respond_to_call(backend, call_id=call.id, responder_id="A", accept=True)
        await call_service.respond_to_call(backend, call_id=call.id, responder_id="B", accept=False)
        with pytest.raises(InvalidRequestError, match="already rejected"):
            await call_service.respond_to_call(backend, call_id=call.id, responder_id="B", accept=True)
        with pytest.raises(AuthorizationError):
            await call_service.end_call(backend, call_id=call.id, user_id="C")

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"receiver_id": "B", "call_type": "hologram"}, InvalidRequestError),
        ({"receiver_id": "A", "call_type": "audio"}, InvalidRequestError),
    ],
)
def test_start_call_validation(backend, kwargs, error):
    with pytest.raises(error):
        asyncio.run(call_service.start_call(backend, caller_id="A", **kwargs))


def test_unknown_call_is_not_found(backend):
    with pytest.raises(NotFoundError):
        asyncio.run(call_service.respond_to_call(backend, call_id="missing", responder_id="B", accept=True))
