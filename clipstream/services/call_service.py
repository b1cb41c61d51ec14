"""Call signaling: call records plus an ``incoming_call`` broadcast."""
from __future__ import annotations

import logging

from ..backend import AuthorizationError, BackendClient, InvalidRequestError, NotFoundError, Query, Topic, eq
from ..constants import CALL_TYPES, CALLS_TABLE
from ..models import Call, CallStatus, UserProfile

logger = logging.getLogger(__name__)

CALL_TOPIC = "calls"
INCOMING_CALL_EVENT = "incoming_call"
CALL_STATUS_EVENT = "call_status"


def call_topic(user_id: str) -> Topic:
    return Topic.for_user(CALL_TOPIC, user_id)


async def _get_call(backend: BackendClient, call_id: str) -> Call:
    row = await backend.select_one(Query(CALLS_TABLE).where(eq("id", call_id)))
    if row is None:
        raise NotFoundError("Call not found")
    return Call.from_row(row)


async def start_call(
    backend: BackendClient,
    *,
    caller_id: str,
    receiver_id: str,
    call_type: str,
    caller: UserProfile | None = None,
) -> Call:
    if call_type not in CALL_TYPES:
        raise InvalidRequestError(f"Unsupported call type '{call_type}'")
    if caller_id == receiver_id:
        raise InvalidRequestError("Cannot call yourself")

    rows = await backend.insert(
        CALLS_TABLE,
        {
            "caller_id": caller_id,
            "receiver_id": receiver_id,
            "type": call_type,
            "status": CallStatus.PENDING.value,
        },
    )
    call = Call.from_row(rows[0])

    await backend.channel(call_topic(receiver_id)).send(
        INCOMING_CALL_EVENT,
        {
            "call_id": call.id,
            "type": call.type,
            "caller": {
                "id": caller_id,
                "username": caller.username if caller else None,
                "photo_url": caller.photo_url if caller else None,
            },
        },
    )
    logger.info("Call %s (%s) started by %s", call.id, call.type, caller_id)
    return call


async def _set_status(backend: BackendClient, call: Call, status: CallStatus, *, notify: str) -> Call:
    await backend.update(CALLS_TABLE, {"status": status.value}, where=eq("id", call.id))
    call.status = status
    await backend.channel(call_topic(notify)).send(CALL_STATUS_EVENT, {"call_id": call.id, "status": status.value})
    return call


async def respond_to_call(backend: BackendClient, *, call_id: str, responder_id: str, accept: bool) -> Call:
    call = await _get_call(backend, call_id)
    if call.receiver_id != responder_id:
        raise AuthorizationError("Only the callee can answer this call")
    if call.status is not CallStatus.PENDING:
        raise InvalidRequestError(f"Call is already {call.status.value}")
    status = CallStatus.ACCEPTED if accept else CallStatus.REJECTED
    return await _set_status(backend, call, status, notify=call.caller_id)


async def end_call(backend: BackendClient, *, call_id: str, user_id: str) -> Call:
    call = await _get_call(backend, call_id)
    if user_id not in (call.caller_id, call.receiver_id):
        raise AuthorizationError("Not a participant of this call")
    if call.status is CallStatus.ENDED:
        return call
    other = call.receiver_id if user_id == call.caller_id else call.caller_id
    return await _set_status(backend, call, CallStatus.ENDED, notify=other)


__all__ = [
    "CALL_TOPIC",
    "INCOMING_CALL_EVENT",
    "CALL_STATUS_EVENT",
    "call_topic",
    "start_call",
    "respond_to_call",
    "end_call",
]
