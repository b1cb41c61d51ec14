"""WebSocket endpoints for the live inbox and open chat sessions."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from ..backend import BackendError
from ..models import ConversationSummary
from ..schemas import MessageResponse
from ..services import ChatSession, ConversationInbox
from ..services.auth_service import Viewer, get_websocket_viewer
from .conversations import serialize_summary

router = APIRouter()
logger = logging.getLogger(__name__)


async def _authenticate(websocket: WebSocket) -> Viewer | None:
    try:
        return await get_websocket_viewer(websocket)
    except HTTPException as exc:
        logger.info("Rejected socket from %s: %s", websocket.client, exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


async def _receive_json(websocket: WebSocket) -> dict[str, Any] | None:
    """Return the next client frame, or None once the socket is gone."""

    try:
        raw = await websocket.receive_text()
    except WebSocketDisconnect:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        payload = {"type": raw}
    if not isinstance(payload, dict):
        payload = {"type": str(payload)}
    return payload


@router.websocket("/ws/inbox")
async def inbox_updates(websocket: WebSocket) -> None:
    """Push the viewer's conversation summaries whenever they change."""

    viewer = await _authenticate(websocket)
    if viewer is None:
        return
    await websocket.accept()

    async def push(summaries: list[ConversationSummary]) -> None:
        items = [serialize_summary(item).model_dump(mode="json") for item in summaries]
        await websocket.send_json({"type": "conversations", "items": items})

    inbox = ConversationInbox(viewer.backend, viewer.user_id, on_change=push)
    logger.info("Inbox socket connected for %s", viewer.user_id)
    try:
        await inbox.start()
        while True:
            payload = await _receive_json(websocket)
            if payload is None:
                break
            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "refresh":
                await inbox.refresh()
    finally:
        await inbox.close()
        logger.info("Inbox socket disconnected for %s", viewer.user_id)


@router.websocket("/ws/chat/{peer_id}")
async def chat_session(websocket: WebSocket, peer_id: str) -> None:
    """Relay thread, typing, presence and call events for one conversation."""

    viewer = await _authenticate(websocket)
    if viewer is None:
        return
    await websocket.accept()

    session = ChatSession(viewer.backend, viewer.user_id, peer_id)

    async def relay(kind: str, payload: dict[str, Any]) -> None:
        if kind == "thread":
            messages = [MessageResponse.model_validate(item).model_dump(mode="json") for item in session.thread]
            await websocket.send_json({"type": "thread", "messages": messages})
            return
        await websocket.send_json({"type": kind, **payload})

    session.add_listener(relay)
    logger.info("Chat socket %s -> %s connected", viewer.user_id, peer_id)
    try:
        await session.open()
        while True:
            payload = await _receive_json(websocket)
            if payload is None:
                break
            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "typing":
                await session.notify_typing()
            elif message_type in {"send", "delete"}:
                try:
                    if message_type == "send":
                        message = await session.send(str(payload.get("content") or ""))
                        data = MessageResponse.model_validate(message).model_dump(mode="json")
                        await websocket.send_json({"type": "sent", "message": data})
                    else:
                        await session.delete(str(payload.get("message_id") or ""))
                except BackendError as exc:
                    await websocket.send_json({"type": "error", "detail": exc.message})
            # Other frames keep the connection alive.
    finally:
        await session.close()
        logger.info("Chat socket %s -> %s disconnected", viewer.user_id, peer_id)


__all__ = ["router"]
