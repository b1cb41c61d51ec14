"""Request-scoped backend sessions resolved from bearer tokens.

Authentication itself is delegated to the hosted backend: the bearer token
is bound to the shared backend client and the backend reports whose
session it is.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..backend import AuthenticationError, BackendClient, InMemoryBackend, RestBackend
from ..config import Settings

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)


@dataclass(slots=True)
class Viewer:
    """The authenticated user plus a backend client acting on their behalf."""

    user_id: str
    backend: BackendClient


def build_backend(settings: Settings) -> BackendClient:
    """Instantiate the backend client selected by configuration."""

    if settings.backend_mode == "rest":
        if not settings.backend_api_key:
            raise RuntimeError("BACKEND_API_KEY is required when BACKEND_MODE=rest")
        return RestBackend(settings.backend_url, settings.backend_api_key, timeout=settings.backend_timeout)
    return InMemoryBackend(follows_table=settings.follows_table)


def get_backend(request: Request) -> BackendClient:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Backend not initialised")
    return backend


async def resolve_viewer(backend: BackendClient, token: str | None) -> Viewer:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    session = backend.with_token(token)
    try:
        user_id = await session.current_user()
    except AuthenticationError as exc:
        logger.info("Rejected session token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    return Viewer(user_id=user_id, backend=session)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    backend: BackendClient = Depends(get_backend),
) -> Viewer:
    """Resolve the authenticated viewer from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return await resolve_viewer(backend, credentials.credentials)


async def get_websocket_viewer(websocket: WebSocket) -> Viewer:
    """WebSocket clients pass the session token as the ``token`` query parameter."""

    backend = getattr(websocket.app.state, "backend", None)
    if backend is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Backend not initialised")
    return await resolve_viewer(backend, websocket.query_params.get("token"))


__all__ = [
    "Viewer",
    "build_backend",
    "get_backend",
    "resolve_viewer",
    "get_current_user",
    "get_websocket_viewer",
]
