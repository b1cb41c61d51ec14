"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .backend import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    InvalidRequestError,
    NotFoundError,
    TransientBackendError,
)
from .config import get_settings
from .routers import (
    calls_router,
    comments_router,
    conversations_router,
    feed_router,
    follows_router,
    messages_router,
    presence_router,
    profiles_router,
    realtime_router,
    videos_router,
)
from .services.auth_service import build_backend

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

_STATUS_BY_ERROR: tuple[tuple[type[BackendError], int], ...] = (
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TransientBackendError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST),
)


def configure_logging(level: str | None = None) -> None:
    """Apply the process-wide logging format once."""

    root = logging.getLogger()
    if root.handlers:
        root.setLevel((level or settings.log_level).upper())
        return
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def status_for_error(exc: BackendError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_502_BAD_GATEWAY


configure_logging()

app = FastAPI(title=APP_NAME, version=API_VERSION)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_router)
app.include_router(videos_router)
app.include_router(comments_router)
app.include_router(profiles_router)
app.include_router(follows_router)
app.include_router(conversations_router)
app.include_router(messages_router)
app.include_router(presence_router)
app.include_router(calls_router)
app.include_router(realtime_router)


@app.exception_handler(BackendError)
async def _backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    code = status_for_error(exc)
    if code >= 500:
        logger.warning("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": exc.message})


@app.on_event("startup")
async def _startup() -> None:
    """Create the shared backend client before serving."""

    app.state.backend = build_backend(settings)
    logger.info("Backend ready: %s", app.state.backend.describe())


@app.on_event("shutdown")
async def _shutdown() -> None:
    backend = getattr(app.state, "backend", None)
    if backend is not None:
        await backend.aclose()
        app.state.backend = None


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck(request: Request) -> dict[str, object]:
    """Report which backend the service is talking to."""

    backend = getattr(request.app.state, "backend", None)
    return {"status": "ok" if backend is not None else "starting", "backend": backend.describe() if backend else None}


__all__ = ["app", "configure_logging", "status_for_error"]
