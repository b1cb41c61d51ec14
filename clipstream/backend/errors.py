"""Error taxonomy for calls into the hosted backend."""
from __future__ import annotations


class BackendError(RuntimeError):
    """Base class for failures reported by the hosted backend."""

    retryable = False

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class AuthenticationError(BackendError):
    """No active session, or the session token was rejected."""


class AuthorizationError(BackendError):
    """A row-level policy rejected the operation. Never retried."""


class NotFoundError(BackendError):
    """An expected-missing row, e.g. a first-time settings lookup."""


class TransientBackendError(BackendError):
    """Network or upstream failure that may succeed when retried."""

    retryable = True


class InvalidRequestError(BackendError):
    """The request was malformed or violated a client-side precondition."""


__all__ = [
    "BackendError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "TransientBackendError",
    "InvalidRequestError",
]
