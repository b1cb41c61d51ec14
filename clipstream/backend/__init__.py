"""Convenience exports for the backend client layer."""
from .channels import BroadcastChannel, ChangeEvent, ChannelHub, Subscription, Topic
from .client import BackendClient
from .errors import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    InvalidRequestError,
    NotFoundError,
    TransientBackendError,
)
from .memory import InMemoryBackend
from .query import Query, and_, eq, in_, or_
from .rest import RestBackend
from .retry import call_with_retry

__all__ = [
    "BackendClient",
    "InMemoryBackend",
    "RestBackend",
    "BroadcastChannel",
    "ChangeEvent",
    "ChannelHub",
    "Subscription",
    "Topic",
    "BackendError",
    "AuthenticationError",
    "AuthorizationError",
    "InvalidRequestError",
    "NotFoundError",
    "TransientBackendError",
    "Query",
    "and_",
    "eq",
    "in_",
    "or_",
    "call_with_retry",
]
