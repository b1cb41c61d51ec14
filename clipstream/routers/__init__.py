"""Aggregate router exports."""
from .calls import router as calls_router
from .comments import router as comments_router
from .conversations import router as conversations_router
from .feed import router as feed_router
from .follows import router as follows_router
from .messages import router as messages_router
from .presence import router as presence_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router
from .videos import router as videos_router

__all__ = [
    "calls_router",
    "comments_router",
    "conversations_router",
    "feed_router",
    "follows_router",
    "messages_router",
    "presence_router",
    "profiles_router",
    "realtime_router",
    "videos_router",
]
