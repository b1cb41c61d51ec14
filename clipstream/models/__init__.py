"""Domain models derived from backend rows."""
from .base import coerce_count, parse_timestamp, utcnow
from .call import Call, CallStatus
from .comment import Comment
from .conversation import ConversationId, ConversationSummary
from .message import Message
from .presence import PresenceState
from .user import UserProfile, UserSettings
from .video import VideoPost

__all__ = [
    "Call",
    "CallStatus",
    "Comment",
    "ConversationId",
    "ConversationSummary",
    "Message",
    "PresenceState",
    "UserProfile",
    "UserSettings",
    "VideoPost",
    "coerce_count",
    "parse_timestamp",
    "utcnow",
]
