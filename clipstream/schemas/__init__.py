"""Convenience exports for schema layer."""
from .calls import CallCreate, CallRespondRequest, CallResponse
from .comments import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from .feed import (
    FavouriteStateResponse,
    FeedResponse,
    LikeStateResponse,
    RankedVideoResponse,
    ScoreBreakdownResponse,
    VideoListResponse,
    VideoPostResponse,
    ViewRecordedResponse,
)
from .follow import FollowActionResponse, FollowStatsResponse
from .messages import (
    ConversationListResponse,
    ConversationSummaryResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    PeerProfileResponse,
    SeenRequest,
    SeenResponse,
)
from .presence import PresenceResponse
from .profiles import (
    ProfileDetailResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
)

__all__ = [
    "CallCreate",
    "CallRespondRequest",
    "CallResponse",
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    "CommentListResponse",
    "FeedResponse",
    "LikeStateResponse",
    "RankedVideoResponse",
    "ScoreBreakdownResponse",
    "VideoPostResponse",
    "ViewRecordedResponse",
    "VideoListResponse",
    "FavouriteStateResponse",
    "FollowActionResponse",
    "FollowStatsResponse",
    "ConversationListResponse",
    "ConversationSummaryResponse",
    "MessageResponse",
    "MessageSendRequest",
    "MessageThreadResponse",
    "PeerProfileResponse",
    "SeenRequest",
    "SeenResponse",
    "PresenceResponse",
    "ProfileResponse",
    "ProfileDetailResponse",
    "ProfileUpdateRequest",
    "SettingsResponse",
    "SettingsUpdateRequest",
]
