"""Project-wide constant values."""
from __future__ import annotations

from datetime import timedelta

# Engagement weights applied to raw counts
VIEW_WEIGHT = 0.3
LIKE_WEIGHT = 0.3
COMMENT_WEIGHT = 0.2
ENGAGEMENT_RATE_SCALE = 100
ENGAGEMENT_RATE_WEIGHT = 0.2

FOLLOWING_BOOST = 1.5

# (max age exclusive, multiplier), checked in order
RECENCY_BUCKETS: tuple[tuple[timedelta, float], ...] = (
    (timedelta(hours=1), 2.0),
    (timedelta(hours=24), 1.5),
    (timedelta(days=7), 1.2),
)

# (min views exclusive, multiplier), checked in order
TRENDING_BUCKETS: tuple[tuple[int, float], ...] = (
    (1000, 1.5),
    (500, 1.3),
    (100, 1.2),
)

VIDEO_TYPE_SHORT = "short"
VIDEO_TYPE_STORY = "story"
VIDEO_TYPES = (VIDEO_TYPE_SHORT, VIDEO_TYPE_STORY)

MEDIA_TYPES = ("image", "video")
# Uploaded videos become shorts, images become stories
VIDEO_TYPE_BY_MEDIA = {"video": VIDEO_TYPE_SHORT, "image": VIDEO_TYPE_STORY}

THEMES = ("light", "dark", "system")
MAX_COMMENT_LENGTH = 500
CALL_TYPES = ("audio", "video")

# Table names owned by the hosted backend
VIDEOS_TABLE = "videos"
VIDEO_VIEWS_TABLE = "video_views"
LIKES_TABLE = "likes"
MESSAGES_TABLE = "messages"
NOTIFICATIONS_TABLE = "notifications"
USER_STATUS_TABLE = "user_status"
CALLS_TABLE = "calls"
USERS_TABLE = "users"
USER_SETTINGS_TABLE = "user_settings"
COMMENTS_TABLE = "comments"
FAVOURITES_TABLE = "favourites"

__all__ = [
    "VIEW_WEIGHT",
    "LIKE_WEIGHT",
    "COMMENT_WEIGHT",
    "ENGAGEMENT_RATE_SCALE",
    "ENGAGEMENT_RATE_WEIGHT",
    "FOLLOWING_BOOST",
    "RECENCY_BUCKETS",
    "TRENDING_BUCKETS",
    "VIDEO_TYPE_SHORT",
    "VIDEO_TYPE_STORY",
    "VIDEO_TYPES",
    "MEDIA_TYPES",
    "VIDEO_TYPE_BY_MEDIA",
    "THEMES",
    "MAX_COMMENT_LENGTH",
    "CALL_TYPES",
    "VIDEOS_TABLE",
    "VIDEO_VIEWS_TABLE",
    "LIKES_TABLE",
    "MESSAGES_TABLE",
    "NOTIFICATIONS_TABLE",
    "USER_STATUS_TABLE",
    "CALLS_TABLE",
    "USERS_TABLE",
    "USER_SETTINGS_TABLE",
    "COMMENTS_TABLE",
    "FAVOURITES_TABLE",
]
