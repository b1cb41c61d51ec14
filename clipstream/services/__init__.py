"""Convenience exports for service layer."""
from .call_service import end_call, respond_to_call, start_call
from .chat_session import ChatSession
from .comment_service import add_comment, delete_comment, edit_comment, list_comments
from .conversations import ConversationComposer, ConversationInbox, load_conversations
from .feed_ranking import RankedPost, ScoreBreakdown, rank_posts, score_post
from .feed_service import load_feed, record_view, set_like_state
from .follow_service import FollowStats, follow_user, following_ids, get_follow_stats, unfollow_user
from .media_service import MediaUpload, upload_media
from .message_service import delete_message, list_thread, mark_seen, send_message
from .presence_service import fetch_status, format_last_seen, update_status
from .profile_service import (
    ensure_profile,
    fetch_profiles,
    get_profile,
    get_user_settings,
    update_profile,
    update_profile_picture,
    update_user_settings,
)
from .scheduling import ExpiringFlag, PeriodicTask
from .video_service import create_video_post, get_video, list_favourites, list_user_videos, set_favourite_state

__all__ = [
    "start_call",
    "respond_to_call",
    "end_call",
    "ChatSession",
    "list_comments",
    "add_comment",
    "edit_comment",
    "delete_comment",
    "ConversationComposer",
    "ConversationInbox",
    "load_conversations",
    "RankedPost",
    "ScoreBreakdown",
    "rank_posts",
    "score_post",
    "load_feed",
    "record_view",
    "set_like_state",
    "FollowStats",
    "follow_user",
    "unfollow_user",
    "following_ids",
    "get_follow_stats",
    "MediaUpload",
    "upload_media",
    "send_message",
    "delete_message",
    "list_thread",
    "mark_seen",
    "fetch_status",
    "format_last_seen",
    "update_status",
    "fetch_profiles",
    "get_profile",
    "ensure_profile",
    "update_profile",
    "update_profile_picture",
    "get_user_settings",
    "update_user_settings",
    "ExpiringFlag",
    "PeriodicTask",
    "create_video_post",
    "get_video",
    "list_user_videos",
    "set_favourite_state",
    "list_favourites",
]
