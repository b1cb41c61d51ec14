"""Engagement-based ordering of short-video feeds.

The score of a post is its weighted engagement multiplied by three boosts:
following (viewer follows the owner), recency (age bucket) and trending
(view-count bucket). Scoring is a pure function of the post, the viewer's
following-set and the evaluation instant.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Collection, Iterable

from ..constants import (
    COMMENT_WEIGHT,
    ENGAGEMENT_RATE_SCALE,
    ENGAGEMENT_RATE_WEIGHT,
    FOLLOWING_BOOST,
    LIKE_WEIGHT,
    RECENCY_BUCKETS,
    TRENDING_BUCKETS,
    VIEW_WEIGHT,
)
from ..models import VideoPost, coerce_count, parse_timestamp, utcnow


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    engagement_rate: float
    engagement_score: float
    following_boost: float
    recency_boost: float
    trending_boost: float

    @property
    def final(self) -> float:
        return self.engagement_score * self.following_boost * self.recency_boost * self.trending_boost


@dataclass(frozen=True, slots=True)
class RankedPost:
    post: VideoPost
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.final


def engagement_rate(views: int, likes: int, comments: int) -> float:
    if views <= 0:
        return 0.0
    return (likes + comments) / views


def engagement_score(views: int, likes: int, comments: int) -> float:
    rate = engagement_rate(views, likes, comments)
    return (
        views * VIEW_WEIGHT
        + likes * LIKE_WEIGHT
        + comments * COMMENT_WEIGHT
        + rate * ENGAGEMENT_RATE_SCALE * ENGAGEMENT_RATE_WEIGHT
    )


def recency_boost(age: timedelta | None) -> float:
    if age is None:
        return 1.0
    for limit, boost in RECENCY_BUCKETS:
        if age < limit:
            return boost
    return 1.0


def trending_boost(views: int) -> float:
    for threshold, boost in TRENDING_BUCKETS:
        if views > threshold:
            return boost
    return 1.0


def score_post(post: VideoPost, following: Collection[str], *, now: datetime | None = None) -> ScoreBreakdown:
    """Score a single post.

    Negative or non-finite counts are clamped, a missing owner is unfollowed and
    naive timestamps are read as UTC.
    """

    now = parse_timestamp(now) or utcnow()
    views = coerce_count(post.view_count)
    likes = coerce_count(post.like_count)
    comments = coerce_count(post.comment_count)

    created_at = parse_timestamp(post.created_at)
    age = now - created_at if created_at is not None else None
    followed = post.owner_id is not None and post.owner_id in following

    return ScoreBreakdown(
        engagement_rate=engagement_rate(views, likes, comments),
        engagement_score=engagement_score(views, likes, comments),
        following_boost=FOLLOWING_BOOST if followed else 1.0,
        recency_boost=recency_boost(age),
        trending_boost=trending_boost(views),
    )


def rank_posts(
    posts: Iterable[VideoPost],
    following: Collection[str],
    *,
    now: datetime | None = None,
) -> list[RankedPost]:
    """Return posts ordered by score, highest first.

    ``sorted`` is stable, so equal scores keep their input order.
    """

    now = now or utcnow()
    following_set = frozenset(following)
    ranked = [RankedPost(post=post, breakdown=score_post(post, following_set, now=now)) for post in posts]
    return sorted(ranked, key=lambda item: item.score, reverse=True)


__all__ = [
    "ScoreBreakdown",
    "RankedPost",
    "engagement_rate",
    "engagement_score",
    "recency_boost",
    "trending_boost",
    "score_post",
    "rank_posts",
]
