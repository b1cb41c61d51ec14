"""Engagement scoring, boost buckets and feed ordering."""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from clipstream.models import VideoPost
from clipstream.services.feed_ranking import (
    engagement_rate,
    engagement_score,
    rank_posts,
    recency_boost,
    score_post,
    trending_boost,
)


def test_documented_example_ranks_trending_post_first(post_factory, now):
    fresh = post_factory(views=0, likes=5, age=timedelta(minutes=30), post_id="fresh")
    viral = post_factory(views=2000, age=timedelta(days=10), post_id="viral")

    ranked = rank_posts([fresh, viral], following=set(), now=now)

    assert [item.post.id for item in ranked] == ["viral", "fresh"]
    assert ranked[0].score == pytest.approx(900.0)
    assert ranked[1].score == pytest.approx(3.0)


@pytest.mark.parametrize("likes, comments", [(0, 0), (5, 0), (0, 7), (3, 4)])
def test_zero_views_have_no_engagement_rate(likes, comments):
    assert engagement_rate(0, likes, comments) == 0
    assert engagement_score(0, likes, comments) == pytest.approx(likes * 0.3 + comments * 0.2)


def test_engagement_score_includes_scaled_rate():
    # rate = (10 + 10) / 100 = 0.2 -> 0.2 * 100 * 0.2 = 4
    assert engagement_score(100, 10, 10) == pytest.approx(30 + 3 + 2 + 4)


def test_followed_owner_ranks_strictly_higher(post_factory, now):
    stranger = post_factory(views=50, likes=5, owner_id="stranger", post_id="a")
    friend = post_factory(views=50, likes=5, owner_id="friend", post_id="b")

    ranked = rank_posts([stranger, friend], following={"friend"}, now=now)

    assert [item.post.id for item in ranked] == ["b", "a"]
    assert ranked[0].score > ranked[1].score
    assert ranked[0].breakdown.following_boost == 1.5


@pytest.mark.parametrize(
    "boundary",
    [timedelta(hours=1), timedelta(hours=24), timedelta(days=7)],
)
def test_recency_boundaries_prefer_newer_post(post_factory, now, boundary):
    just_under = post_factory(views=10, likes=1, age=boundary - timedelta(seconds=1), post_id="newer")
    exactly = post_factory(views=10, likes=1, age=boundary, post_id="older")

    ranked = rank_posts([exactly, just_under], following=set(), now=now)

    assert [item.post.id for item in ranked] == ["newer", "older"]
    assert ranked[0].score > ranked[1].score


@pytest.mark.parametrize(
    "age, expected",
    [
        (timedelta(minutes=59), 2.0),
        (timedelta(hours=1), 1.5),
        (timedelta(hours=23, minutes=59), 1.5),
        (timedelta(hours=24), 1.2),
        (timedelta(days=6, hours=23), 1.2),
        (timedelta(days=7), 1.0),
        (None, 1.0),
        (timedelta(minutes=-5), 2.0),
    ],
)
def test_recency_buckets(age, expected):
    assert recency_boost(age) == expected


@pytest.mark.parametrize(
    "views, expected",
    [(0, 1.0), (100, 1.0), (101, 1.2), (500, 1.2), (501, 1.3), (1000, 1.3), (1001, 1.5)],
)
def test_trending_buckets(views, expected):
    assert trending_boost(views) == expected


def test_equal_scores_keep_input_order(post_factory, now):
    posts = [post_factory(views=10, likes=2, post_id=f"p{index}") for index in range(5)]

    ranked = rank_posts(posts, following=set(), now=now)

    assert [item.post.id for item in ranked] == ["p0", "p1", "p2", "p3", "p4"]


def test_malformed_counts_are_clamped(now):
    post = VideoPost(id="bad", owner_id=None, created_at=None, view_count=-40, like_count=-2, comment_count=3)

    breakdown = score_post(post, following={"someone"}, now=now)

    assert breakdown.engagement_rate == 0
    assert breakdown.engagement_score == pytest.approx(0.6)
    assert breakdown.following_boost == 1.0
    assert breakdown.recency_boost == 1.0


def test_non_finite_counts_do_not_abort_ranking(post_factory, now):
    broken = VideoPost(id="inf", owner_id="owner", view_count=float("inf"), like_count=float("nan"))
    healthy = post_factory(views=200, post_id="ok")

    ranked = rank_posts([broken, healthy], following=set(), now=now)

    assert [item.post.id for item in ranked] == ["ok", "inf"]
    assert ranked[1].breakdown.engagement_score == 0


def test_naive_created_at_is_read_as_utc(now):
    naive = VideoPost(id="naive", owner_id="owner", created_at=datetime(2024, 5, 1, 11, 30), like_count=1)

    ranked = rank_posts([naive], following=set(), now=now)

    assert ranked[0].breakdown.recency_boost == 2.0


def test_from_row_coerces_garbage_counts():
    post = VideoPost.from_row(
        {
            "id": 7,
            "user_id": "u1",
            "created_at": "2024-05-01T11:00:00Z",
            "video_url": "https://cdn/x.mp4",
            "view_count": "12",
            "like_count": None,
            "comment_count": "many",
        }
    )

    assert post.id == "7"
    assert post.view_count == 12
    assert post.like_count == 0
    assert post.comment_count == 0
    assert post.created_at is not None and post.created_at.tzinfo is not None


def test_rank_posts_is_pure(post_factory, now):
    posts = [post_factory(views=300, likes=30, post_id="x"), post_factory(views=5, post_id="y")]

    first = [(item.post.id, item.score) for item in rank_posts(posts, following={"owner"}, now=now)]
    second = [(item.post.id, item.score) for item in rank_posts(posts, following={"owner"}, now=now)]

    assert first == second
