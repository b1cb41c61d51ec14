"""Publishing videos, favourites and comment threads against the in-memory backend."""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from clipstream.backend import AuthenticationError, AuthorizationError, InvalidRequestError, NotFoundError
from clipstream.config import get_settings
from clipstream.services import comment_service, feed_service, video_service
from clipstream.services.media_service import MediaUpload, media_type_for


def _stored_object(backend, url):
    bucket, _, path = url.removeprefix("memory://").partition("/")
    return backend.download(bucket, path)


def _video_count(backend, video_id, column):
    (row,) = [row for row in backend.rows("videos") if row["id"] == video_id]
    return row[column]


def test_video_upload_is_published_as_short(backend):
    session = backend.session_for("A")
    media = MediaUpload(data=b"\x00\x01clip", media_type="video", extension="mp4")

    post = asyncio.run(video_service.create_video_post(session, owner_id="A", media=media, caption="  first  "))

    assert post.kind == "short"
    assert post.caption == "first"
    assert post.owner_id == "A"
    assert (post.view_count, post.like_count, post.comment_count) == (0, 0, 0)
    assert post.media_url.startswith("memory://videos/videos/")
    assert _stored_object(backend, post.media_url) == (b"\x00\x01clip", "video/mp4")


def test_image_upload_is_published_as_story_and_kept_out_of_feed(backend):
    session = backend.session_for("A")

    async def scenario():
        await video_service.create_video_post(
            session, owner_id="A", media=MediaUpload(data=b"jpeg", media_type="image")
        )
        await video_service.create_video_post(
            session, owner_id="A", media=MediaUpload(data=b"mp4", media_type="video")
        )
        stories = await video_service.list_user_videos(session, owner_id="A", kind="story")
        everything = await video_service.list_user_videos(session, owner_id="A")
        feed = await feed_service.load_feed(session, viewer_id="A")
        return stories, everything, feed

    stories, everything, feed = asyncio.run(scenario())

    assert [post.kind for post in stories] == ["story"]
    assert stories[0].media_url.endswith(".jpg")
    assert len(everything) == 2
    assert [item.post.kind for item in feed] == ["short"]


def test_upload_validation(backend, monkeypatch):
    session = backend.session_for("A")

    with pytest.raises(InvalidRequestError):
        asyncio.run(
            video_service.create_video_post(session, owner_id="A", media=MediaUpload(data=b"", media_type="video"))
        )
    with pytest.raises(InvalidRequestError):
        asyncio.run(
            video_service.create_video_post(session, owner_id="A", media=MediaUpload(data=b"x", media_type="audio"))
        )

    monkeypatch.setattr(get_settings(), "max_upload_bytes", 4)
    with pytest.raises(InvalidRequestError):
        asyncio.run(
            video_service.create_video_post(
                session, owner_id="A", media=MediaUpload(data=b"too large", media_type="video")
            )
        )

    assert backend.rows("videos") == []


def test_upload_requires_a_signed_in_session(backend):
    with pytest.raises(AuthenticationError):
        asyncio.run(
            video_service.create_video_post(
                backend, owner_id="A", media=MediaUpload(data=b"clip", media_type="video")
            )
        )


def test_media_type_resolution():
    assert media_type_for("video/quicktime") == "video"
    assert media_type_for("image/png") == "image"
    assert media_type_for("application/octet-stream", "video") == "video"
    with pytest.raises(InvalidRequestError):
        media_type_for("text/plain")


def test_unknown_kind_and_missing_video(backend):
    session = backend.session_for("A")

    with pytest.raises(InvalidRequestError):
        asyncio.run(video_service.list_user_videos(session, owner_id="A", kind="reel"))
    with pytest.raises(NotFoundError):
        asyncio.run(video_service.get_video(session, video_id="missing"))


def test_favourites_toggle_and_list_newest_first(backend, now):
    backend.seed(
        "videos",
        [
            {"id": "v1", "user_id": "B", "type": "short"},
            {"id": "v2", "user_id": "B", "type": "short"},
        ],
    )
    backend.seed(
        "favourites",
        [
            {"video_id": "v1", "user_id": "A", "created_at": now.isoformat()},
            {"video_id": "v2", "user_id": "A", "created_at": (now + timedelta(minutes=5)).isoformat()},
        ],
    )
    session = backend.session_for("A")

    async def scenario():
        listed = await video_service.list_favourites(session, user_id="A")
        again = await video_service.set_favourite_state(session, viewer_id="A", video_id="v1", should_favourite=True)
        removed = await video_service.set_favourite_state(
            session, viewer_id="A", video_id="v1", should_favourite=False
        )
        remaining = await video_service.list_favourites(session, user_id="A")
        return listed, again, removed, remaining

    listed, again, removed, remaining = asyncio.run(scenario())

    assert [video.id for video in listed] == ["v2", "v1"]
    assert again is False
    assert removed is True
    assert [video.id for video in remaining] == ["v2"]


def test_favouriting_a_missing_video_fails(backend):
    session = backend.session_for("A")

    with pytest.raises(NotFoundError):
        asyncio.run(
            video_service.set_favourite_state(session, viewer_id="A", video_id="ghost", should_favourite=True)
        )
    assert backend.rows("favourites") == []


def test_comments_are_listed_newest_first_with_authors(backend, now):
    backend.seed("videos", [{"id": "v1", "user_id": "B", "type": "short"}])
    backend.seed("users", [{"id": "A", "username": "ana"}, {"id": "C", "username": "cy"}])
    backend.seed(
        "comments",
        [
            {"id": "c1", "video_id": "v1", "user_id": "A", "content": "first", "created_at": now.isoformat()},
            {
                "id": "c2",
                "video_id": "v1",
                "user_id": "C",
                "content": "second",
                "created_at": (now + timedelta(minutes=1)).isoformat(),
            },
        ],
    )

    comments = asyncio.run(comment_service.list_comments(backend.session_for("A"), video_id="v1"))

    assert [comment.content for comment in comments] == ["second", "first"]
    assert [comment.author.username for comment in comments] == ["cy", "ana"]


def test_adding_and_deleting_comments_moves_comment_count(backend):
    backend.seed("videos", [{"id": "v1", "user_id": "B", "type": "short", "comment_count": 0}])
    session = backend.session_for("A")

    comment = asyncio.run(comment_service.add_comment(session, video_id="v1", author_id="A", content="  nice  "))

    assert comment.content == "nice"
    assert _video_count(backend, "v1", "comment_count") == 1

    asyncio.run(comment_service.delete_comment(session, comment_id=comment.id, requester_id="A"))

    assert backend.rows("comments") == []
    assert _video_count(backend, "v1", "comment_count") == 0


def test_comment_content_is_validated(backend):
    backend.seed("videos", [{"id": "v1", "user_id": "B", "type": "short"}])
    session = backend.session_for("A")

    with pytest.raises(InvalidRequestError):
        asyncio.run(comment_service.add_comment(session, video_id="v1", author_id="A", content="   "))
    with pytest.raises(InvalidRequestError):
        asyncio.run(comment_service.add_comment(session, video_id="v1", author_id="A", content="x" * 501))
    with pytest.raises(NotFoundError):
        asyncio.run(comment_service.add_comment(session, video_id="ghost", author_id="A", content="hi"))


def test_only_the_author_edits_a_comment(backend):
    backend.seed("videos", [{"id": "v1", "user_id": "B", "type": "short"}])
    backend.seed("comments", [{"id": "c1", "video_id": "v1", "user_id": "A", "content": "typo"}])

    edited = asyncio.run(
        comment_service.edit_comment(backend.session_for("A"), comment_id="c1", editor_id="A", content="fixed")
    )
    assert edited.content == "fixed"

    with pytest.raises(AuthorizationError):
        asyncio.run(
            comment_service.edit_comment(backend.session_for("B"), comment_id="c1", editor_id="B", content="mine")
        )


def test_video_owner_may_delete_someone_elses_comment(backend):
    backend.seed("videos", [{"id": "v1", "user_id": "B", "type": "short", "comment_count": 2}])
    backend.seed(
        "comments",
        [
            {"id": "c1", "video_id": "v1", "user_id": "A", "content": "hello"},
            {"id": "c2", "video_id": "v1", "user_id": "A", "content": "again"},
        ],
    )

    with pytest.raises(AuthorizationError):
        asyncio.run(comment_service.delete_comment(backend.session_for("C"), comment_id="c1", requester_id="C"))

    asyncio.run(comment_service.delete_comment(backend.session_for("B"), comment_id="c1", requester_id="B"))

    assert [row["id"] for row in backend.rows("comments")] == ["c2"]
    assert _video_count(backend, "v1", "comment_count") == 1
    with pytest.raises(NotFoundError):
        asyncio.run(comment_service.delete_comment(backend.session_for("B"), comment_id="c1", requester_id="B"))
