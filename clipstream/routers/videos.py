"""Video publishing, per-user listings, favourites and comment threads."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ..schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    FavouriteStateResponse,
    VideoListResponse,
    VideoPostResponse,
)
from ..services import (
    MediaUpload,
    add_comment,
    create_video_post,
    get_video,
    list_comments,
    list_favourites,
    list_user_videos,
    set_favourite_state,
)
from ..services.auth_service import Viewer, get_current_user
from ..services.media_service import extension_of, media_type_for

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=VideoPostResponse, status_code=status.HTTP_201_CREATED)
async def create_video_endpoint(
    file: UploadFile = File(...),
    caption: str = Form(""),
    media_type: str | None = Form(None),
    viewer: Viewer = Depends(get_current_user),
) -> VideoPostResponse:
    """Publish an uploaded clip as a short, or an image as a story.

    Expects ``multipart/form-data``. ``media_type`` overrides the type guessed
    from the upload's content type.
    """

    media = MediaUpload(
        data=await file.read(),
        media_type=media_type_for(file.content_type, media_type),
        extension=extension_of(file.filename),
    )
    post = await create_video_post(viewer.backend, owner_id=viewer.user_id, media=media, caption=caption)
    return VideoPostResponse.model_validate(post)


@router.get("/favourites", response_model=VideoListResponse)
async def list_favourites_endpoint(viewer: Viewer = Depends(get_current_user)) -> VideoListResponse:
    videos = await list_favourites(viewer.backend, user_id=viewer.user_id)
    return VideoListResponse(items=[VideoPostResponse.model_validate(video) for video in videos])


@router.get("/user/{user_id}", response_model=VideoListResponse)
async def list_user_videos_endpoint(
    user_id: str,
    kind: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=200),
    viewer: Viewer = Depends(get_current_user),
) -> VideoListResponse:
    videos = await list_user_videos(viewer.backend, owner_id=user_id, kind=kind, limit=limit)
    return VideoListResponse(items=[VideoPostResponse.model_validate(video) for video in videos])


@router.get("/{video_id}", response_model=VideoPostResponse)
async def get_video_endpoint(video_id: str, viewer: Viewer = Depends(get_current_user)) -> VideoPostResponse:
    return VideoPostResponse.model_validate(await get_video(viewer.backend, video_id=video_id))


@router.put("/{video_id}/favourite", response_model=FavouriteStateResponse)
async def favourite_video(video_id: str, viewer: Viewer = Depends(get_current_user)) -> FavouriteStateResponse:
    changed = await set_favourite_state(
        viewer.backend, viewer_id=viewer.user_id, video_id=video_id, should_favourite=True
    )
    return FavouriteStateResponse(video_id=video_id, favourited=True, changed=changed)


@router.delete("/{video_id}/favourite", response_model=FavouriteStateResponse)
async def unfavourite_video(video_id: str, viewer: Viewer = Depends(get_current_user)) -> FavouriteStateResponse:
    changed = await set_favourite_state(
        viewer.backend, viewer_id=viewer.user_id, video_id=video_id, should_favourite=False
    )
    return FavouriteStateResponse(video_id=video_id, favourited=False, changed=changed)


@router.get("/{video_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(video_id: str, viewer: Viewer = Depends(get_current_user)) -> CommentListResponse:
    comments = await list_comments(viewer.backend, video_id=video_id)
    return CommentListResponse(items=[CommentResponse.model_validate(comment) for comment in comments])


@router.post("/{video_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment_endpoint(
    video_id: str,
    payload: CommentCreate,
    viewer: Viewer = Depends(get_current_user),
) -> CommentResponse:
    comment = await add_comment(viewer.backend, video_id=video_id, author_id=viewer.user_id, content=payload.content)
    return CommentResponse.model_validate(comment)


__all__ = ["router"]
