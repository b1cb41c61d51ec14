"""Edit and delete individual comments."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ..schemas import CommentResponse, CommentUpdate
from ..services import delete_comment, edit_comment
from ..services.auth_service import Viewer, get_current_user

router = APIRouter(prefix="/comments", tags=["comments"])


@router.patch("/{comment_id}", response_model=CommentResponse)
async def edit_comment_endpoint(
    comment_id: str,
    payload: CommentUpdate,
    viewer: Viewer = Depends(get_current_user),
) -> CommentResponse:
    comment = await edit_comment(
        viewer.backend, comment_id=comment_id, editor_id=viewer.user_id, content=payload.content
    )
    return CommentResponse.model_validate(comment)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(comment_id: str, viewer: Viewer = Depends(get_current_user)) -> Response:
    await delete_comment(viewer.backend, comment_id=comment_id, requester_id=viewer.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
