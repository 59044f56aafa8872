"""
Comment endpoints:
  DELETE /comments/{id}       — delete a comment (author only)
  POST   /comments/{id}/like  — like a comment (idempotent)
  DELETE /comments/{id}/like  — unlike a comment (idempotent)
"""
from fastapi import APIRouter, Depends, Response, status

from photofeed.deps import get_comment_service, get_engagement_ledger, get_viewer
from photofeed.models import User
from photofeed.schemas import DeleteResponse, EdgeState
from photofeed.services.comments import CommentService
from photofeed.services.engagement import EngagementLedger

router = APIRouter()


@router.delete("/{comment_id}", response_model=DeleteResponse)
async def delete_comment(
    comment_id: str,
    viewer: User = Depends(get_viewer),
    comments: CommentService = Depends(get_comment_service),
):
    await comments.delete_comment(viewer, comment_id)
    return DeleteResponse()


@router.post("/{comment_id}/like", response_model=EdgeState)
async def like_comment(
    comment_id: str,
    response: Response,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    state = await ledger.set_comment_like(viewer.id, comment_id, True)
    response.status_code = status.HTTP_201_CREATED if state.changed else status.HTTP_200_OK
    return state


@router.delete("/{comment_id}/like", response_model=EdgeState)
async def unlike_comment(
    comment_id: str,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    return await ledger.set_comment_like(viewer.id, comment_id, False)
