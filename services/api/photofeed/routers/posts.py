"""
Post endpoints:
  POST   /posts                  — upload an image and create a post
  GET    /posts/{id}             — fetch a single post
  DELETE /posts/{id}             — delete a post (author only)
  POST   /posts/{id}/like        — like a post (idempotent)
  DELETE /posts/{id}/like        — unlike a post (idempotent)
  GET    /posts/{id}/comments    — list comments, newest first
  POST   /posts/{id}/comments    — add a comment
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from photofeed.config import settings
from photofeed.deps import (
    get_comment_service,
    get_engagement_ledger,
    get_feed_service,
    get_post_service,
    get_viewer,
)
from photofeed.errors import FileTooLarge, InvalidImageType
from photofeed.models import User
from photofeed.schemas import (
    CommentCreate,
    CommentListResponse,
    CommentView,
    DeleteResponse,
    EdgeState,
    PostView,
)
from photofeed.services.comments import CommentService
from photofeed.services.engagement import EngagementLedger
from photofeed.services.feed import FeedService
from photofeed.services.posts import PostService

logger = logging.getLogger(__name__)
router = APIRouter()


async def _read_upload(image: Optional[UploadFile]) -> Optional[bytes]:
    if image is None:
        return None
    # Type is checked before size: an oversized GIF is an invalid type
    if image.content_type not in settings.allowed_image_types:
        raise InvalidImageType()
    # Read one byte past the limit so oversized uploads are detected
    # without buffering the whole body.
    data = await image.read(settings.max_image_bytes + 1)
    if len(data) > settings.max_image_bytes:
        raise FileTooLarge(
            f"File size must be at most {settings.max_image_bytes // (1024 * 1024)}MB"
        )
    return data


@router.post("/", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    image: Optional[UploadFile] = File(None),
    caption: Optional[str] = Form(None),
    viewer: User = Depends(get_viewer),
    posts: PostService = Depends(get_post_service),
    feed: FeedService = Depends(get_feed_service),
):
    """
    Post creation path:

    1. Validate MIME type, size and caption.
    2. Upload the image to MinIO.
    3. Insert the post row (the image is removed again if this fails).
    """
    data = await _read_upload(image)
    content_type = image.content_type if image is not None else None
    post = await posts.create_post(viewer, data, content_type, caption)
    views = await feed.build_post_views([post], viewer.id)
    return views[0]


@router.get("/{post_id}", response_model=PostView)
async def get_post(
    post_id: str,
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    return await feed.get_post(post_id, viewer.id)


@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_post(
    post_id: str,
    viewer: User = Depends(get_viewer),
    posts: PostService = Depends(get_post_service),
):
    await posts.delete_post(viewer, post_id)
    return DeleteResponse()


@router.post("/{post_id}/like", response_model=EdgeState)
async def like_post(
    post_id: str,
    response: Response,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    """Like a post — idempotent. 201 when a like was added, 200 if already liked."""
    state = await ledger.set_post_like(viewer.id, post_id, True)
    response.status_code = status.HTTP_201_CREATED if state.changed else status.HTTP_200_OK
    return state


@router.delete("/{post_id}/like", response_model=EdgeState)
async def unlike_post(
    post_id: str,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    return await ledger.set_post_like(viewer.id, post_id, False)


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(
    post_id: str,
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    offset: int = Query(0, ge=0),
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    page = await feed.list_comments(post_id, limit=limit, offset=offset, viewer_id=viewer.id)
    return CommentListResponse(
        comments=page.items, has_more=page.has_more, next_offset=page.next_offset
    )


@router.post(
    "/{post_id}/comments", response_model=CommentView, status_code=status.HTTP_201_CREATED
)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    viewer: User = Depends(get_viewer),
    comments: CommentService = Depends(get_comment_service),
    feed: FeedService = Depends(get_feed_service),
):
    comment = await comments.create_comment(viewer, post_id, body.content)
    views = await feed.build_comment_views([comment], viewer.id)
    return views[0]
