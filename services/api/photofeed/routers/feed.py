"""
Feed endpoint — GET /feed?limit=&offset=&author_id=

Chronological (created_at DESC) offset-paginated posts from every author,
or from one author when author_id is given (the profile grid). Each post
carries its author summary, like/comment counts and the viewer's is_liked.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from photofeed.config import settings
from photofeed.deps import get_feed_service, get_viewer
from photofeed.models import User
from photofeed.schemas import FeedResponse
from photofeed.services.feed import FeedService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=FeedResponse)
async def get_feed(
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    offset: int = Query(0, ge=0),
    author_id: Optional[str] = Query(None, description="Only posts by this user"),
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    page = await feed.list_posts(
        limit=limit, offset=offset, author_id=author_id, viewer_id=viewer.id
    )
    return FeedResponse(posts=page.items, has_more=page.has_more, next_offset=page.next_offset)
