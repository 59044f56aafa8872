"""
Feed Paginator: time-ordered, offset-paginated reads of posts and comments,
merged with Aggregation Layer output into PostView / CommentView records.

Ordering is created_at DESC with id DESC as a tie-breaker so that pages are
stable when several rows share a timestamp.
"""
import logging
import time
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.clients.storage_client import BlobStore
from photofeed.errors import PostNotFound, UserNotFound
from photofeed.models import Comment, Follow, Post, User
from photofeed.schemas import (
    CommentView,
    PostView,
    ProfileResponse,
    UserResponse,
    UserSummary,
)
from photofeed.services.aggregation import AggregationService
from photofeed.telemetry import FEED_LATENCY

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T]
    has_more: bool
    next_offset: Optional[int]


def paginate(items: list[T], total: int, limit: int, offset: int) -> Page[T]:
    has_more = offset + limit < total
    return Page(items=items, has_more=has_more, next_offset=offset + limit if has_more else None)


class FeedService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore):
        self.db = db
        self.blob_store = blob_store
        self.aggregation = AggregationService(db)

    async def build_post_views(
        self, posts: list[Post], viewer_id: Optional[str]
    ) -> list[PostView]:
        stats = await self.aggregation.post_stats([p.id for p in posts], viewer_id)
        return [
            PostView(
                id=post.id,
                author_id=post.author_id,
                image_url=self.blob_store.public_url(post.image_ref),
                caption=post.caption,
                created_at=post.created_at,
                updated_at=post.updated_at,
                author=UserSummary.model_validate(post.author),
                likes_count=stats[post.id].likes_count,
                comments_count=stats[post.id].comments_count,
                is_liked=stats[post.id].is_liked,
            )
            for post in posts
        ]

    async def build_comment_views(
        self, comments: list[Comment], viewer_id: Optional[str]
    ) -> list[CommentView]:
        stats = await self.aggregation.comment_stats([c.id for c in comments], viewer_id)
        return [
            CommentView(
                id=comment.id,
                post_id=comment.post_id,
                author_id=comment.author_id,
                content=comment.content,
                created_at=comment.created_at,
                updated_at=comment.updated_at,
                author=UserSummary.model_validate(comment.author),
                likes_count=stats[comment.id].likes_count,
                is_liked=stats[comment.id].is_liked,
            )
            for comment in comments
        ]

    async def list_posts(
        self,
        limit: int,
        offset: int = 0,
        author_id: Optional[str] = None,
        viewer_id: Optional[str] = None,
    ) -> Page[PostView]:
        """
        One page of the chronological feed, optionally restricted to one author
        (the profile grid).
        """
        started = time.perf_counter()

        query = select(Post)
        count_query = select(func.count()).select_from(Post)
        if author_id is not None:
            query = query.where(Post.author_id == author_id)
            count_query = count_query.where(Post.author_id == author_id)

        total = await self.db.scalar(count_query) or 0
        rows = await self.db.execute(
            query.order_by(Post.created_at.desc(), Post.id.desc())
            .offset(offset)
            .limit(limit)
        )
        posts = list(rows.scalars().all())
        items = await self.build_post_views(posts, viewer_id)

        FEED_LATENCY.observe(time.perf_counter() - started)
        logger.debug(
            "Feed page offset=%d limit=%d author=%s → %d/%d",
            offset, limit, author_id, len(items), total,
        )
        return paginate(items, total, limit, offset)

    async def get_post(self, post_id: str, viewer_id: Optional[str] = None) -> PostView:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise PostNotFound()
        views = await self.build_post_views([post], viewer_id)
        return views[0]

    async def list_comments(
        self,
        post_id: str,
        limit: int,
        offset: int = 0,
        viewer_id: Optional[str] = None,
    ) -> Page[CommentView]:
        # A deleted post has no comments left: an empty page, not a 404
        total = await self.db.scalar(
            select(func.count()).select_from(Comment).where(Comment.post_id == post_id)
        ) or 0
        rows = await self.db.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset(offset)
            .limit(limit)
        )
        items = await self.build_comment_views(list(rows.scalars().all()), viewer_id)
        return paginate(items, total, limit, offset)

    async def get_profile(self, user_id: str, viewer_id: Optional[str] = None) -> ProfileResponse:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return ProfileResponse(
            user=UserResponse.model_validate(user),
            stats=await self.aggregation.user_stats(user_id),
            is_following=await self.aggregation.is_following(viewer_id, user_id),
        )

    async def list_follow_edges(
        self, user_id: str, direction: str, limit: int, offset: int = 0
    ) -> Page[UserSummary]:
        """
        direction='followers' → users following `user_id`;
        direction='following' → users `user_id` follows.
        """
        if await self.db.get(User, user_id) is None:
            raise UserNotFound()

        if direction == "followers":
            match, other = Follow.followee_id, Follow.follower_id
        else:
            match, other = Follow.follower_id, Follow.followee_id

        total = await self.db.scalar(
            select(func.count()).select_from(Follow).where(match == user_id)
        ) or 0
        rows = await self.db.execute(
            select(User)
            .join(Follow, other == User.id)
            .where(match == user_id)
            .order_by(Follow.created_at.desc(), Follow.id.desc())
            .offset(offset)
            .limit(limit)
        )
        items = [UserSummary.model_validate(u) for u in rows.scalars().all()]
        return paginate(items, total, limit, offset)
