"""
Aggregation Layer: read-side counts and viewer-relative flags.

Every number here is the cardinality of a relation grouped by its foreign
key, recomputed on each read. Nothing is cached or stored, so counts cannot
drift from the rows they describe.
"""
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.models import Comment, CommentLike, Follow, Like, Post
from photofeed.schemas import CommentStats, PostStats, UserStats


class AggregationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count_by(self, column, ids: list[str]) -> dict[str, int]:
        rows = await self.db.execute(
            select(column, func.count()).where(column.in_(ids)).group_by(column)
        )
        return {key: count for key, count in rows.all()}

    async def _members(self, column, ids: list[str], user_column, viewer_id: str) -> set[str]:
        rows = await self.db.execute(
            select(column).where(column.in_(ids), user_column == viewer_id)
        )
        return set(rows.scalars().all())

    async def post_stats(
        self, post_ids: Iterable[str], viewer_id: Optional[str] = None
    ) -> dict[str, PostStats]:
        ids = list(post_ids)
        if not ids:
            return {}

        likes = await self._count_by(Like.post_id, ids)
        comments = await self._count_by(Comment.post_id, ids)
        liked = (
            await self._members(Like.post_id, ids, Like.user_id, viewer_id)
            if viewer_id
            else set()
        )

        return {
            pid: PostStats(
                likes_count=likes.get(pid, 0),
                comments_count=comments.get(pid, 0),
                is_liked=pid in liked,
            )
            for pid in ids
        }

    async def comment_stats(
        self, comment_ids: Iterable[str], viewer_id: Optional[str] = None
    ) -> dict[str, CommentStats]:
        ids = list(comment_ids)
        if not ids:
            return {}

        likes = await self._count_by(CommentLike.comment_id, ids)
        liked = (
            await self._members(CommentLike.comment_id, ids, CommentLike.user_id, viewer_id)
            if viewer_id
            else set()
        )
        return {
            cid: CommentStats(likes_count=likes.get(cid, 0), is_liked=cid in liked)
            for cid in ids
        }

    async def user_stats(self, user_id: str) -> UserStats:
        posts = await self.db.scalar(
            select(func.count()).select_from(Post).where(Post.author_id == user_id)
        )
        followers = await self.db.scalar(
            select(func.count()).select_from(Follow).where(Follow.followee_id == user_id)
        )
        following = await self.db.scalar(
            select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        )
        return UserStats(
            posts_count=posts or 0,
            followers_count=followers or 0,
            following_count=following or 0,
        )

    async def is_following(self, viewer_id: Optional[str], user_id: str) -> bool:
        if not viewer_id or viewer_id == user_id:
            return False
        found = await self.db.scalar(
            select(Follow.id).where(
                Follow.follower_id == viewer_id, Follow.followee_id == user_id
            )
        )
        return found is not None
