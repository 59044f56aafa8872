"""Comment mutations: create (validated, trimmed) and author-only delete."""
import logging

from opentelemetry import trace
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.config import settings
from photofeed.errors import (
    CommentNotFound,
    ContentRequired,
    ContentTooLong,
    DeleteFailed,
    Forbidden,
    InsertFailed,
    PostNotFound,
)
from photofeed.models import Comment, Post, User

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def normalize_content(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ContentRequired()
    if len(content) > settings.max_comment_length:
        raise ContentTooLong(
            f"Comments can be at most {settings.max_comment_length} characters"
        )
    return content


class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_comment(self, author: User, post_id: str, content: str) -> Comment:
        with tracer.start_as_current_span("create_comment"):
            content = normalize_content(content)
            if await self.db.get(Post, post_id) is None:
                raise PostNotFound()

            comment = Comment(post_id=post_id, author_id=author.id, content=content)
            comment.author = author
            self.db.add(comment)
            try:
                await self.db.commit()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Comment insert failed on post %s: %s", post_id, exc)
                raise InsertFailed("Failed to create comment") from exc
            logger.info("Comment %s created on post %s by %s", comment.id, post_id, author.id)
            return comment

    async def delete_comment(self, viewer: User, comment_id: str) -> None:
        with tracer.start_as_current_span("delete_comment"):
            comment = await self.db.get(Comment, comment_id)
            if comment is None:
                raise CommentNotFound()
            if comment.author_id != viewer.id:
                raise Forbidden("Only the author can delete this comment")

            try:
                await self.db.execute(delete(Comment).where(Comment.id == comment_id))
                await self.db.commit()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Comment delete failed for %s: %s", comment_id, exc)
                raise DeleteFailed("Failed to delete comment") from exc

            logger.info("Comment %s deleted by %s", comment_id, viewer.id)
