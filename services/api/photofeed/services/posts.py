"""
Post mutations (create with image, delete).

Write ordering for CreatePost: the image is stored before the row is
inserted; if the insert fails the uploaded object is deleted again
(best-effort compensation, no two-phase commit). DeletePost removes the
image best-effort and then the row, which cascades to likes, comments and
comment likes.
"""
import asyncio
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.clients.storage_client import BlobStore, StorageError
from photofeed.config import settings
from photofeed.errors import (
    CaptionTooLong,
    DeleteFailed,
    FileTooLarge,
    Forbidden,
    ImageRequired,
    InsertFailed,
    InvalidImageType,
    PostNotFound,
    UploadFailed,
)
from photofeed.models import Post, User
from photofeed.telemetry import ORPHANED_BLOBS_TOTAL, POST_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def normalize_caption(caption: Optional[str]) -> Optional[str]:
    if caption is None:
        return None
    caption = caption.strip()
    if len(caption) > settings.max_caption_length:
        raise CaptionTooLong(
            f"Caption must be at most {settings.max_caption_length} characters"
        )
    return caption or None


def validate_image(data: Optional[bytes], content_type: Optional[str]) -> None:
    if not data:
        raise ImageRequired()
    if content_type not in settings.allowed_image_types:
        raise InvalidImageType()
    if len(data) > settings.max_image_bytes:
        raise FileTooLarge(
            f"File size must be at most {settings.max_image_bytes // (1024 * 1024)}MB"
        )


class PostService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore):
        self.db = db
        self.blob_store = blob_store

    async def create_post(
        self,
        author: User,
        data: Optional[bytes],
        content_type: Optional[str],
        caption: Optional[str] = None,
    ) -> Post:
        with tracer.start_as_current_span("create_post") as span:
            validate_image(data, content_type)
            caption = normalize_caption(caption)

            try:
                key = await asyncio.to_thread(
                    self.blob_store.put, data, content_type, author.external_principal_id
                )
            except StorageError as exc:
                logger.error("Image upload failed for user %s: %s", author.id, exc)
                raise UploadFailed() from exc

            post = Post(author_id=author.id, image_ref=key, caption=caption)
            post.author = author
            self.db.add(post)
            try:
                await self.db.commit()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Post insert failed, removing uploaded image %s: %s", key, exc)
                await self._discard_blob(key)
                raise InsertFailed("Failed to create post") from exc

            span.set_attribute("post.id", post.id)
            span.set_attribute("post.author_id", post.author_id)
            POST_CREATED_TOTAL.inc()
            logger.info("Post created: %s by user %s", post.id, post.author_id)
            return post

    async def _discard_blob(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.blob_store.delete, key)
        except StorageError as exc:
            ORPHANED_BLOBS_TOTAL.inc()
            logger.warning("Orphaned image %s left in storage: %s", key, exc)

    async def delete_post(self, viewer: User, post_id: str) -> None:
        with tracer.start_as_current_span("delete_post") as span:
            span.set_attribute("post.id", post_id)
            post = await self.db.get(Post, post_id)
            if post is None:
                raise PostNotFound()
            if post.author_id != viewer.id:
                raise Forbidden("Only the author can delete this post")

            try:
                await asyncio.to_thread(self.blob_store.delete, post.image_ref)
            except StorageError as exc:
                logger.warning("Failed to delete image for post %s: %s", post_id, exc)

            try:
                await self.db.execute(
                    delete(Post).where(Post.id == post_id, Post.author_id == viewer.id)
                )
                await self.db.commit()
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Post delete failed for %s: %s", post_id, exc)
                raise DeleteFailed("Failed to delete post") from exc

            logger.info("Post deleted: %s by user %s", post_id, viewer.id)
