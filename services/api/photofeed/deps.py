from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from photofeed.auth import require_principal
from photofeed.clients.storage_client import BlobStore, get_blob_store
from photofeed.database import get_db
from photofeed.models import User
from photofeed.services.comments import CommentService
from photofeed.services.engagement import EngagementLedger
from photofeed.services.feed import FeedService
from photofeed.services.identity import IdentityResolver
from photofeed.services.posts import PostService


async def get_identity_resolver(db: AsyncSession = Depends(get_db)) -> IdentityResolver:
    """Dependency for IdentityResolver."""
    return IdentityResolver(db)


async def get_viewer(
    principal: str = Depends(require_principal),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> User:
    """The authenticated, provisioned user making the request."""
    return await resolver.resolve(principal)


async def get_feed_service(
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> FeedService:
    """Dependency for FeedService."""
    return FeedService(db, blob_store)


async def get_post_service(
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> PostService:
    """Dependency for PostService."""
    return PostService(db, blob_store)


async def get_comment_service(db: AsyncSession = Depends(get_db)) -> CommentService:
    """Dependency for CommentService."""
    return CommentService(db)


async def get_engagement_ledger(db: AsyncSession = Depends(get_db)) -> EngagementLedger:
    """Dependency for EngagementLedger."""
    return EngagementLedger(db)
