"""
User endpoints:
  POST   /users/sync             — provision the caller's user record (idempotent)
  GET    /users/me               — the caller's user record
  GET    /users/{id}             — profile: user, stats, is_following
  POST   /users/{id}/follow      — follow a user (idempotent)
  DELETE /users/{id}/follow      — unfollow a user (idempotent)
  GET    /users/{id}/followers   — who follows this user
  GET    /users/{id}/following   — who this user follows
"""
import logging

from fastapi import APIRouter, Depends, Query, Response, status

from photofeed.auth import require_principal
from photofeed.config import settings
from photofeed.deps import (
    get_engagement_ledger,
    get_feed_service,
    get_identity_resolver,
    get_viewer,
)
from photofeed.models import User
from photofeed.schemas import (
    EdgeState,
    ProfileResponse,
    UserListResponse,
    UserResponse,
    UserSyncRequest,
)
from photofeed.services.engagement import EngagementLedger
from photofeed.services.feed import FeedService
from photofeed.services.identity import IdentityResolver

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sync", response_model=UserResponse)
async def sync_user(
    body: UserSyncRequest,
    response: Response,
    principal: str = Depends(require_principal),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """
    Create the internal user for the authenticated principal.

    Safe to call on every sign-in: returns 201 the first time, 200 after.
    """
    user, created = await resolver.provision(principal, body.display_name)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return user


@router.get("/me", response_model=UserResponse)
async def get_me(viewer: User = Depends(get_viewer)):
    return viewer


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    return await feed.get_profile(user_id, viewer.id)


@router.post("/{user_id}/follow", response_model=EdgeState)
async def follow_user(
    user_id: str,
    response: Response,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    state = await ledger.set_follow(viewer.id, user_id, True)
    response.status_code = status.HTTP_201_CREATED if state.changed else status.HTTP_200_OK
    return state


@router.delete("/{user_id}/follow", response_model=EdgeState)
async def unfollow_user(
    user_id: str,
    viewer: User = Depends(get_viewer),
    ledger: EngagementLedger = Depends(get_engagement_ledger),
):
    return await ledger.set_follow(viewer.id, user_id, False)


@router.get("/{user_id}/followers", response_model=UserListResponse)
async def list_followers(
    user_id: str,
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    offset: int = Query(0, ge=0),
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    page = await feed.list_follow_edges(user_id, "followers", limit=limit, offset=offset)
    return UserListResponse(users=page.items, has_more=page.has_more, next_offset=page.next_offset)


@router.get("/{user_id}/following", response_model=UserListResponse)
async def list_following(
    user_id: str,
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    offset: int = Query(0, ge=0),
    viewer: User = Depends(get_viewer),
    feed: FeedService = Depends(get_feed_service),
):
    page = await feed.list_follow_edges(user_id, "following", limit=limit, offset=offset)
    return UserListResponse(users=page.items, has_more=page.has_more, next_offset=page.next_offset)
