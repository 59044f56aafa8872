"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

PostView and CommentView are built once at the data-access boundary
(photofeed.services.feed) and never passed around as raw rows.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────── Users ───────────────────────────────────────

class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_principal_id: str
    display_name: str
    created_at: datetime


class UserSyncRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255)


class UserStats(BaseModel):
    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0


class ProfileResponse(BaseModel):
    user: UserResponse
    stats: UserStats
    is_following: bool = False


class UserListResponse(BaseModel):
    users: list[UserSummary]
    has_more: bool
    next_offset: Optional[int] = None


# ──────────────────────────── Posts ───────────────────────────────────────

class PostStats(BaseModel):
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False


class PostView(BaseModel):
    """A post merged with its author and viewer-relative aggregates."""
    id: str
    author_id: str
    image_url: Optional[str]
    caption: Optional[str]
    created_at: datetime
    updated_at: datetime
    author: UserSummary
    likes_count: int
    comments_count: int
    is_liked: bool


class FeedResponse(BaseModel):
    posts: list[PostView]
    has_more: bool
    next_offset: Optional[int] = None


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    # Missing, blank and over-long content are rejected by CommentService
    content: str = ""


class CommentStats(BaseModel):
    likes_count: int = 0
    is_liked: bool = False


class CommentView(BaseModel):
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    author: UserSummary
    likes_count: int
    is_liked: bool


class CommentListResponse(BaseModel):
    comments: list[CommentView]
    has_more: bool
    next_offset: Optional[int] = None


# ──────────────────────────── Mutations ───────────────────────────────────

class EdgeState(BaseModel):
    """Outcome of a like / comment-like / follow toggle."""
    active: bool
    # False when the edge was already in the requested state
    changed: bool


class DeleteResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
