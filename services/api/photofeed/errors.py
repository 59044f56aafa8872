"""
Failure taxonomy for the API.

Every failure carries a stable machine-readable ``code`` next to the HTTP
status and a human-readable message; main.py renders them as
``{"success": false, "error": <message>, "code": <code>}``.

A toggle that finds its edge already in the requested state is not a failure
at all: the engagement ledger reports it as ``EdgeState(changed=False)``.
"""
from typing import Optional

from fastapi import HTTPException, status


class FeedError(HTTPException):
    """Base class: subclasses pin status_code, code and the default message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.message,
            headers=headers,
        )


# ── 401 ──────────────────────────────────────────────────────────────────────

class Unauthorized(FeedError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


# ── 403 ──────────────────────────────────────────────────────────────────────

class Forbidden(FeedError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "You are not allowed to modify this resource"


# ── 404 ──────────────────────────────────────────────────────────────────────

class NotFound(FeedError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    message = "User not found"


class PostNotFound(NotFound):
    code = "POST_NOT_FOUND"
    message = "Post not found"


class CommentNotFound(NotFound):
    code = "COMMENT_NOT_FOUND"
    message = "Comment not found"


# ── 400 ──────────────────────────────────────────────────────────────────────

class ValidationError(FeedError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class ImageRequired(ValidationError):
    code = "IMAGE_REQUIRED"
    message = "An image is required"


class InvalidImageType(ValidationError):
    code = "INVALID_IMAGE_TYPE"
    message = "Only JPEG, PNG, and WEBP images are allowed"


class FileTooLarge(ValidationError):
    code = "FILE_TOO_LARGE"
    message = "File size must be at most 5MB"


class CaptionTooLong(ValidationError):
    code = "CAPTION_TOO_LONG"
    message = "Caption is too long"


class ContentRequired(ValidationError):
    code = "CONTENT_REQUIRED"
    message = "Comment content is required"


class ContentTooLong(ValidationError):
    code = "CONTENT_TOO_LONG"
    message = "Comment is too long"


class SelfFollowNotAllowed(ValidationError):
    code = "SELF_FOLLOW_NOT_ALLOWED"
    message = "You cannot follow yourself"


# ── 5xx ──────────────────────────────────────────────────────────────────────

class UpstreamFailure(FeedError):
    code = "UPSTREAM_FAILURE"
    message = "A storage operation failed, please retry"


class UploadFailed(UpstreamFailure):
    code = "UPLOAD_FAILED"
    message = "Failed to upload image"


class InsertFailed(UpstreamFailure):
    code = "INSERT_FAILED"
    message = "Failed to save changes"


class DeleteFailed(UpstreamFailure):
    code = "DELETE_FAILED"
    message = "Failed to delete resource"
