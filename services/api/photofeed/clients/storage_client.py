"""
MinIO (S3-compatible) client for post images.

Stores the raw image bytes as objects and hands back object keys; the post
row only keeps the key (Post.image_ref). URLs are either built from a public
base URL or pre-signed, so clients stream images directly from MinIO without
going through the API service.
"""
import logging
import secrets
import time
from io import BytesIO
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from photofeed.config import settings

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class StorageError(Exception):
    """Raised when the blob store rejects or fails an operation."""


def build_object_key(principal: str, content_type: str) -> str:
    """
    Key format: {principal}/{epoch_ms}_{random}.{ext}
    Grouping by principal keeps one user's uploads under a common prefix.
    """
    ext = EXTENSIONS.get(content_type, "bin")
    return f"{principal}/{int(time.time() * 1000)}_{secrets.token_hex(4)}.{ext}"


class BlobStore:
    def __init__(self) -> None:
        self._s3 = None

    def start(self) -> None:
        """Create the S3 client and ensure the image bucket exists."""
        scheme = "https" if settings.minio_use_ssl else "http"
        self._s3 = boto3.client(
            "s3",
            endpoint_url=f"{scheme}://{settings.minio_endpoint}",
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            config=Config(signature_version="s3v4"),
            region_name="us-east-1",
        )

        existing = [b["Name"] for b in self._s3.list_buckets().get("Buckets", [])]
        if settings.minio_bucket not in existing:
            self._s3.create_bucket(Bucket=settings.minio_bucket)
            logger.info("Created MinIO bucket '%s'", settings.minio_bucket)
        else:
            logger.info("MinIO bucket '%s' already exists", settings.minio_bucket)

    def _client(self):
        if self._s3 is None:
            raise RuntimeError("Blob store not initialised — call start() at startup")
        return self._s3

    def put(self, data: bytes, content_type: str, principal: str) -> str:
        """Upload image bytes and return the object key."""
        key = build_object_key(principal, content_type)
        try:
            self._client().put_object(
                Bucket=settings.minio_bucket,
                Key=key,
                Body=BytesIO(data),
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"upload of {key} failed: {exc}") from exc
        logger.debug("Uploaded image to MinIO: %s", key)
        return key

    def delete(self, key: str) -> None:
        try:
            self._client().delete_object(Bucket=settings.minio_bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"delete of {key} failed: {exc}") from exc
        logger.debug("Deleted image from MinIO: %s", key)

    def public_url(self, key: str) -> Optional[str]:
        if not key:
            return None
        if settings.storage_public_base_url:
            base = settings.storage_public_base_url.rstrip("/")
            return f"{base}/{settings.minio_bucket}/{key}"
        try:
            return self._client().generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.minio_bucket, "Key": key},
                ExpiresIn=settings.presigned_url_ttl,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Failed to generate presigned URL for %s: %s", key, exc)
            return None


# Singleton
blob_store = BlobStore()


def get_blob_store() -> BlobStore:
    """FastAPI dependency; overridden in tests."""
    return blob_store
