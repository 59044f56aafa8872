"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational store (TiDB / MySQL protocol) ───────────────────────────
    db_host: str = "tidb"
    db_port: int = 4000
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "photo_feed"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    # Full SQLAlchemy URL; takes precedence over the db_* fields when set
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── MinIO (S3-compatible) blob store ───────────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "posts"
    minio_use_ssl: bool = False
    # When set, images are served from {base}/{bucket}/{key} instead of
    # pre-signed URLs
    storage_public_base_url: Optional[str] = None
    presigned_url_ttl: int = 3600

    # ── Uploads & content limits ───────────────────────────────────────────
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_image_types: list[str] = ["image/jpeg", "image/png", "image/webp"]
    max_caption_length: int = 2200
    max_comment_length: int = 1000

    # ── Pagination ─────────────────────────────────────────────────────────
    feed_page_size: int = 10
    feed_max_page_size: int = 50

    # ── Identity provider (bearer JWT) ─────────────────────────────────────
    auth_jwt_secret: str = "change-me"
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: Optional[str] = None
    auth_jwt_issuer: Optional[str] = None

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "photo-feed-api"
    environment: str = "development"
    log_level: str = "INFO"

    # ── SDK (client side) ──────────────────────────────────────────────────
    api_base_url: str = "http://localhost:8000"
    client_timeout: float = 10.0
    client_locale: str = "en"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
