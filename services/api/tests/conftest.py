import os

# Must be set before photofeed.config is imported
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

from types import SimpleNamespace
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from photofeed.auth import create_access_token
from photofeed.clients.storage_client import StorageError, build_object_key, get_blob_store
from photofeed.database import Base, get_db
from photofeed.main import app
from photofeed.models import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeBlobStore:
    """In-memory stand-in for the MinIO client."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.fail_put = False
        self.fail_delete = False

    def put(self, data: bytes, content_type: str, principal: str) -> str:
        if self.fail_put:
            raise StorageError("put refused")
        key = build_object_key(principal, content_type)
        self.objects[key] = data
        return key

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("delete refused")
        self.objects.pop(key, None)

    def public_url(self, key: str) -> str:
        return f"http://cdn.test/posts/{key}"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'feed.db'}", poolclass=NullPool
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def override_app(session_factory, blob_store):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(override_app):
    async with AsyncClient(transport=ASGITransport(app=override_app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session_factory):
    """Provision a user directly in the store and mint a token for it."""

    async def _make(name: str) -> SimpleNamespace:
        principal = f"{name}_{uuid4().hex[:8]}"
        async with session_factory() as session:
            user = User(external_principal_id=principal, display_name=name)
            session.add(user)
            await session.commit()
        token = create_access_token(principal)
        return SimpleNamespace(
            id=user.id,
            principal=principal,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture
def create_post(client):
    async def _create(user, caption=None, content_type="image/png", data=PNG_BYTES) -> dict:
        form = {"caption": caption} if caption is not None else None
        resp = await client.post(
            "/posts/",
            data=form,
            files={"image": ("photo.png", data, content_type)},
            headers=user.headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create
