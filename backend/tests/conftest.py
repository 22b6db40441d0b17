"""
Pytest configuration for Onward CRM backend tests.

Runs against an in-memory SQLite database and an in-process fake Redis, so
the suite needs neither Postgres nor a Redis server.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-0123456789-abcdefghijklmnop")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"

import uuid
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.context import UserIdentity
from app.core.database import get_db
from app.core.dependencies import get_redis
from app.main import app
from app.models import Base, User, Workspace, WorkspaceInvite, WorkspaceMember, WorkspaceRole
from app.models.base import utcnow


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------

class FakeRedis:
    """The handful of redis.asyncio calls the app makes, kept in a dict."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(session_factory, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def unique_email(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


def identity_of(user: User) -> UserIdentity:
    return UserIdentity(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        avatar_url=user.avatar_url,
    )


@pytest.fixture
def make_user(db):
    async def _make_user(prefix: str = "user", *, is_active: bool = True) -> User:
        user = User(
            email=unique_email(prefix),
            password_hash=None,
            display_name=prefix.title(),
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def add_member(db):
    async def _add_member(
        workspace: Workspace, user: User, role: WorkspaceRole = WorkspaceRole.member
    ) -> WorkspaceMember:
        member = WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role)
        db.add(member)
        await db.flush()
        return member

    return _add_member


@pytest.fixture
def make_workspace(db, add_member):
    async def _make_workspace(owner: User, name: str = "Acme") -> Workspace:
        workspace = Workspace(name=name, slug=f"{name.lower()}-{uuid.uuid4().hex[:6]}")
        db.add(workspace)
        await db.flush()
        await add_member(workspace, owner, WorkspaceRole.owner)
        return workspace

    return _make_workspace


@pytest.fixture
def make_invite(db):
    async def _make_invite(
        workspace: Workspace,
        inviter: User,
        email: str,
        role: WorkspaceRole = WorkspaceRole.member,
        *,
        expires_in: timedelta | None = timedelta(days=7),
    ) -> WorkspaceInvite:
        now = utcnow()
        invite = WorkspaceInvite(
            workspace_id=workspace.id,
            email=email,
            role=role,
            token=uuid.uuid4().hex,
            created_by=inviter.id,
            created_at=now,
            expires_at=now + expires_in if expires_in is not None else None,
        )
        db.add(invite)
        await db.flush()
        return invite

    return _make_invite
