"""
Shared fixtures — in-memory SQLite database, fake email and Redis, and an
HTTP client wired to the app with its collaborators overridden.
"""

from __future__ import annotations

import os

os.environ.setdefault("SN_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SN_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("SN_LOG_FORMAT", "text")

from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.auth import create_jwt, hash_password  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.email import EmailMessage, EmailSender, get_email_sender  # noqa: E402
from app.core.errors import EmailDispatchFailed  # noqa: E402
from app.main import app  # noqa: E402
from app.models.base import utcnow  # noqa: E402
from app.models.membership import Membership  # noqa: E402
from app.models.organization import Organization  # noqa: E402
from app.models.user import User  # noqa: E402
from syncnotes_shared.schemas.common import Role  # noqa: E402


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeEmailSender(EmailSender):
    """Records outgoing mail; set ``fail = True`` to simulate a provider outage."""

    def __init__(self):
        self.sent: list[EmailMessage] = []
        self.fail = False

    async def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise EmailDispatchFailed()
        self.sent.append(message)


class FakeRedis:
    """The slice of redis.asyncio used by the JWT revocation list."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value

    async def exists(self, key: str) -> int:
        return 1 if key in self.store else 0


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Session factory bound to a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    redis = FakeRedis()

    async def _get_redis():
        return redis

    monkeypatch.setattr("app.core.redis.get_redis", _get_redis)
    return redis


@pytest.fixture
async def client(db, email_sender):
    async def _get_session():
        async with db() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db):
    async def _make(
        email: str,
        *,
        name: Optional[str] = None,
        password: Optional[str] = None,
        verified: bool = True,
    ) -> User:
        async with db() as session:
            user = User(
                email=email,
                name=name or email.split("@")[0].title(),
                password_hash=hash_password(password) if password else None,
                email_verified=utcnow() if verified else None,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_org(db):
    async def _make(name: str = "Acme", *members: tuple[User, Role]) -> Organization:
        async with db() as session:
            org = Organization(name=name)
            session.add(org)
            await session.flush()
            for user, role in members:
                session.add(Membership(org_id=org.id, user_id=user.id, role=role.value))
            await session.commit()
            return org

    return _make


@pytest.fixture
def add_member(db):
    async def _add(org: Organization, user: User, role: Role) -> Membership:
        async with db() as session:
            membership = Membership(org_id=org.id, user_id=user.id, role=role.value)
            session.add(membership)
            await session.commit()
            return membership

    return _add


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token, _jti = create_jwt(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers
