"""
Shared fixtures: in-memory SQLite engine, HTTP client, users and auth headers.

The app runs against ``sqlite+aiosqlite`` with a single shared connection.
pysqlite's own transaction handling is switched off so SAVEPOINTs issued by
``session.begin_nested()`` behave as they do on Postgres.
"""

from __future__ import annotations

import os

os.environ.setdefault("WS_SECRET_KEY", "test-secret-key-for-unit-tests-only-min-32-chars")
os.environ.setdefault("WS_DEBUG", "false")
os.environ.setdefault("WS_BASE_URL", "http://workspace.acme.dev")
os.environ.setdefault("WS_LOG_FORMAT", "text")

import uuid
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401  (populate metadata)
from app.core.auth import create_jwt, hash_password
from app.core.database import dispose_engine, get_session_factory, init_engine
from app.core.email import get_email_dispatcher
from app.main import app as fastapi_app
from app.models.user import User
from app.services import organizations as org_service

TEST_DB_URL = "sqlite+aiosqlite://"
DEFAULT_PASSWORD = "Secretpass1"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    engine = init_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _no_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await dispose_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


# ---------------------------------------------------------------------------
# Email
# ---------------------------------------------------------------------------

class FakeDispatcher:
    """Records outbound email instead of sending it."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.sent: list[tuple[str, str]] = []

    def dispatch(self, to, email, **context):
        if not self.enabled:
            return None
        self.sent.append((to, email.subject))
        return None

    async def drain(self) -> None:
        return None

    def subjects_for(self, to: str) -> list[str]:
        return [subject for addr, subject in self.sent if addr == to]


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


# ---------------------------------------------------------------------------
# App + client
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def no_redis():
    """The revocation list lives in Redis; tests never need a real one."""
    with patch("app.core.auth.is_jwt_revoked", new=AsyncMock(return_value=False)), \
         patch("app.api.auth.revoke_jwt", new=AsyncMock()) as revoke:
        yield revoke


@pytest_asyncio.fixture
async def client(db_engine, dispatcher):
    fastapi_app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users and orgs
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(session_factory):
    async def _make(
        email: str,
        password: Optional[str] = DEFAULT_PASSWORD,
        name: Optional[str] = None,
        verified: bool = True,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                name=name or email.split("@")[0].title(),
                password_hash=hash_password(password) if password else None,
                email_verified=verified,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_org(session_factory):
    async def _make(owner: User, name: str = "Acme Corp"):
        async with session_factory() as session:
            org = await org_service.create_org(session, name, owner)
            await session.commit()
            return org

    return _make


@pytest.fixture
def auth_headers():
    """Bearer headers for a user (or bare user id)."""
    def _headers(user_or_id) -> dict:
        user_id = getattr(user_or_id, "id", user_or_id)
        token, _ = create_jwt(uuid.UUID(str(user_id)))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def owner(make_user):
    return await make_user("olivia@acme.io", name="Olivia")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("bob@acme.io", name="Bob")


@pytest_asyncio.fixture
async def carol(make_user):
    return await make_user("carol@acme.io", name="Carol")


@pytest_asyncio.fixture
async def org(make_org, owner):
    return await make_org(owner)
