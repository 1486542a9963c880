"""Pytest configuration and fixtures for SchoolHub tests.

Each test gets a fresh in-memory SQLite database with all tables created,
so tests never need a running PostgreSQL.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolhub.auth.jwt import create_access_token
from schoolhub.database import Base, get_db
from schoolhub.main import app
from schoolhub.models import User, UserStatus, UserType


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Create an in-memory database engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests."""
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database dependency."""

    async def override_get_db():
        yield db_session
        await db_session.flush()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

async def _create_user(
    db: AsyncSession,
    email: str,
    user_type: UserType,
    status: UserStatus = UserStatus.ACTIVE,
) -> User:
    user = User(
        email=email,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        user_type=user_type,
        status=status,
        tenant_id="tenant-001",
    )
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A teacher who just signed up and still has to onboard."""
    return await _create_user(
        db_session, "teacher@example.com", UserType.TEACHER, UserStatus.PENDING
    )


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", UserType.ADMIN)


@pytest_asyncio.fixture
async def super_admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "root@example.com", UserType.SUPER_ADMIN)


def _headers_for(user: User) -> dict:
    token = create_access_token(
        user_id=user.id,
        user_type=user.user_type.value,
        tenant_id=user.tenant_id,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers for the onboarding teacher."""
    return _headers_for(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user: User) -> dict:
    return _headers_for(super_admin_user)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
    config.addinivalue_line("markers", "auth: Authentication tests")
