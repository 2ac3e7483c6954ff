"""
Shared fixtures.

Environment is pinned before any dsa_mentor import: a fixed signing key,
rate limiting off, and a throwaway default database for the app engine.
"""
import os
import tempfile
import uuid

_TEST_DIR = tempfile.mkdtemp(prefix="dsa_mentor_tests_")

os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-signing-key-not-for-production"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENFORCE_COMPLETION_GATE"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from dsa_mentor.database import get_db
from dsa_mentor.main import app
from dsa_mentor.orm.base import Base
from dsa_mentor.realtime.connection_manager import ConnectionManager, set_connection_manager
from dsa_mentor.services import credential_service

TEST_PASSWORD = "password123"


def unique_email(prefix: str = "learner") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}@example.com"


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/test.db",
        poolclass=NullPool,
        echo=False,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def account(db):
    return await credential_service.register_account(
        db, email=unique_email(), password=TEST_PASSWORD, name="Test Learner"
    )


@pytest.fixture(autouse=True)
def fresh_connection_manager():
    manager = ConnectionManager()
    set_connection_manager(manager)
    yield manager
    set_connection_manager(None)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with get_db bound to the per-test database."""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


async def register_via_api(client: AsyncClient, email: str = None, password: str = TEST_PASSWORD) -> dict:
    response = await client.post("/api/auth/register", json={
        "email": email or unique_email(),
        "password": password,
        "name": "API Learner",
    })
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
