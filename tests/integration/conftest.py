"""Integration test fixtures for database and HTTP client operations.

Each test gets a fresh SQLite database file created from the SQLModel
metadata. The app's session dependency is overridden to use it.
Uses polyfactory for type-safe test data generation.
"""

from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from src.cybertask import models  # noqa: F401
from src.cybertask.api.dependencies import get_db_session
from src.cybertask.core import redis as redis_core
from src.cybertask.core.db import get_session_factory
from src.cybertask.core.health import reset_health_cache
from src.cybertask.main import create_app
from src.cybertask.models import User, UserRole
from tests.helpers import auth_headers, create_user


@pytest.fixture(autouse=True)
async def _reset_redis_between_tests(mock_redis_unavailable: None) -> AsyncGenerator[None]:
    """Run without Redis unless a test asks for ``mock_redis``.

    Redis clients hold references to their event loop, so state is reset
    around every test.
    """
    reset_health_cache()
    yield
    reset_health_cache()
    redis_core.reset_redis_state()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cybertask.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create the test database engine and the schema."""
    test_engine = create_async_engine(database_url, poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for arranging and inspecting data.

    The AsyncSession context manager only closes the session on exit; it does
    NOT auto-commit. Helpers in tests.helpers commit for you.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def app(engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    """App whose sessions (requests, WebSockets and /health) use the test engine."""
    factory = get_session_factory(engine)

    async def _get_test_session() -> AsyncGenerator[AsyncSession]:
        async with factory() as session:
            yield session

    @asynccontextmanager
    async def _test_session() -> AsyncGenerator[AsyncSession]:
        async with factory() as session:
            yield session

    monkeypatch.setattr("src.cybertask.core.health.get_session", _test_session)

    application = create_app()
    application.dependency_overrides[get_db_session] = _get_test_session
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def sync_client(app: FastAPI) -> Generator[TestClient]:
    """Starlette TestClient; needed for WebSocket tests.

    The lifespan runs on exit and flips the shutdown flag, which the root
    conftest resets.
    """
    with TestClient(app) as client:
        yield client


# --- Users ---


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    return await create_user(db_session, first_name="Ada", last_name="Lovelace")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, first_name="Alan", last_name="Turing")


@pytest.fixture
async def manager(db_session: AsyncSession) -> User:
    return await create_user(db_session, role=UserRole.MANAGER)


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, role=UserRole.ADMIN)


@pytest.fixture
async def super_admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, role=UserRole.SUPER_ADMIN)


@pytest.fixture
def user_headers(user: User) -> dict[str, str]:
    return auth_headers(user)


@pytest.fixture
def other_headers(other_user: User) -> dict[str, str]:
    return auth_headers(other_user)
