"""Root conftest for API and SQL storage tests.

Provides:
- In-memory SQLite database (one per test, StaticPool shares its connection)
- SqlAlchemyStorage bound to that database
- FastAPI client wired to a service container over the test database
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.database import Base

# Import all ORM models so they register with Base.metadata
import app.models.db  # noqa: F401
from app.storage import SqlAlchemyStorage


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_storage(test_engine: AsyncEngine) -> SqlAlchemyStorage:
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    return SqlAlchemyStorage(factory)


@pytest_asyncio.fixture
async def services(sql_storage: SqlAlchemyStorage):
    from app.dependencies import build_services

    return build_services(storage=sql_storage)


@pytest_asyncio.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI routes against the test database."""
    from app.main import create_app

    app = create_app(services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
