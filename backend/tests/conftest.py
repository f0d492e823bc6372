# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Must be set before tagtrack.config is first imported (settings are cached).
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import tagtrack.models  # noqa: E402,F401
from tagtrack.db.base import Base  # noqa: E402
from tagtrack.db.session import get_db  # noqa: E402
from tagtrack.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# One in-memory database per test; StaticPool keeps every session on the same connection.
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(async_engine: AsyncEngine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Plain session; tests flush through the services and commit when they need to."""
    async with session_maker() as sess:
        yield sess


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client over the ASGI app, with one committed-or-rolled-back session per request."""

    async def override_get_db():
        async with session_maker() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User": "tester"},
    ) as c:
        yield c
    app.dependency_overrides.clear()
