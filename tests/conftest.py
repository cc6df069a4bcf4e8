"""Shared fixtures for remotefs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from remotefs.backends.memory import MemoryBackend

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
def secrets() -> MemoryBackend:
    """Opaque-keyed store used by most engine tests."""
    return MemoryBackend(
        {
            "app/db/password": b"s3cret",
            "app/db/user": b"admin",
            "app/api_key": b"k-123",
            "app/zeta/x": b"x",
            "top": b"level",
            "/rooted/value": b"hidden from opaque filesystems",
        },
        page_size=2,
    )


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
