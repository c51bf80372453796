"""
Shared pytest fixtures for FanCard tests.

Sets required environment variables BEFORE any fancard module is imported so
that pydantic-settings picks up safe test values.
"""
from __future__ import annotations

import os
from typing import AsyncGenerator

# ── Set env vars before any fancard import ────────────────────────────────────
os.environ.setdefault("BOT_TOKEN", "test-token-for-pytest")
os.environ.setdefault("ADMIN_IDS", "123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

# ── FanCard imports (safe after env vars are set) ─────────────────────────────
from fancard.models.base import Database
from fancard.services.change_feed import ChangeFeed


# ── DB fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
async def database(tmp_path, feed) -> AsyncGenerator[Database, None]:
    """
    A Database handle on a throwaway SQLite file, wired to `feed`.
    A file (not :memory:) so that several sessions, e.g. a scan session's
    consumer and the test body, see each other's commits.
    """
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'fancard.db'}", feed=feed)
    await db.create_tables()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
async def async_session(database) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a fresh AsyncSession on an isolated database.
    Schema is created fresh for every test function; the engine is always
    disposed on teardown, even if the test raises an exception.
    """
    async with database.session() as session:
        yield session
