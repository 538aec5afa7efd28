"""
Core pytest configuration for the entire test suite.

Provides the database engine/session fixtures and installs application logging.
Domain fixtures (bindings, repositories, seeded rows) live in
tests/test_fixtures/repository_fixtures.py and are re-exported below.
"""

from __future__ import annotations

import logging
import os
from typing import AsyncGenerator
from urllib.parse import urlparse

# -------------------------------
# Early logging tuning
# -------------------------------
# Keep noisy third-party loggers quiet before they are imported.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crudkit.config.settings import Settings
from crudkit.core.logging.builder import setup_logging
from crudkit.database.base import Base
from crudkit import models  # noqa: F401 - registers models on Base.metadata

logger = logging.getLogger(__name__)

# -------------------------------
# Settings used by the tests
# -------------------------------
TEST_SETTINGS = Settings(ENV="testing", LOG_FORMAT="text", LOG_LEVEL="DEBUG", LOG_TO_STDOUT=True)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Install the application's dictConfig logging once for the session."""
    setup_logging(TEST_SETTINGS)
    yield


# ------------------------------------------------------------------------------------------------
# Test database URL
# ------------------------------------------------------------------------------------------------

def safe_log_db_url(db_url: str) -> str:
    """Database URL without credentials, safe to log."""
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.hostname or ''}:{parsed.port or ''}/{parsed.path.lstrip('/')}"


def get_test_database_url() -> str:
    """
    1. TEST_DATABASE_URL (CI override, e.g. a Postgres service)
    2. in-memory SQLite, fresh for every test
    """
    return os.getenv("TEST_DATABASE_URL") or "sqlite+aiosqlite://"


TEST_DATABASE_URL = get_test_database_url()
logger.info(f"Using test DB: {safe_log_db_url(TEST_DATABASE_URL)}")


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # one shared connection so the in-memory database survives across sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------

@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(TEST_DATABASE_URL, **_engine_kwargs(TEST_DATABASE_URL))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    A session on a fresh database. Entry points commit, so isolation comes from the
    per-test database rather than from an outer transaction.
    """
    async with session_factory() as session:
        yield session


# Repository / API test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402,F401
    article_repo,
    author_repo,
    category_repo,
    create_author,
    author,
    create_article,
    category_tree,
    seeded_articles,
)
from .test_fixtures.api_fixtures import (  # noqa: E402,F401
    make_app,
    client_for,
)
