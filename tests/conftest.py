"""Shared test fixtures."""

import os

# Settings are read at import time; tests never depend on a local .env
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ADMIN_USER_IDS", '["ops-1"]')
os.environ.setdefault("SWEEPER_ENABLED", "false")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture
def db() -> MagicMock:
    """Stand-in AsyncSession; repositories are mocked so it is only passed through."""
    session = MagicMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def session_factory(db: MagicMock) -> MagicMock:
    """async_sessionmaker stand-in: `async with factory() as db, db.begin():` yields `db`."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = db
    return factory
