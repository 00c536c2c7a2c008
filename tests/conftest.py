"""Shared test fixtures.

SQLite in-memory engines stand in for MySQL in unit tests; the pool is a
StaticPool so every task thread sees the same in-memory database.
"""

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from dbjob.infrastructure.config import Settings, reset_settings


@pytest.fixture
def sqlite_engine() -> Engine:
    """Provide a thread-shareable in-memory SQLite engine."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def mock_engine() -> MagicMock:
    """Provide an engine double for tests that never touch the database."""
    return MagicMock(spec=Engine)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Provide settings pointing at a temporary directory."""
    return Settings(
        config_path=str(tmp_path / "db.json"),
        log_dir=str(tmp_path),
        shutdown_timeout_seconds=5.0,
    )


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Reset cached settings and remove dbjob log handlers after each test."""
    yield
    reset_settings()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_dbjob_handler", False):
            root.removeHandler(handler)
            handler.close()
