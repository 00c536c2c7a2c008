"""Database health check module.

This module provides the liveness check run before a scheduler is
considered ready, and reused by the database keepalive task.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from dbjob.domain.exceptions import DatabaseConnectionError


def ping_database(engine: Engine) -> None:
    """Execute ``SELECT 1`` and verify the result.

    Args:
        engine: Engine to check

    Raises:
        DatabaseConnectionError: If the database is unreachable or answers
            unexpectedly
    """
    try:
        with engine.connect() as conn:
            row = conn.execute(text("SELECT 1")).scalar()
    except SQLAlchemyError as e:
        raise DatabaseConnectionError(f"database ping failed: {e}") from e

    if row != 1:
        raise DatabaseConnectionError(f"database ping returned unexpected value: {row!r}")


def check_database_health(engine: Engine) -> bool:
    """Check database connectivity.

    Args:
        engine: Engine to check

    Returns:
        True if database is healthy, False otherwise
    """
    try:
        ping_database(engine)
    except DatabaseConnectionError:
        return False
    return True
