"""Database configuration module.

This module builds the shared SQLAlchemy engine the scheduler hands to
every task invocation. The engine's connection pool provides one
connection per concurrently running task.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from dbjob.domain.exceptions import DatabaseConnectionError
from dbjob.infrastructure.config.database_config import MYSQL_COLLATION, DatabaseConfig


def create_db_engine(
    database: DatabaseConfig | URL | str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
    **engine_kwargs,
) -> Engine:
    """Create SQLAlchemy engine with connection pooling.

    Args:
        database: Connection descriptor, or a ready URL (tests use SQLite)
        pool_size: Connection pool size (MySQL only)
        max_overflow: Burst capacity above pool_size (MySQL only)
        echo: Enable SQL query logging (development only)
        **engine_kwargs: Extra keyword arguments for create_engine()

    Returns:
        Engine instance; no connection is opened yet

    Raises:
        DatabaseConnectionError: If the engine cannot be created (bad URL,
            missing driver)
    """
    if isinstance(database, DatabaseConfig):
        url = database.to_url()
        engine_kwargs.setdefault("connect_args", {"collation": MYSQL_COLLATION})
        engine_kwargs.setdefault("pool_size", pool_size)
        engine_kwargs.setdefault("max_overflow", max_overflow)
        engine_kwargs.setdefault("pool_recycle", 3600)  # Recycle connections every hour
    else:
        url = database

    try:
        return create_engine(
            url,
            pool_pre_ping=True,  # Validate connections before use
            echo=echo,
            **engine_kwargs,
        )
    except (SQLAlchemyError, ImportError, ValueError) as e:
        raise DatabaseConnectionError(f"cannot create database engine: {e}") from e


def dispose_engine(engine: Engine | None) -> None:
    """Dispose engine and close all pooled connections."""
    if engine is not None:
        engine.dispose()
