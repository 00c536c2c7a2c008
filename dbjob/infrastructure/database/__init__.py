"""Database infrastructure.

This package contains:
- Engine construction for the shared database handle
- Liveness checks
"""

from dbjob.infrastructure.database.config import create_db_engine, dispose_engine
from dbjob.infrastructure.database.health import check_database_health, ping_database

__all__ = [
    "create_db_engine",
    "dispose_engine",
    "check_database_health",
    "ping_database",
]
