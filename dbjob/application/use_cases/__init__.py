"""Application use cases - job tasks shipped with dbjob."""

from dbjob.application.use_cases.ping_database import PingDatabaseUseCase

__all__ = [
    "PingDatabaseUseCase",
]
