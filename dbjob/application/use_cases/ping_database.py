"""Ping Database Use Case.

Keeps the shared connection pool warm and surfaces connectivity loss in the
task log. Registered by the command line entry point; host programs can
register it next to their own tasks.
"""

from dbjob.domain.entities import ExecutionContext, JobTask
from dbjob.domain.exceptions import DatabaseConnectionError
from dbjob.infrastructure.database.health import ping_database

STATUS_OK = 0
STATUS_UNREACHABLE = 1


class PingDatabaseUseCase(JobTask):
    """Run ``SELECT 1`` against the shared database on every invocation.

    A failed ping is reported through the status code rather than raised, so
    the keepalive keeps running while the database is down and logs when it
    comes back.
    """

    def __init__(self):
        self._consecutive_failures = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def execute(self, context: ExecutionContext) -> int:
        try:
            ping_database(context.db)
        except DatabaseConnectionError as e:
            self._consecutive_failures += 1
            context.log(
                "database unreachable (%d consecutive failures): %s",
                self._consecutive_failures,
                e,
            )
            return STATUS_UNREACHABLE

        if self._consecutive_failures:
            context.log(
                "database reachable again after %d failed pings",
                self._consecutive_failures,
            )
        elif context.is_cold_start:
            context.log("database reachable")
        self._consecutive_failures = 0
        return STATUS_OK
