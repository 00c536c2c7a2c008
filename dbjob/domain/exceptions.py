"""Domain exceptions module.

Errors raised by the configuration loader, the database bootstrap and the
scheduler runtime. The scheduler factory converts the first two into an
absent scheduler after logging them.
"""


class DbJobError(Exception):
    """Base class for all dbjob errors."""


class ConfigurationError(DbJobError):
    """Configuration file is unreadable, undecodable, or invalid.

    Attributes:
        path: Path of the offending configuration file, if any
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class DatabaseConnectionError(DbJobError):
    """Database connection could not be opened or failed its liveness check."""


class SchedulerStateError(DbJobError):
    """Operation is not allowed in the scheduler's current lifecycle state."""
