"""Task state entities module.

Lifecycle status, failure reason, and the final per-task snapshot returned
by the scheduler's run loop.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class TaskStatus(str, Enum):
    """Task Instance lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TaskFailure:
    """Reason a task stopped because an invocation raised.

    Attributes:
        error_type: Qualified name of the exception class
        message: String form of the exception
        run_number: Invocation that raised (1 is the cold start)
        occurred_at: When the failure was recorded
    """

    error_type: str
    message: str
    run_number: int
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_exception(cls, exc: BaseException, run_number: int) -> "TaskFailure":
        exc_type = type(exc)
        return cls(
            error_type=f"{exc_type.__module__}.{exc_type.__qualname__}",
            message=str(exc),
            run_number=run_number,
        )


@dataclass(frozen=True)
class TaskReport:
    """Snapshot of one Task Instance, as returned by ``Scheduler.run``.

    Attributes:
        name: Task name
        status: Lifecycle status at the time of the snapshot
        run_count: Number of invocations performed
        last_status: Status code of the last successful invocation
        last_run: Start time of the last invocation
        failure: Failure reason when an invocation raised
    """

    name: str
    status: TaskStatus
    run_count: int
    last_status: int | None = None
    last_run: datetime | None = None
    failure: TaskFailure | None = None

    @property
    def failed(self) -> bool:
        return self.failure is not None
