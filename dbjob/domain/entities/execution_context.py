"""ExecutionContext entity module.

This module defines the value handed to a job task on every invocation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


class TaskLogFunction(Protocol):
    """Logging function pre-bound to a task name.

    Called printf-style: ``log("processed %d rows", count)``.
    """

    def __call__(self, message: str, *args: Any) -> None: ...


@dataclass(frozen=True)
class ExecutionContext:
    """Per-invocation bundle of shared resources.

    A fresh context is built for the cold-start run and for every tick; it is
    never reused across invocations. The database handle is borrowed from the
    scheduler and must not be disposed by the task.

    Attributes:
        db: Shared database handle (SQLAlchemy Engine) owned by the scheduler
        log: Logging function scoped to the owning task
        task_name: Name of the owning task
        run_number: 1-based index of this invocation (1 is the cold start)
        last_run: Start time of the previous invocation, None on cold start
    """

    db: Any
    log: TaskLogFunction
    task_name: str
    run_number: int = 1
    last_run: datetime | None = None

    def __post_init__(self):
        """Validate invariants after initialization."""
        if self.run_number < 1:
            raise ValueError(f"run_number must be >= 1, got: {self.run_number}")

    @property
    def is_cold_start(self) -> bool:
        """True for the immediate invocation performed when the loop starts."""
        return self.last_run is None
