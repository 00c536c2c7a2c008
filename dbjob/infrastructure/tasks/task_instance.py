"""Task Instance runtime.

A TaskInstance owns one registered task: its schedule, its stop token, and
the thread running its execution loop. The loop invokes the task once
immediately (cold start), then on every tick of a fixed-rate timer until
the stop token is cancelled or an invocation raises.
"""

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from dbjob.domain.entities import (
    ExecutionContext,
    JobFunction,
    JobTask,
    TaskFailure,
    TaskReport,
    TaskStatus,
    as_job_task,
)
from dbjob.domain.exceptions import SchedulerStateError
from dbjob.infrastructure.observability.logging import TaskLog, get_logger
from dbjob.infrastructure.observability.metrics import (
    OUTCOME_FAILURE,
    OUTCOME_NONZERO_STATUS,
    OUTCOME_SUCCESS,
    record_task_invocation,
    record_task_started,
    record_task_stopped,
)
from dbjob.infrastructure.observability.tracing import get_tracer
from dbjob.infrastructure.tasks.stop_token import StopToken

tracer = get_tracer(__name__)


class TaskInstance:
    """One periodic task and its execution loop.

    Invocations of one instance are strictly sequential: the next tick is
    only considered after the current invocation returns. Ticks missed while
    an invocation overruns its interval are coalesced into a single
    immediate run, after which the schedule stays on its original grid.

    An exception raised by the task stops this instance only. The failure is
    kept in ``failure`` and reported through ``report()``.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        task: JobTask | JobFunction,
        db: Any,
        log: Callable[..., None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the instance in the idle state.

        Args:
            name: Task name, used in logs; need not be unique
            interval_seconds: Period between invocations, must be positive
            task: JobTask or plain callable taking an ExecutionContext
            db: Shared database handle lent to every invocation
            log: Task-scoped logging function (defaults to a TaskLog)
            clock: Monotonic clock driving the timer

        Raises:
            ValueError: If interval_seconds is not positive
            TypeError: If task is neither a JobTask nor callable
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got: {interval_seconds}")

        self._name = name
        self._interval = interval_seconds
        self._task = as_job_task(task)
        self._db = db
        self._log = log or TaskLog(name)
        self._clock = clock
        self._stop = StopToken()
        self._thread: threading.Thread | None = None
        self._logger = get_logger(__name__, task=name)

        self._lock = threading.Lock()
        self._status = TaskStatus.IDLE
        self._run_count = 0
        self._last_run: datetime | None = None
        self._last_status: int | None = None
        self._failure: TaskFailure | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def task(self) -> JobTask:
        return self._task

    @property
    def log(self) -> Callable[..., None]:
        return self._log

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self._status

    @property
    def run_count(self) -> int:
        with self._lock:
            return self._run_count

    @property
    def last_run(self) -> datetime | None:
        with self._lock:
            return self._last_run

    @property
    def last_status(self) -> int | None:
        with self._lock:
            return self._last_status

    @property
    def failure(self) -> TaskFailure | None:
        with self._lock:
            return self._failure

    @property
    def stop_requested(self) -> bool:
        return self._stop.cancelled

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> threading.Thread:
        """Launch the execution loop on a dedicated daemon thread.

        Returns:
            The thread running the loop

        Raises:
            SchedulerStateError: If the instance was already started
        """
        with self._lock:
            if self._status is not TaskStatus.IDLE:
                raise SchedulerStateError(
                    f"task {self._name!r} cannot be started from state {self._status.value}"
                )
            self._status = TaskStatus.RUNNING

        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"dbjob-task-{self._name}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self) -> bool:
        """Request the loop to stop.

        Never blocks. A loop busy in an invocation stops once it returns.

        Returns:
            True if this call delivered the stop signal, False if one was
            already delivered
        """
        return self._stop.cancel()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop thread to exit.

        Returns:
            True if the loop is no longer running
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return not self.is_alive

    def report(self) -> TaskReport:
        """Take a consistent snapshot of this instance."""
        with self._lock:
            return TaskReport(
                name=self._name,
                status=self._status,
                run_count=self._run_count,
                last_status=self._last_status,
                last_run=self._last_run,
                failure=self._failure,
            )

    def _run_loop(self) -> None:
        record_task_started()
        self._logger.info("Task loop started", interval_seconds=self._interval)
        try:
            if self._stop.cancelled:
                return

            deadline = self._clock()
            if not self._invoke():
                return

            while True:
                deadline = self._next_deadline(deadline)
                if self._stop.wait(max(0.0, deadline - self._clock())):
                    break
                if not self._invoke():
                    return
        finally:
            with self._lock:
                self._status = TaskStatus.STOPPED
                run_count = self._run_count
                failed = self._failure is not None
            record_task_stopped()
            self._logger.info("Task loop stopped", run_count=run_count, failed=failed)

    def _next_deadline(self, previous: float) -> float:
        deadline = previous + self._interval
        now = self._clock()
        if deadline <= now:
            missed = int((now - deadline) // self._interval)
            deadline += missed * self._interval
        return deadline

    def _invoke(self) -> bool:
        """Run one invocation inside the failure boundary.

        Returns:
            False if the invocation raised and the loop must stop
        """
        with self._lock:
            run_number = self._run_count + 1
            last_run = self._last_run

        context = ExecutionContext(
            db=self._db,
            log=self._log,
            task_name=self._name,
            run_number=run_number,
            last_run=last_run,
        )
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        self._logger.debug("Task invocation starting", run_number=run_number)

        try:
            with tracer.start_as_current_span(
                "dbjob.task.execute",
                attributes={"dbjob.task": self._name, "dbjob.run_number": run_number},
            ):
                status = self._task.execute(context)
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # SystemExit and friends end the task like any other failure
            duration = time.perf_counter() - start
            with self._lock:
                self._run_count = run_number
                self._last_run = started_at
                self._failure = TaskFailure.from_exception(e, run_number)
            record_task_invocation(self._name, OUTCOME_FAILURE, duration)
            self._logger.exception(
                "Task invocation failed, stopping task",
                run_number=run_number,
                error=str(e),
            )
            return False

        duration = time.perf_counter() - start
        if status is None:
            status = 0
        with self._lock:
            self._run_count = run_number
            self._last_run = started_at
            self._last_status = status

        if status != 0:
            record_task_invocation(self._name, OUTCOME_NONZERO_STATUS, duration)
            self._logger.warning(
                "Task invocation returned non-zero status",
                run_number=run_number,
                status=status,
                duration_seconds=round(duration, 3),
            )
        else:
            record_task_invocation(self._name, OUTCOME_SUCCESS, duration)
            self._logger.debug(
                "Task invocation finished",
                run_number=run_number,
                duration_seconds=round(duration, 3),
            )
        return True

    def __repr__(self) -> str:
        return (
            f"TaskInstance(name={self._name!r}, interval_seconds={self._interval}, "
            f"status={self.status.value})"
        )
