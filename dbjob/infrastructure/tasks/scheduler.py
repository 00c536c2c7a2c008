"""Periodic task scheduler bound to a shared database engine.

This module provides the registry of task instances and the blocking run
loop:

- ``register`` appends tasks before the scheduler runs
- ``run`` starts one thread per task, waits for SIGINT/SIGTERM (or
  ``request_shutdown``), stops every task, and disposes the engine
- ``create_scheduler`` loads the database configuration, opens and pings
  the database, and returns None when any of that fails

Example:
    ```python
    scheduler = create_scheduler("billing")
    if scheduler is None:
        sys.exit(1)

    def refresh(ctx):
        with ctx.db.begin() as conn:
            conn.execute(text("CALL refresh_invoices()"))
        ctx.log("refreshed invoices (run %d)", ctx.run_number)
        return 0

    scheduler.register("refresh-invoices", 60, refresh)
    scheduler.run()
    ```
"""

import signal
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.engine import Engine

from dbjob.domain.entities import JobFunction, JobTask, TaskReport
from dbjob.domain.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    SchedulerStateError,
)
from dbjob.infrastructure.config import Settings, get_settings, load_database_config
from dbjob.infrastructure.database import create_db_engine, dispose_engine, ping_database
from dbjob.infrastructure.observability.logging import configure_logging, get_logger
from dbjob.infrastructure.tasks.task_instance import TaskInstance

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Upper bound on how long the main thread sleeps between shutdown checks
_INTERRUPT_POLL_SECONDS = 0.5


class Scheduler:
    """Registry of periodic tasks sharing one database engine.

    The scheduler owns the engine: tasks borrow it for each invocation and
    the scheduler disposes it exactly once, when ``run`` returns (or on
    ``close``). A scheduler runs at most once.
    """

    def __init__(self, name: str, engine: Engine, settings: Settings | None = None):
        """Initialize the scheduler.

        Args:
            name: Scheduler name, used in logs
            engine: Shared database engine, owned from now on
            settings: Runtime settings (defaults to global settings)
        """
        self._name = name
        self._engine = engine
        self._settings = settings or get_settings()
        self._tasks: list[TaskInstance] = []
        self._shutdown = threading.Event()
        self._shutdown_reason: str | None = None
        self._running = False
        self._closed = False
        self._logger = get_logger(__name__, scheduler=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def tasks(self) -> tuple[TaskInstance, ...]:
        return tuple(self._tasks)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    def register(
        self,
        name: str,
        interval_seconds: float,
        task: JobTask | JobFunction,
    ) -> TaskInstance:
        """Register a task that runs now and then every ``interval_seconds``.

        Names need not be unique; each registration is scheduled on its own.

        Args:
            name: Task name
            interval_seconds: Period between invocations, must be positive
            task: JobTask or callable taking an ExecutionContext and
                returning an int status

        Returns:
            The registered TaskInstance

        Raises:
            SchedulerStateError: If the scheduler is running or closed
            ValueError: If interval_seconds is not positive
        """
        if self._running or self._closed:
            raise SchedulerStateError(
                f"cannot register task {name!r}: scheduler {self._name!r} "
                f"is {'running' if self._running else 'closed'}"
            )

        instance = TaskInstance(
            name=name,
            interval_seconds=interval_seconds,
            task=task,
            db=self._engine,
        )
        self._tasks.append(instance)
        self._logger.debug("Registered task", task=name, interval_seconds=interval_seconds)
        return instance

    def request_shutdown(self, reason: str | None = None) -> None:
        """Ask a running (or about to run) ``run`` call to shut down.

        Safe to call from any thread and from signal handlers.
        """
        if reason and not self._shutdown_reason:
            self._shutdown_reason = reason
        self._shutdown.set()

    def stop_all(self) -> int:
        """Signal every task to stop, in registration order.

        Never blocks and may be called any number of times.

        Returns:
            Number of tasks that received a stop signal from this call
        """
        delivered = 0
        for index, task in enumerate(self._tasks):
            if task.stop():
                delivered += 1
                self._logger.info("Stop signal sent", index=index, task=task.name)
        return delivered

    def reports(self) -> list[TaskReport]:
        """Snapshot every task, in registration order."""
        return [task.report() for task in self._tasks]

    def run(self) -> list[TaskReport]:
        """Run all tasks until interrupted.

        Returns immediately when no task is registered. Otherwise blocks
        until SIGINT/SIGTERM or ``request_shutdown``, then stops all tasks,
        waits up to ``shutdown_timeout_seconds`` for their loops to exit,
        and disposes the engine.

        Returns:
            One TaskReport per registered task, in registration order

        Raises:
            SchedulerStateError: If the scheduler is already running or closed
        """
        if self._running or self._closed:
            raise SchedulerStateError(
                f"scheduler {self._name!r} is {'running' if self._running else 'closed'}"
            )
        self._running = True

        try:
            self._logger.info("Scheduler started", tasks=len(self._tasks))

            if not self._tasks:
                self._logger.info("No tasks registered, stopping")
                return []

            with self._interrupt_handlers():
                for task in self._tasks:
                    task.start()
                while not self._shutdown.wait(_INTERRUPT_POLL_SECONDS):
                    pass

            self._logger.info("Shutdown requested", reason=self._shutdown_reason or "requested")
            self.stop_all()
            self._wait_for_tasks()
            self._logger.info("All tasks stopped")
            return self.reports()
        finally:
            self._running = False
            # Started tasks must see the stop before the engine goes away
            self.stop_all()
            self.close()

    def close(self) -> None:
        """Dispose the database engine. Idempotent."""
        if self._closed:
            return
        self._closed = True
        dispose_engine(self._engine)
        self._logger.debug("Database engine disposed")

    def _wait_for_tasks(self) -> None:
        deadline = time.monotonic() + self._settings.shutdown_timeout_seconds
        for task in self._tasks:
            remaining = max(0.0, deadline - time.monotonic())
            if not task.join(remaining):
                self._logger.warning(
                    "Task did not stop within shutdown timeout",
                    task=task.name,
                    timeout_seconds=self._settings.shutdown_timeout_seconds,
                )

    @contextmanager
    def _interrupt_handlers(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to request_shutdown while running.

        Signal handlers can only be installed from the main thread; elsewhere
        only ``request_shutdown`` ends the run.
        """
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def _handler(signum: int, _frame) -> None:
            self.request_shutdown(f"signal:{signal.Signals(signum).name}")

        previous = {}
        for sig in SHUTDOWN_SIGNALS:
            previous[sig] = signal.signal(sig, _handler)
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def __repr__(self) -> str:
        return f"Scheduler(name={self._name!r}, tasks={len(self._tasks)})"


def create_scheduler(
    name: str,
    config_path: str | Path | None = None,
    settings: Settings | None = None,
    setup_logging: bool = True,
) -> Scheduler | None:
    """Build a scheduler connected to the configured database.

    Loads the JSON database configuration, creates the engine, and pings the
    database. Failures are logged and reported by returning None; no
    connection is attempted when the configuration cannot be loaded.

    Args:
        name: Scheduler name; logs are appended to ``<log_dir>/<name>.log``
        config_path: Database configuration file (defaults to
            ``settings.config_path``)
        settings: Runtime settings (defaults to global settings)
        setup_logging: Configure stdout + file logging before connecting

    Returns:
        Ready Scheduler, or None on configuration or connectivity errors
    """
    settings = settings or get_settings()
    path = Path(config_path or settings.config_path)

    if setup_logging:
        configure_logging(settings, log_file=Path(settings.log_dir) / f"{name}.log")

    log = get_logger(__name__, scheduler=name)

    try:
        db_config = load_database_config(path)
    except ConfigurationError as e:
        log.error("Failed to read or parse database configuration", path=str(path), error=str(e))
        return None

    engine = None
    try:
        engine = create_db_engine(db_config)
        ping_database(engine)
    except DatabaseConnectionError as e:
        log.error(
            "Failed to connect to database",
            host=db_config.host,
            port=db_config.port,
            database=db_config.database,
            error=str(e),
        )
        dispose_engine(engine)
        return None

    log.info(
        "Database connection verified",
        host=db_config.host,
        port=db_config.port,
        database=db_config.database,
    )
    return Scheduler(name, engine, settings=settings)
