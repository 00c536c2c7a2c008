"""Unit tests for the TaskInstance execution loop.

Intervals are kept in the tens of milliseconds; every wait is bounded so a
regression fails instead of hanging the suite.
"""

import sys
import threading
import time
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from prometheus_client import REGISTRY

from dbjob.domain.entities import ExecutionContext, JobTask, TaskStatus
from dbjob.domain.exceptions import SchedulerStateError
from dbjob.infrastructure.tasks import TaskInstance

WAIT_TIMEOUT = 5.0


def wait_until(predicate, timeout: float = WAIT_TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def instances():
    """Track created instances and stop them after the test."""
    created: list[TaskInstance] = []
    yield created
    for instance in created:
        instance.stop()
        instance.join(WAIT_TIMEOUT)


@pytest.fixture
def make_instance(instances, mock_engine):
    def _make(task, interval_seconds: float = 60, name: str = "test-task", **kwargs):
        instance = TaskInstance(
            name=name,
            interval_seconds=interval_seconds,
            task=task,
            db=mock_engine,
            **kwargs,
        )
        instances.append(instance)
        return instance

    return _make


class TestTaskInstanceConstruction:
    """Test cases for TaskInstance construction."""

    @pytest.mark.parametrize("interval", [0, -1, -0.5])
    def test_rejects_non_positive_interval(self, interval, mock_engine):
        """Test that zero or negative intervals are rejected."""
        with pytest.raises(ValueError, match="interval_seconds must be positive"):
            TaskInstance(name="t", interval_seconds=interval, task=lambda ctx: 0, db=mock_engine)

    def test_new_instance_is_idle(self, make_instance):
        """Test the initial state of an instance."""
        instance = make_instance(lambda ctx: 0)

        assert instance.status is TaskStatus.IDLE
        assert instance.run_count == 0
        assert instance.last_run is None
        assert instance.failure is None
        assert instance.is_alive is False

    def test_callable_is_wrapped_as_job_task(self, make_instance):
        """Test that plain functions are exposed as JobTask."""
        instance = make_instance(lambda ctx: 0)

        assert isinstance(instance.task, JobTask)


class TestTaskInstanceLoop:
    """Test cases for the execution loop."""

    def test_cold_start_runs_immediately(self, make_instance):
        """Test that the callback runs once right after start, before any tick."""
        called = threading.Event()
        contexts: list[ExecutionContext] = []

        def job(ctx):
            contexts.append(ctx)
            called.set()
            return 0

        instance = make_instance(job, interval_seconds=60)
        instance.start()

        assert called.wait(WAIT_TIMEOUT)
        assert instance.status is TaskStatus.RUNNING
        assert wait_until(lambda: instance.run_count == 1)
        assert contexts[0].is_cold_start
        assert contexts[0].run_number == 1

    def test_repeats_every_interval(self, make_instance):
        """Test that the callback repeats on the timer after the cold start."""
        calls: list[float] = []

        def job(ctx):
            calls.append(time.monotonic())
            return 0

        instance = make_instance(job, interval_seconds=0.05)
        instance.start()

        assert wait_until(lambda: len(calls) >= 4)
        instance.stop()
        assert instance.join(WAIT_TIMEOUT)

        gaps = [later - earlier for earlier, later in zip(calls, calls[1:])]
        assert all(gap >= 0.03 for gap in gaps)

    def test_no_invocation_after_stop(self, make_instance):
        """Test that nothing runs once the stop has been observed."""
        calls = []
        instance = make_instance(lambda ctx: calls.append(ctx) or 0, interval_seconds=0.02)
        instance.start()
        assert wait_until(lambda: len(calls) >= 2)

        instance.stop()
        assert instance.join(WAIT_TIMEOUT)
        count = len(calls)
        time.sleep(0.1)

        assert len(calls) == count
        assert instance.run_count == count
        assert instance.status is TaskStatus.STOPPED

    def test_invocations_never_overlap(self, make_instance):
        """Test that a slow callback is never re-entered by the timer."""
        active = 0
        max_active = 0
        calls = 0
        lock = threading.Lock()

        def job(ctx):
            nonlocal active, max_active, calls
            with lock:
                active += 1
                calls += 1
                max_active = max(max_active, active)
            time.sleep(0.03)
            with lock:
                active -= 1
            return 0

        instance = make_instance(job, interval_seconds=0.005)
        instance.start()
        assert wait_until(lambda: calls >= 5)
        instance.stop()
        assert instance.join(WAIT_TIMEOUT)

        assert max_active == 1

    def test_each_invocation_gets_fresh_context(self, make_instance, mock_engine):
        """Test that contexts are never reused and carry the shared engine."""
        contexts: list[ExecutionContext] = []
        instance = make_instance(
            lambda ctx: contexts.append(ctx) or 0, interval_seconds=0.02
        )
        instance.start()
        assert wait_until(lambda: len(contexts) >= 3)
        instance.stop()
        instance.join(WAIT_TIMEOUT)

        assert len({id(ctx) for ctx in contexts}) == len(contexts)
        assert [ctx.run_number for ctx in contexts[:3]] == [1, 2, 3]
        assert all(ctx.db is mock_engine for ctx in contexts)
        assert all(ctx.task_name == "test-task" for ctx in contexts)
        assert all(ctx.log is instance.log for ctx in contexts)
        assert contexts[0].last_run is None
        assert isinstance(contexts[1].last_run, datetime)
        assert contexts[2].last_run >= contexts[1].last_run

    def test_stop_before_start_skips_cold_start(self, make_instance):
        """Test that a task stopped before starting never invokes its callback."""
        job = MagicMock(return_value=0)
        instance = make_instance(job)

        instance.stop()
        instance.start()

        assert instance.join(WAIT_TIMEOUT)
        job.assert_not_called()
        assert instance.status is TaskStatus.STOPPED

    def test_start_twice_raises(self, make_instance):
        """Test that an instance cannot be restarted."""
        instance = make_instance(lambda ctx: 0)
        instance.start()

        with pytest.raises(SchedulerStateError):
            instance.start()

        instance.stop()
        instance.join(WAIT_TIMEOUT)
        with pytest.raises(SchedulerStateError):
            instance.start()


class TestTaskInstanceStop:
    """Test cases for stop signalling."""

    def test_stop_is_idempotent(self, make_instance):
        """Test that only the first stop delivers a signal and none block."""
        instance = make_instance(lambda ctx: 0)
        instance.start()

        assert instance.stop() is True
        assert instance.stop() is False
        assert instance.join(WAIT_TIMEOUT)
        assert instance.stop() is False

    def test_stop_does_not_wait_for_running_invocation(self, make_instance):
        """Test that stopping a busy task returns at once and takes effect later."""
        entered = threading.Event()
        release = threading.Event()

        def job(ctx):
            entered.set()
            release.wait(WAIT_TIMEOUT)
            return 0

        instance = make_instance(job, interval_seconds=0.01)
        instance.start()
        assert entered.wait(WAIT_TIMEOUT)

        start = time.monotonic()
        assert instance.stop() is True
        assert time.monotonic() - start < 1.0
        assert instance.is_alive

        release.set()
        assert instance.join(WAIT_TIMEOUT)
        assert instance.run_count == 1
        assert instance.status is TaskStatus.STOPPED


class TestTaskInstanceResults:
    """Test cases for status codes and failure isolation."""

    def test_exception_stops_task_with_failure(self, make_instance):
        """Test that a raising callback stops the task and records why."""

        def job(ctx):
            raise RuntimeError("lost connection")

        before = REGISTRY.get_sample_value(
            "dbjob_task_invocations_total", {"task": "failing-task", "outcome": "failure"}
        ) or 0.0
        instance = make_instance(job, interval_seconds=0.01, name="failing-task")
        instance.start()

        assert instance.join(WAIT_TIMEOUT)
        assert instance.status is TaskStatus.STOPPED
        assert instance.run_count == 1
        assert instance.failure is not None
        assert instance.failure.error_type == "builtins.RuntimeError"
        assert instance.failure.message == "lost connection"
        assert instance.failure.run_number == 1
        assert REGISTRY.get_sample_value(
            "dbjob_task_invocations_total", {"task": "failing-task", "outcome": "failure"}
        ) == before + 1

    def test_failure_after_successful_runs(self, make_instance):
        """Test that the failing run number is recorded."""
        calls = 0

        def job(ctx):
            nonlocal calls
            calls += 1
            if calls == 3:
                raise ValueError("bad row")
            return 0

        instance = make_instance(job, interval_seconds=0.01)
        instance.start()

        assert instance.join(WAIT_TIMEOUT)
        assert instance.run_count == 3
        assert instance.last_status == 0
        assert instance.failure.run_number == 3

    def test_system_exit_is_recorded_as_failure(self, make_instance):
        """Test that a callback calling sys.exit stops the task with a failure."""

        def job(ctx):
            sys.exit(3)

        instance = make_instance(job, interval_seconds=0.01)
        instance.start()

        assert instance.join(WAIT_TIMEOUT)
        assert instance.status is TaskStatus.STOPPED
        assert instance.report().failed is True
        assert instance.failure.error_type == "builtins.SystemExit"
        assert instance.failure.message == "3"

    def test_nonzero_status_keeps_task_running(self, make_instance):
        """Test that a non-zero status is recorded but does not stop the task."""
        instance = make_instance(lambda ctx: 3, interval_seconds=0.01)
        instance.start()

        assert wait_until(lambda: instance.run_count >= 3)
        assert instance.status is TaskStatus.RUNNING
        assert instance.last_status == 3
        assert instance.failure is None

    def test_none_status_counts_as_success(self, make_instance):
        """Test that a callback returning None records status 0."""
        instance = make_instance(lambda ctx: None)
        instance.start()

        assert wait_until(lambda: instance.run_count == 1)
        assert instance.last_status == 0

    def test_report_snapshot(self, make_instance):
        """Test that report() mirrors the instance state."""
        instance = make_instance(lambda ctx: 0, name="snap")
        instance.start()
        assert wait_until(lambda: instance.run_count == 1)
        instance.stop()
        instance.join(WAIT_TIMEOUT)

        report = instance.report()

        assert report.name == "snap"
        assert report.status is TaskStatus.STOPPED
        assert report.run_count == 1
        assert report.last_status == 0
        assert report.failed is False


class TestTaskInstanceSchedule:
    """Test cases for the fixed-rate timer arithmetic."""

    def _instance(self, now: list[float], mock_engine) -> TaskInstance:
        return TaskInstance(
            name="clock",
            interval_seconds=1.0,
            task=lambda ctx: 0,
            db=mock_engine,
            clock=lambda: now[0],
        )

    def test_next_deadline_on_grid(self, mock_engine):
        """Test that a quick invocation waits for the next grid point."""
        now = [0.2]
        instance = self._instance(now, mock_engine)

        assert instance._next_deadline(0.0) == 1.0

    def test_missed_ticks_coalesce_into_one_run(self, mock_engine):
        """Test that an overrun yields one immediate run, then the grid resumes."""
        now = [3.5]
        instance = self._instance(now, mock_engine)

        deadline = instance._next_deadline(0.0)

        assert deadline == 3.0  # already due: run once immediately
        assert instance._next_deadline(deadline) == 4.0
