"""Prometheus metrics instrumentation.

Defines and exports Prometheus metrics for the task runtime. Task names are
used as labels; they are chosen by the host program, so cardinality stays
bounded by the number of registered tasks.
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

OUTCOME_SUCCESS = "success"
OUTCOME_NONZERO_STATUS = "nonzero_status"
OUTCOME_FAILURE = "failure"

task_invocations_total = Counter(
    name="dbjob_task_invocations_total",
    documentation="Total number of task invocations",
    labelnames=["task", "outcome"],  # success, nonzero_status, failure
)

task_invocation_duration_seconds = Histogram(
    name="dbjob_task_invocation_duration_seconds",
    documentation="Task invocation duration in seconds",
    labelnames=["task"],
    buckets=(
        0.01,  # 10ms
        0.05,  # 50ms
        0.1,  # 100ms
        0.5,  # 500ms
        1.0,  # 1s
        5.0,  # 5s
        10.0,  # 10s
        30.0,  # 30s
        60.0,  # 1m
        300.0,  # 5m
    ),
)

tasks_running = Gauge(
    name="dbjob_tasks_running",
    documentation="Current number of task loops in the running state",
)


def get_metrics_content() -> tuple[bytes, str]:
    """Generate Prometheus metrics in exposition format.

    Returns:
        Tuple of (metrics_bytes, content_type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST


def record_task_invocation(task: str, outcome: str, duration: float) -> None:
    """Record one task invocation.

    Args:
        task: Task name
        outcome: success, nonzero_status, or failure
        duration: Invocation duration in seconds
    """
    task_invocations_total.labels(task=task, outcome=outcome).inc()
    task_invocation_duration_seconds.labels(task=task).observe(duration)


def record_task_started() -> None:
    """Record a task loop entering the running state."""
    tasks_running.inc()


def record_task_stopped() -> None:
    """Record a task loop leaving the running state."""
    tasks_running.dec()
