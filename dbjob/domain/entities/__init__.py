"""Domain entities - job task contract, execution context, task state."""

from dbjob.domain.entities.execution_context import ExecutionContext, TaskLogFunction
from dbjob.domain.entities.job_task import (
    FunctionTask,
    JobFunction,
    JobTask,
    as_job_task,
)
from dbjob.domain.entities.task_report import TaskFailure, TaskReport, TaskStatus

__all__ = [
    # Execution context
    "ExecutionContext",
    "TaskLogFunction",
    # Job task capability
    "JobTask",
    "JobFunction",
    "FunctionTask",
    "as_job_task",
    # Task state
    "TaskStatus",
    "TaskFailure",
    "TaskReport",
]
