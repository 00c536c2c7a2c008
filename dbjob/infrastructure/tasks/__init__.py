"""Periodic task runtime.

This package contains the scheduler registry, the per-task execution loop,
and the stop token used to end it.
"""

from dbjob.infrastructure.tasks.scheduler import Scheduler, create_scheduler
from dbjob.infrastructure.tasks.stop_token import StopToken
from dbjob.infrastructure.tasks.task_instance import TaskInstance

__all__ = [
    "Scheduler",
    "create_scheduler",
    "TaskInstance",
    "StopToken",
]
