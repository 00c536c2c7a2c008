"""JobTask entity module.

A job task is the unit of periodic work. Structured tasks subclass
``JobTask``; plain functions are wrapped in ``FunctionTask`` at registration.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from dbjob.domain.entities.execution_context import ExecutionContext

JobFunction = Callable[[ExecutionContext], int]


class JobTask(ABC):
    """Capability interface for periodic work.

    ``execute`` is called synchronously by the owning task loop. The returned
    integer is recorded and reported but never changes scheduling: a task is
    only stopped by a stop signal or by raising.
    """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> int:
        """Run one invocation.

        Args:
            context: Fresh execution context for this invocation

        Returns:
            Status code, 0 meaning success
        """
        pass


class FunctionTask(JobTask):
    """Adapter exposing a bare callable as a JobTask."""

    def __init__(self, func: JobFunction):
        if not callable(func):
            raise TypeError(f"job function must be callable, got: {type(func).__name__}")
        self._func = func

    @property
    def func(self) -> JobFunction:
        return self._func

    def execute(self, context: ExecutionContext) -> int:
        return self._func(context)

    def __repr__(self) -> str:
        name = getattr(self._func, "__qualname__", repr(self._func))
        return f"FunctionTask({name})"


def as_job_task(task: "JobTask | JobFunction") -> JobTask:
    """Coerce a JobTask or a plain callable into a JobTask.

    Raises:
        TypeError: If ``task`` is neither a JobTask nor callable
    """
    if isinstance(task, JobTask):
        return task
    return FunctionTask(task)
