"""Business logic services."""

from .executor import ExecutionResult, HttpExecutorService
from .scheduler import SchedulerService, TickSummary
from .stats import StatsService
from .task import TaskService

__all__ = [
    "ExecutionResult",
    "HttpExecutorService",
    "SchedulerService",
    "StatsService",
    "TaskService",
    "TickSummary",
]
