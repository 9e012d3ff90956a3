"""Database models."""

from .enums import BODY_METHODS, ExecutionStatus, HttpMethod
from .task import Task
from .task_log import TaskLog

__all__ = ["BODY_METHODS", "ExecutionStatus", "HttpMethod", "Task", "TaskLog"]
