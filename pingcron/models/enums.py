"""Enumerations shared by models and services."""

from enum import Enum


class HttpMethod(str, Enum):
    """HTTP methods a task may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ExecutionStatus(str, Enum):
    """Outcome of a single execution attempt."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


# Methods that carry a request body
BODY_METHODS = frozenset({HttpMethod.POST.value, HttpMethod.PUT.value})
