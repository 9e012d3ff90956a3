"""Core exception classes for the application."""


class NotFoundError(Exception):
    """Raised when a resource is not found."""


class ValidationError(Exception):
    """Raised when validation fails."""


class TaskBusyError(Exception):
    """Raised when another execution already holds the task."""
