"""Celery tasks."""

from .scheduler import run_tick

__all__ = ["run_tick"]
