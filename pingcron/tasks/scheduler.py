"""Scheduler Celery tasks."""

import logging

from pingcron.celery_app import app
from pingcron.services import SchedulerService

logger = logging.getLogger(__name__)


@app.task(name="pingcron.tasks.scheduler.run_tick", ignore_result=True)
def run_tick() -> dict[str, int]:
    """Run one engine tick.

    This is a thin Celery wrapper around SchedulerService.run_tick. It is
    not retried: due tasks that were not recorded stay due for the next tick.
    """
    summary = SchedulerService.run_tick()
    return summary.to_dict()
