"""Cron trigger endpoint."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from pingcron.core.auth import verify_cron_secret
from pingcron.services import SchedulerService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/cron")
def trigger_tick(wait: bool = False, secret: str = Depends(verify_cron_secret)):
    """Run a tick.

    By default the tick is queued and the call returns immediately so the
    external scheduler's own timeout is respected. With ``wait=true`` the
    tick runs inline and its summary is returned.
    """
    timestamp = datetime.now(UTC)

    if wait:
        summary = SchedulerService.run_tick(timestamp)
        return {
            "success": True,
            "message": "Cron job completed",
            "timestamp": timestamp.isoformat(),
            "summary": summary.to_dict(),
        }

    from pingcron.tasks import run_tick

    run_tick.delay()
    logger.info("Cron job queued")

    return {
        "success": True,
        "message": "Cron job started",
        "timestamp": timestamp.isoformat(),
    }
