"""Statistics API endpoint."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pingcron.core.auth import verify_api_key
from pingcron.services import StatsService

router = APIRouter()


class StatsResponse(BaseModel):
    """Response model for aggregate statistics."""

    total_tasks: int
    active_tasks: int
    total_executions: int
    success_rate: float
    avg_response_time: float


@router.get("/stats", response_model=StatsResponse)
def get_stats(api_key: str = Depends(verify_api_key)):
    """Get aggregate task statistics."""
    return StatsResponse(**StatsService.get_stats())
