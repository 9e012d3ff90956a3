"""Statistics service."""

from sqlalchemy import func
from sqlmodel import select

from pingcron.core.database import get_session
from pingcron.models import ExecutionStatus, Task, TaskLog


class StatsService:
    """Service for aggregate task statistics."""

    @staticmethod
    def get_stats() -> dict[str, float | int]:
        """Aggregate counts across all tasks and logs."""
        with get_session() as session:
            total_tasks = session.execute(
                select(func.count()).select_from(Task)
            ).scalar()
            active_tasks = session.execute(
                select(func.count()).select_from(Task).where(Task.is_enabled.is_(True))
            ).scalar()
            total_executions = session.execute(
                select(func.count()).select_from(TaskLog)
            ).scalar()
            successful_executions = session.execute(
                select(func.count())
                .select_from(TaskLog)
                .where(TaskLog.status == ExecutionStatus.SUCCESS.value)
            ).scalar()
            avg_response_time = session.execute(
                select(func.avg(TaskLog.response_time_ms)).where(
                    TaskLog.response_time_ms.is_not(None)
                )
            ).scalar()

        success_rate = (
            successful_executions / total_executions * 100 if total_executions else 0.0
        )

        return {
            "total_tasks": total_tasks,
            "active_tasks": active_tasks,
            "total_executions": total_executions,
            "success_rate": success_rate,
            "avg_response_time": float(avg_response_time or 0),
        }
