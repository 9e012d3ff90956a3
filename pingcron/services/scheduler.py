"""Scheduler service: selects due tasks, runs them and records outcomes."""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from pingcron.core.config import settings
from pingcron.core.database import get_session
from pingcron.core.errors import TaskBusyError, ValidationError
from pingcron.models import ExecutionStatus, Task, TaskLog
from pingcron.services.executor import ExecutionResult, HttpExecutorService
from pingcron.services.task import TaskService

logger = logging.getLogger(__name__)

# Outcomes of processing a single due task within a tick
OUTCOME_SKIPPED = "skipped"
OUTCOME_ERROR = "error"


@dataclass
class TickSummary:
    """Advisory summary of one tick."""

    due: int = 0
    executed: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def utcnow() -> datetime:
    return datetime.now(UTC)


def round_half_up(value: float) -> int:
    # Halves round up, unlike round()
    return math.floor(value + 0.5)


class SchedulerService:
    """Service for the task execution engine."""

    @staticmethod
    def record(task: Task, result: ExecutionResult, now: datetime) -> TaskLog:
        """Persist an attempt and reschedule the task.

        The log row and the scheduling update share one transaction, so the
        task is never advanced without the log entry explaining it. On
        failure everything rolls back and the exception propagates.

        Args:
            task: Task that was executed
            result: Outcome returned by the executor
            now: Persistence-time wall clock

        Returns:
            The TaskLog row that was written
        """
        next_execution_at = now + timedelta(minutes=task.frequency_minutes)

        with get_session() as session:
            log = TaskService.create_log(
                session,
                TaskLog(
                    task_id=task.id,
                    executed_at=now,
                    status=result.status,
                    http_status_code=result.http_status_code,
                    response_time_ms=result.response_time_ms,
                    response_size=result.response_size,
                    error_message=result.error_message,
                    request_headers=result.request_headers,
                    response_headers=result.response_headers,
                    response_body=result.response_body,
                ),
            )

            times = TaskService.recent_response_times(
                session, task.id, settings.avg_window
            )
            avg_response_time = (
                round_half_up(sum(times) / len(times)) if times else None
            )

            TaskService.update_task_scheduling(
                session,
                task.id,
                last_executed_at=now,
                next_execution_at=next_execution_at,
                succeeded=result.succeeded,
                avg_response_time=avg_response_time,
            )

        logger.info(
            f"Task {task.id} recorded with status {result.status}. "
            f"Next run: {next_execution_at.isoformat()}"
        )
        return log

    @staticmethod
    def claim(task: Task) -> datetime | None:
        """Claim a task for execution.

        The lease is measured from the moment of the claim, not from the
        tick that selected the task.
        Returns the lease expiry on success, or None when another execution
        already owns the task. Without claiming enabled the current
        next_execution_at is returned unchanged.
        """
        if not settings.claim_enabled:
            return task.next_execution_at

        lease_until = utcnow() + timedelta(
            seconds=settings.engine_timeout_cap + settings.claim_lease_seconds
        )
        if TaskService.claim_task(task.id, task.next_execution_at, lease_until):
            return lease_until
        return None

    @staticmethod
    def release(task: Task, lease_until: datetime | None) -> None:
        """Undo a claim after a failed attempt, leaving the task due again."""
        if not settings.claim_enabled or lease_until is None:
            return
        try:
            TaskService.release_claim(task.id, lease_until, task.next_execution_at)
        except Exception as e:
            logger.error(f"Failed to release claim on task {task.id}: {e}")

    @staticmethod
    def process_task(task: Task) -> str:
        """Claim, execute and record one due task.

        Returns the attempt status, or OUTCOME_SKIPPED if the claim was lost.
        """
        lease_until = SchedulerService.claim(task)
        if settings.claim_enabled and lease_until is None:
            logger.warning(f"Task {task.id} is already being executed, skipping")
            return OUTCOME_SKIPPED

        try:
            result = HttpExecutorService.execute(task)
            SchedulerService.record(task, result, utcnow())
        except Exception:
            SchedulerService.release(task, lease_until)
            raise

        return result.status

    @staticmethod
    def run_tick(
        now: datetime | None = None, max_workers: int | None = None
    ) -> TickSummary:
        """Run every due task once.

        A failure in one task is logged and counted, never aborting the
        others.

        Args:
            now: Time used to select due tasks (defaults to the wall clock)
            max_workers: Size of the worker pool (defaults to settings)

        Returns:
            TickSummary with per-outcome counts
        """
        now = now or utcnow()
        logger.info(f"Tick started at {now.isoformat()}")

        tasks = TaskService.find_due_tasks(now)
        summary = TickSummary(due=len(tasks))
        logger.info(f"Found {len(tasks)} tasks ready for execution")

        if not tasks:
            return summary

        workers = max(1, min(max_workers or settings.tick_max_workers, len(tasks)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="pingcron-tick"
        ) as pool:
            futures = {
                pool.submit(SchedulerService.process_task, task): task
                for task in tasks
            }
            for future in as_completed(futures):
                task = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.exception(f"Error executing task {task.id}: {e}")
                    outcome = OUTCOME_ERROR

                SchedulerService._count(summary, outcome)

        logger.info(
            f"Tick completed. Executed {summary.executed}/{summary.due} tasks "
            f"({summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.timed_out} timed out, {summary.skipped} skipped, "
            f"{summary.errors} errors)"
        )
        return summary

    @staticmethod
    def execute_task_now(task_id: UUID) -> TaskLog:
        """Execute a single task immediately, outside the schedule.

        Raises:
            NotFoundError: If task not found
            ValidationError: If the task is disabled
            TaskBusyError: If another execution holds the task
        """
        task = TaskService.get_task_by_id(task_id)
        if not task.is_enabled:
            raise ValidationError(f"Task {task_id} is not enabled")

        lease_until = SchedulerService.claim(task)
        if settings.claim_enabled and lease_until is None:
            raise TaskBusyError(f"Task {task_id} is already being executed")

        try:
            result = HttpExecutorService.execute(task)
            return SchedulerService.record(task, result, utcnow())
        except Exception:
            SchedulerService.release(task, lease_until)
            raise

    @staticmethod
    def _count(summary: TickSummary, outcome: str) -> None:
        if outcome == OUTCOME_SKIPPED:
            summary.skipped += 1
            return
        if outcome == OUTCOME_ERROR:
            summary.errors += 1
            return

        summary.executed += 1
        if outcome == ExecutionStatus.SUCCESS:
            summary.succeeded += 1
        elif outcome == ExecutionStatus.TIMEOUT:
            summary.timed_out += 1
        else:
            summary.failed += 1
