"""Task service: task store operations and task CRUD."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, update
from sqlmodel import select

from pingcron.core.database import get_session
from pingcron.core.errors import NotFoundError, ValidationError
from pingcron.models import HttpMethod, Task, TaskLog

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "target_url",
        "http_method",
        "headers",
        "body",
        "frequency_minutes",
        "timeout_seconds",
        "retry_attempts",
        "retry_delay_seconds",
        "is_enabled",
    }
)
NULLABLE_FIELDS = frozenset({"description", "headers", "body"})


class TaskService:
    """Service for task-related business logic."""

    @staticmethod
    def create_task(
        name: str,
        target_url: str,
        frequency_minutes: int,
        http_method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str | None = None,
        description: str | None = None,
        timeout_seconds: int = 30,
        retry_attempts: int = 3,
        retry_delay_seconds: int = 60,
        is_enabled: bool = True,
    ) -> Task:
        """Create a new task. It is due on the next tick."""
        method = http_method.upper()
        TaskService._validate_definition(
            frequency_minutes=frequency_minutes,
            timeout_seconds=timeout_seconds,
            http_method=method,
        )

        with get_session() as session:
            task = Task(
                name=name,
                description=description,
                target_url=target_url,
                http_method=method,
                headers=headers,
                body=body,
                frequency_minutes=frequency_minutes,
                timeout_seconds=timeout_seconds,
                retry_attempts=retry_attempts,
                retry_delay_seconds=retry_delay_seconds,
                is_enabled=is_enabled,
            )
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    @staticmethod
    def get_task_by_id(task_id: UUID) -> Task:
        """Get task by ID."""
        with get_session() as session:
            statement = select(Task).where(Task.id == task_id)
            result = session.execute(statement)
            task = result.scalar_one_or_none()

            if task is None:
                raise NotFoundError(f"Task with id {task_id} not found")

            return task

    @staticmethod
    def list_tasks(limit: int = 100, offset: int = 0) -> tuple[list[Task], int]:
        """List all tasks with pagination."""
        with get_session() as session:
            count_statement = select(func.count()).select_from(Task)
            total = session.execute(count_statement).scalar()

            statement = (
                select(Task)
                .order_by(Task.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            tasks = session.execute(statement).scalars().all()

            return list(tasks), total

    @staticmethod
    def update_task(task_id: UUID, **changes: Any) -> Task:
        """Update a task's definition.

        Only the given fields change. A new frequency reschedules the next
        run to now plus the new frequency.

        Raises:
            NotFoundError: If task not found
            ValidationError: If a field is unknown or its value is invalid
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        for field, value in changes.items():
            if value is None and field not in NULLABLE_FIELDS:
                raise ValidationError(f"{field} cannot be null")
        if "http_method" in changes:
            changes["http_method"] = changes["http_method"].upper()
        TaskService._validate_definition(
            frequency_minutes=changes.get("frequency_minutes"),
            timeout_seconds=changes.get("timeout_seconds"),
            http_method=changes.get("http_method"),
        )

        with get_session() as session:
            statement = select(Task).where(Task.id == task_id)
            task = session.execute(statement).scalar_one_or_none()

            if task is None:
                raise NotFoundError(f"Task with id {task_id} not found")

            now = datetime.now(UTC)
            frequency = changes.get("frequency_minutes")
            if frequency is not None and frequency != task.frequency_minutes:
                task.next_execution_at = now + timedelta(minutes=frequency)

            for field, value in changes.items():
                setattr(task, field, value)
            task.updated_at = now
            session.add(task)
            session.commit()
            session.refresh(task)

            logger.info(f"Task {task_id} updated: {', '.join(sorted(changes))}")
            return task

    @staticmethod
    def _validate_definition(
        frequency_minutes: int | None = None,
        timeout_seconds: int | None = None,
        http_method: str | None = None,
    ) -> None:
        if frequency_minutes is not None and frequency_minutes < 1:
            raise ValidationError("frequency_minutes must be at least 1")
        if timeout_seconds is not None and timeout_seconds < 1:
            raise ValidationError("timeout_seconds must be at least 1")
        if http_method is not None and http_method not in HttpMethod.__members__:
            raise ValidationError(f"Unsupported HTTP method: {http_method}")

    @staticmethod
    def delete_task(task_id: UUID) -> None:
        """Delete a task together with its logs."""
        with get_session() as session:
            task = session.get(Task, task_id)
            if task is None:
                raise NotFoundError(f"Task with id {task_id} not found")

            session.execute(delete(TaskLog).where(TaskLog.task_id == task_id))
            session.delete(task)

    @staticmethod
    def get_task_logs(
        task_id: UUID, limit: int = 100, offset: int = 0
    ) -> tuple[list[TaskLog], int]:
        """Get execution logs for a task, newest first."""
        # Verify task exists
        TaskService.get_task_by_id(task_id)

        with get_session() as session:
            count_statement = (
                select(func.count())
                .select_from(TaskLog)
                .where(TaskLog.task_id == task_id)
            )
            total = session.execute(count_statement).scalar()

            statement = (
                select(TaskLog)
                .where(TaskLog.task_id == task_id)
                .order_by(TaskLog.executed_at.desc())
                .offset(offset)
                .limit(limit)
            )
            logs = session.execute(statement).scalars().all()

            return list(logs), total

    # Task store operations used by the execution engine

    @staticmethod
    def find_due_tasks(now: datetime) -> list[Task]:
        """Return enabled tasks whose next execution time has arrived or is unset."""
        with get_session() as session:
            statement = select(Task).where(
                Task.is_enabled.is_(True),
                or_(
                    Task.next_execution_at.is_(None),
                    Task.next_execution_at <= now,
                ),
            )
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def claim_task(
        task_id: UUID, observed_next: datetime | None, lease_until: datetime
    ) -> bool:
        """Atomically push next_execution_at to lease_until.

        The update only applies if next_execution_at still holds the value
        the caller observed, so at most one concurrent caller wins.
        """
        if observed_next is None:
            guard = Task.next_execution_at.is_(None)
        else:
            guard = Task.next_execution_at == observed_next

        with get_session() as session:
            result = session.execute(
                update(Task)
                .where(Task.id == task_id, guard)
                .values(next_execution_at=lease_until)
            )
            return result.rowcount == 1

    @staticmethod
    def release_claim(task_id: UUID, lease_until: datetime, restore: datetime | None):
        """Restore next_execution_at if the task still holds our lease."""
        with get_session() as session:
            session.execute(
                update(Task)
                .where(Task.id == task_id, Task.next_execution_at == lease_until)
                .values(next_execution_at=restore)
            )

    @staticmethod
    def create_log(session, log: TaskLog) -> TaskLog:
        """Add a log row to the given session and flush it."""
        session.add(log)
        session.flush()
        return log

    @staticmethod
    def recent_response_times(session, task_id: UUID, window: int) -> list[int]:
        """Most recent non-null response times for a task, newest first."""
        statement = (
            select(TaskLog.response_time_ms)
            .where(
                TaskLog.task_id == task_id,
                TaskLog.response_time_ms.is_not(None),
            )
            .order_by(TaskLog.executed_at.desc())
            .limit(window)
        )
        return list(session.execute(statement).scalars().all())

    @staticmethod
    def update_task_scheduling(
        session,
        task_id: UUID,
        last_executed_at: datetime,
        next_execution_at: datetime,
        succeeded: bool,
        avg_response_time: float | None = None,
    ) -> None:
        """Apply the post-attempt scheduling state and aggregates."""
        values: dict[str, Any] = {
            "last_executed_at": last_executed_at,
            "next_execution_at": next_execution_at,
            "updated_at": datetime.now(UTC),
        }
        if succeeded:
            values["success_count"] = Task.success_count + 1
        else:
            values["failure_count"] = Task.failure_count + 1
        if avg_response_time is not None:
            values["avg_response_time"] = avg_response_time

        result = session.execute(update(Task).where(Task.id == task_id).values(**values))
        if result.rowcount == 0:
            raise NotFoundError(f"Task with id {task_id} not found")
