"""Task model for periodic HTTP pings."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Column, Integer, String, Text
from sqlmodel import Field, SQLModel

from pingcron.core.database import UTCDateTime


class Task(SQLModel, table=True):
    """Periodic HTTP ping definition with its scheduling state."""

    __tablename__ = "tasks"

    # Primary key and timestamps
    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the task",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(UTCDateTime()),
        description="Timestamp when the task was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(UTCDateTime()),
        description="Timestamp when the task was last updated",
    )

    # Definition
    name: str = Field(description="Human readable task name")
    description: str | None = Field(default=None, description="Optional notes")
    target_url: str = Field(description="URL invoked on every execution")
    http_method: str = Field(
        default="GET",
        sa_column=Column(String, nullable=False),
        description="HTTP method: GET, POST, PUT or DELETE",
    )
    headers: dict[str, str] | None = Field(
        default=None,
        sa_column=Column(JSON),
        description="Extra request headers merged into the outgoing request",
    )
    body: str | None = Field(
        default=None,
        sa_column=Column(Text),
        description="Request body, only sent for POST and PUT",
    )

    # Schedule
    frequency_minutes: int = Field(description="Minutes between executions")
    timeout_seconds: int = Field(default=30, description="Request timeout")
    retry_attempts: int = Field(
        default=3, description="Declared retry count, the next tick is the retry"
    )
    retry_delay_seconds: int = Field(default=60, description="Declared retry delay")
    is_enabled: bool = Field(
        default=True,
        sa_column=Column(Boolean, index=True, nullable=False),
        description="Disabled tasks are never selected",
    )

    # Scheduling state
    last_executed_at: datetime | None = Field(
        default=None,
        sa_column=Column(UTCDateTime()),
        description="Time of the most recent recorded attempt",
    )
    next_execution_at: datetime | None = Field(
        default=None,
        sa_column=Column(UTCDateTime(), index=True),
        description="Next due time; null means due immediately",
    )

    # Aggregates
    success_count: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, default=0)
    )
    failure_count: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, default=0)
    )
    avg_response_time: float | None = Field(
        default=None,
        description="Mean response time over the most recent timed attempts",
    )
