"""Task log model for storing execution outcomes."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, ForeignKey, String, Text
from sqlmodel import Field, SQLModel

from pingcron.core.database import UTCDateTime


class TaskLog(SQLModel, table=True):
    """Immutable record of one execution attempt."""

    __tablename__ = "task_logs"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        description="Unique identifier for the log entry",
    )
    executed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(UTCDateTime(), index=True, nullable=False),
        description="Timestamp of the attempt",
    )

    # Foreign key to task
    task_id: UUID = Field(
        sa_column=Column(ForeignKey("tasks.id", ondelete="CASCADE"), index=True),
        description="ID of the task this log belongs to",
    )

    # Outcome
    status: str = Field(
        sa_column=Column(String, index=True, nullable=False),
        description="Attempt status: success, failed or timeout",
    )
    http_status_code: int | None = Field(
        default=None, description="Absent when no response was received"
    )
    response_time_ms: int | None = Field(
        default=None, description="Absent on pre-request failures"
    )
    response_size: int | None = Field(default=None, description="Body size in bytes")
    error_message: str | None = Field(
        default=None, sa_column=Column(Text), description="Human readable error"
    )

    # Diagnostics
    request_headers: dict[str, str] | None = Field(
        default=None, sa_column=Column(JSON)
    )
    response_headers: dict[str, str] | None = Field(
        default=None, sa_column=Column(JSON)
    )
    response_body: str | None = Field(
        default=None,
        sa_column=Column(Text),
        description="Leading part of the response body",
    )
