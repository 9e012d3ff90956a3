"""Task API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from pingcron.core.auth import verify_api_key
from pingcron.core.errors import NotFoundError, TaskBusyError, ValidationError
from pingcron.models import HttpMethod, Task, TaskLog
from pingcron.services import SchedulerService, TaskService

router = APIRouter()


class TaskCreate(BaseModel):
    """Request model for creating a task."""

    name: str
    description: str | None = None
    target_url: str
    http_method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] | None = None
    body: str | None = None
    frequency_minutes: int = Field(ge=1)
    timeout_seconds: int = Field(default=30, ge=1)
    retry_attempts: int = Field(default=3, ge=0)
    retry_delay_seconds: int = Field(default=60, ge=0)
    is_enabled: bool = True


class TaskUpdate(BaseModel):
    """Request model for a partial task update."""

    name: str | None = None
    description: str | None = None
    target_url: str | None = None
    http_method: HttpMethod | None = None
    headers: dict[str, str] | None = None
    body: str | None = None
    frequency_minutes: int | None = Field(default=None, ge=1)
    timeout_seconds: int | None = Field(default=None, ge=1)
    retry_attempts: int | None = Field(default=None, ge=0)
    retry_delay_seconds: int | None = Field(default=None, ge=0)
    is_enabled: bool | None = None


class TaskResponse(BaseModel):
    """Response model for task data."""

    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    target_url: str
    http_method: str
    headers: dict[str, str] | None
    body: str | None
    frequency_minutes: int
    timeout_seconds: int
    retry_attempts: int
    retry_delay_seconds: int
    is_enabled: bool
    last_executed_at: datetime | None
    next_execution_at: datetime | None
    success_count: int
    failure_count: int
    avg_response_time: float | None
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    """Response model for list of tasks."""

    tasks: list[TaskResponse]
    total: int
    limit: int
    offset: int


class TaskLogResponse(BaseModel):
    """Response model for a task log entry."""

    model_config = {"from_attributes": True}

    id: UUID
    task_id: UUID
    executed_at: datetime
    status: str
    http_status_code: int | None
    response_time_ms: int | None
    response_size: int | None
    error_message: str | None
    request_headers: dict[str, str] | None
    response_headers: dict[str, str] | None
    response_body: str | None


class TaskLogListResponse(BaseModel):
    """Response model for list of task logs."""

    logs: list[TaskLogResponse]
    total: int
    limit: int
    offset: int


def _task_response(task: Task) -> TaskResponse:
    return TaskResponse.model_validate(task)


def _log_response(log: TaskLog) -> TaskLogResponse:
    return TaskLogResponse.model_validate(log)


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(task_data: TaskCreate, api_key: str = Depends(verify_api_key)):
    """Create a new task."""
    try:
        task = TaskService.create_task(
            name=task_data.name,
            description=task_data.description,
            target_url=task_data.target_url,
            http_method=task_data.http_method.value,
            headers=task_data.headers,
            body=task_data.body,
            frequency_minutes=task_data.frequency_minutes,
            timeout_seconds=task_data.timeout_seconds,
            retry_attempts=task_data.retry_attempts,
            retry_delay_seconds=task_data.retry_delay_seconds,
            is_enabled=task_data.is_enabled,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    return _task_response(task)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: UUID, api_key: str = Depends(verify_api_key)):
    """Get a task by ID."""
    try:
        task = TaskService.get_task_by_id(task_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e

    return _task_response(task)


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    limit: int = 100, offset: int = 0, api_key: str = Depends(verify_api_key)
):
    """List all tasks with pagination."""
    tasks, total = TaskService.list_tasks(limit=limit, offset=offset)

    return TaskListResponse(
        tasks=[_task_response(task) for task in tasks],
        total=total,
        limit=limit,
        offset=offset,
    )


def _apply_update(task_id: UUID, changes: dict) -> TaskResponse:
    try:
        task = TaskService.update_task(task_id, **changes)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    return _task_response(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
def replace_task(
    task_id: UUID, task_data: TaskCreate, api_key: str = Depends(verify_api_key)
):
    """Replace a task's definition. Unset optional fields take their defaults."""
    return _apply_update(task_id, task_data.model_dump(mode="json"))


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID, task_data: TaskUpdate, api_key: str = Depends(verify_api_key)
):
    """Update the given fields of a task."""
    changes = task_data.model_dump(mode="json", exclude_unset=True)
    return _apply_update(task_id, changes)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: UUID, api_key: str = Depends(verify_api_key)):
    """Delete a task and its logs."""
    try:
        TaskService.delete_task(task_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e


@router.get("/tasks/{task_id}/logs", response_model=TaskLogListResponse)
def get_task_logs(
    task_id: UUID,
    limit: int = 100,
    offset: int = 0,
    api_key: str = Depends(verify_api_key),
):
    """Get execution logs for a task, newest first."""
    try:
        logs, total = TaskService.get_task_logs(task_id, limit=limit, offset=offset)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e

    return TaskLogListResponse(
        logs=[_log_response(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/tasks/{task_id}/execute", response_model=TaskLogResponse)
def execute_task(task_id: UUID, api_key: str = Depends(verify_api_key)):
    """Execute a task immediately and return the recorded log entry."""
    try:
        log = SchedulerService.execute_task_now(task_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except (ValidationError, TaskBusyError) as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e

    return _log_response(log)
