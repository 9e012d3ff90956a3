"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path

# Set test environment before the application reads its settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{Path(tempfile.gettempdir()) / 'pingcron-test.db'}",
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from pingcron.core.database import (  # noqa: E402
    clean_database,
    close_db,
    create_tables,
)
from pingcron.main import app  # noqa: E402
from pingcron.models import Task  # noqa: E402
from pingcron.services import TaskService  # noqa: E402


def create_test_task(
    name: str = "Test ping",
    target_url: str = "https://example.com/ok",
    frequency_minutes: int = 5,
    **kwargs,
) -> Task:
    """Helper function to create a test task with default values."""
    kwargs.setdefault("timeout_seconds", 10)
    return TaskService.create_task(
        name=name,
        target_url=target_url,
        frequency_minutes=frequency_minutes,
        **kwargs,
    )


@pytest.fixture(autouse=True, scope="function")
def mock_celery_task(mocker):
    """Mock Celery task dispatch for all tests."""
    mocker.patch("pingcron.tasks.scheduler.run_tick.delay")


@pytest.fixture(autouse=True, scope="function")
def clean_db():
    """Initialize and clean database for each test."""
    create_tables()

    # Clean all tables before test to ensure isolation
    clean_database()

    yield

    # Close DB connections
    close_db()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="function")
def auth_headers():
    """Provide authentication headers for API requests."""
    from pingcron.core.config import settings

    return {"X-API-Key": settings.api_secret_key}


@pytest.fixture(scope="function")
def cron_headers():
    """Provide the bearer token used by the cron trigger."""
    from pingcron.core.config import settings

    return {"Authorization": f"Bearer {settings.cron_secret}"}
