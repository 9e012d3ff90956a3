"""Tests for ApiClientService."""

import os

import httpx
import pytest

from pingcron.services.api_client import ApiClientService

TASK_ID = "12345678-1234-5678-1234-567812345678"


def mock_client_for(mocker, method_result, status_code=200):
    mock_response = mocker.Mock()
    mock_response.status_code = status_code
    mock_response.json.return_value = method_result

    mock_client = mocker.Mock(spec=httpx.Client)
    mock_client.request.return_value = mock_response
    mocker.patch.object(ApiClientService, "get_client", return_value=mock_client)
    return mock_client, mock_response


def test_get_client_default_values(mocker):
    """Test get_client with default values from environment."""
    mocker.patch.dict(
        os.environ,
        {"PINGCRON_URL": "http://test.example.com", "API_SECRET_KEY": "test-key"},
    )

    client = ApiClientService.get_client()

    assert isinstance(client, httpx.Client)
    assert str(client.base_url) == "http://test.example.com"
    assert client.headers["X-API-Key"] == "test-key"
    assert client.timeout.read == 30.0
    client.close()


def test_get_client_with_explicit_values():
    """Test get_client with explicitly provided values."""
    client = ApiClientService.get_client(
        base_url="http://custom.example.com", api_key="custom-key"
    )

    assert str(client.base_url) == "http://custom.example.com"
    assert client.headers["X-API-Key"] == "custom-key"
    client.close()


def test_create_task_success(mocker):
    """Test creating a task closes the client it created."""
    payload = {
        "name": "Homepage",
        "target_url": "https://example.com",
        "frequency_minutes": 5,
    }
    mock_client, mock_response = mock_client_for(mocker, {"id": TASK_ID, **payload})

    task = ApiClientService.create_task(payload)

    assert task["id"] == TASK_ID
    mock_client.request.assert_called_once_with("POST", "/v1/tasks", json=payload)
    mock_response.raise_for_status.assert_called_once()
    mock_client.close.assert_called_once()


def test_get_task_with_provided_client(mocker):
    """Test a provided client is used and not closed."""
    mock_response = mocker.Mock(status_code=200)
    mock_response.json.return_value = {"id": TASK_ID}
    mock_client = mocker.Mock(spec=httpx.Client)
    mock_client.request.return_value = mock_response

    task = ApiClientService.get_task(TASK_ID, client=mock_client)

    assert task["id"] == TASK_ID
    mock_client.request.assert_called_once_with("GET", f"/v1/tasks/{TASK_ID}")
    mock_client.close.assert_not_called()


def test_get_task_http_error(mocker):
    """Test HTTP errors propagate."""
    mock_client, mock_response = mock_client_for(mocker, {})
    mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "Not Found", request=mocker.Mock(), response=mocker.Mock(status_code=404)
    )

    with pytest.raises(httpx.HTTPStatusError):
        ApiClientService.get_task(TASK_ID)

    mock_client.close.assert_called_once()


def test_list_tasks(mocker):
    """Test listing tasks passes pagination parameters."""
    mock_client, _ = mock_client_for(mocker, {"tasks": [], "total": 0})

    ApiClientService.list_tasks(limit=5, offset=10)

    mock_client.request.assert_called_once_with(
        "GET", "/v1/tasks", params={"limit": 5, "offset": 10}
    )


def test_set_task_enabled(mocker):
    """Test toggling a task sends a PATCH."""
    mock_client, _ = mock_client_for(mocker, {"id": TASK_ID, "is_enabled": False})

    ApiClientService.set_task_enabled(TASK_ID, False)

    mock_client.request.assert_called_once_with(
        "PATCH", f"/v1/tasks/{TASK_ID}", json={"is_enabled": False}
    )


def test_update_task(mocker):
    """Test editing a task sends only the given fields."""
    mock_client, _ = mock_client_for(mocker, {"id": TASK_ID, "name": "Renamed"})

    result = ApiClientService.update_task(TASK_ID, {"name": "Renamed"})

    assert result["name"] == "Renamed"
    mock_client.request.assert_called_once_with(
        "PATCH", f"/v1/tasks/{TASK_ID}", json={"name": "Renamed"}
    )


def test_delete_task_no_content(mocker):
    """Test delete handles an empty 204 response."""
    mock_client, mock_response = mock_client_for(mocker, None, status_code=204)

    assert ApiClientService.delete_task(TASK_ID) is None
    mock_response.json.assert_not_called()


def test_get_task_logs(mocker):
    """Test fetching logs for a task."""
    mock_client, _ = mock_client_for(mocker, {"logs": [], "total": 0})

    ApiClientService.get_task_logs(TASK_ID, limit=20)

    mock_client.request.assert_called_once_with(
        "GET", f"/v1/tasks/{TASK_ID}/logs", params={"limit": 20, "offset": 0}
    )


def test_execute_task(mocker):
    """Test triggering a manual execution."""
    mock_client, _ = mock_client_for(mocker, {"status": "success"})

    log = ApiClientService.execute_task(TASK_ID)

    assert log["status"] == "success"
    mock_client.request.assert_called_once_with(
        "POST", f"/v1/tasks/{TASK_ID}/execute"
    )


def test_get_stats(mocker):
    """Test fetching statistics."""
    mock_client, _ = mock_client_for(mocker, {"total_tasks": 3})

    assert ApiClientService.get_stats()["total_tasks"] == 3
    mock_client.request.assert_called_once_with("GET", "/v1/stats")
