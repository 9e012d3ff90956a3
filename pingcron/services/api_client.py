"""API client service for interacting with the PingCron API."""

import os
from typing import Any

import httpx


class ApiClientService:
    """Service for PingCron API client operations."""

    @staticmethod
    def get_client(
        base_url: str | None = None, api_key: str | None = None
    ) -> httpx.Client:
        """Get configured HTTP client.

        Args:
            base_url: API base URL (defaults to PINGCRON_URL env var or http://localhost:8000)
            api_key: API key for authentication (defaults to API_SECRET_KEY env var)

        Returns:
            Configured httpx.Client with base_url, headers, and timeout
        """
        if base_url is None:
            base_url = os.getenv("PINGCRON_URL", "http://localhost:8000")
        if api_key is None:
            api_key = os.getenv("API_SECRET_KEY", "")

        return httpx.Client(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout=30.0,
        )

    @staticmethod
    def _request(
        method: str,
        path: str,
        client: httpx.Client | None = None,
        **kwargs: Any,
    ) -> Any:
        should_close = client is None
        if client is None:
            client = ApiClientService.get_client()

        try:
            response = client.request(method, path, **kwargs)
            response.raise_for_status()
            if response.status_code == 204:
                return None
            return response.json()
        finally:
            if should_close:
                client.close()

    @staticmethod
    def create_task(
        payload: dict[str, Any], client: httpx.Client | None = None
    ) -> dict[str, Any]:
        """Create a new task.

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        return ApiClientService._request("POST", "/v1/tasks", client, json=payload)

    @staticmethod
    def get_task(task_id: str, client: httpx.Client | None = None) -> dict[str, Any]:
        """Get task by ID.

        Raises:
            httpx.HTTPStatusError: If API request fails (e.g., 404 for not found)
        """
        return ApiClientService._request("GET", f"/v1/tasks/{task_id}", client)

    @staticmethod
    def list_tasks(
        limit: int = 100, offset: int = 0, client: httpx.Client | None = None
    ) -> dict[str, Any]:
        """List tasks with pagination."""
        return ApiClientService._request(
            "GET", "/v1/tasks", client, params={"limit": limit, "offset": offset}
        )

    @staticmethod
    def update_task(
        task_id: str, payload: dict[str, Any], client: httpx.Client | None = None
    ) -> dict[str, Any]:
        """Update the given fields of a task.

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        return ApiClientService._request(
            "PATCH", f"/v1/tasks/{task_id}", client, json=payload
        )

    @staticmethod
    def set_task_enabled(
        task_id: str, is_enabled: bool, client: httpx.Client | None = None
    ) -> dict[str, Any]:
        """Enable or disable a task."""
        return ApiClientService.update_task(
            task_id, {"is_enabled": is_enabled}, client
        )

    @staticmethod
    def delete_task(task_id: str, client: httpx.Client | None = None) -> None:
        """Delete a task and its logs."""
        ApiClientService._request("DELETE", f"/v1/tasks/{task_id}", client)

    @staticmethod
    def get_task_logs(
        task_id: str,
        limit: int = 100,
        offset: int = 0,
        client: httpx.Client | None = None,
    ) -> dict[str, Any]:
        """Get execution logs for a task."""
        return ApiClientService._request(
            "GET",
            f"/v1/tasks/{task_id}/logs",
            client,
            params={"limit": limit, "offset": offset},
        )

    @staticmethod
    def execute_task(task_id: str, client: httpx.Client | None = None) -> dict[str, Any]:
        """Execute a task immediately."""
        return ApiClientService._request("POST", f"/v1/tasks/{task_id}/execute", client)

    @staticmethod
    def get_stats(client: httpx.Client | None = None) -> dict[str, Any]:
        """Get aggregate statistics."""
        return ApiClientService._request("GET", "/v1/stats", client)
