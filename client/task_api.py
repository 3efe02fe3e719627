"""HTTP client for a remote task API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from client.base_backend import TaskBackend
from core.errors import TaskBackendError, TaskNotFoundError
from domain.task import Task, TaskState

logger = logging.getLogger("taskgate.client")


class TaskApiClient(TaskBackend):
    """Talks to ``GET /tasks`` and ``PATCH /tasks/{id}``."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> TaskApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch_tasks(self) -> list[Task]:
        payload = self._request("GET", "/tasks")
        if not isinstance(payload, list):
            raise TaskBackendError("Failed to fetch tasks: expected a JSON list")
        try:
            return [Task.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise TaskBackendError(f"Failed to fetch tasks: invalid task payload: {exc}") from exc

    def submit_state(self, task_id: int, state: TaskState) -> Task:
        state = TaskState(state)
        try:
            payload = self._request("PATCH", f"/tasks/{task_id}", json={"state": state.value})
        except TaskBackendError as exc:
            if exc.status_code == 404:
                raise TaskNotFoundError(task_id) from exc
            raise
        try:
            return Task.model_validate(payload)
        except ValidationError as exc:
            raise TaskBackendError(f"Failed to update task: invalid task payload: {exc}") from exc

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TaskBackendError(f"API Error: {exc}") from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, detail)
            raise TaskBackendError(f"API Error: {detail}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise TaskBackendError(f"API Error: response is not JSON: {exc}") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return response.reason_phrase or f"HTTP {response.status_code}"
