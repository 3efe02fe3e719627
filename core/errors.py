"""Exceptions raised by the application layers around the task graph core."""

from __future__ import annotations

from typing import Any


class TaskGateError(Exception):
    """Base exception for taskgate errors."""


class IngestionError(TaskGateError):
    """Raised when a task snapshot fails the ingestion guard."""

    def __init__(self, message: str, findings: list[Any] | None = None) -> None:
        self.findings = list(findings or [])
        super().__init__(message)


class TaskBackendError(TaskGateError):
    """Raised when the task store or remote API cannot serve a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TaskNotFoundError(TaskBackendError):
    """Raised when the backend has no task with the requested id."""

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found", status_code=404)
