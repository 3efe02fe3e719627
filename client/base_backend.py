"""Task backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.task import Task, TaskState


class TaskBackend(ABC):
    """Source of truth for the task collection.

    Implementations raise ``core.errors.TaskBackendError`` when a request
    cannot be served.
    """

    @abstractmethod
    def fetch_tasks(self) -> list[Task]:
        """Return the full current task collection."""

    @abstractmethod
    def submit_state(self, task_id: int, state: TaskState) -> Task:
        """Persist one task's new state and return the authoritative record."""
