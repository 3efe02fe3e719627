"""Task records and lifecycle states."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskState(str, Enum):
    """Lifecycle states. BLOCKED is derived from blockers, never requested."""

    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class Task(BaseModel):
    """Immutable task record.

    ``dependents`` is whatever the collaborator sent; it is a cache and is
    never read by the graph code, which rebuilds forward edges from
    ``blockers``.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    description: str = ""
    state: TaskState = TaskState.TODO
    blockers: tuple[int, ...] = Field(default_factory=tuple)
    dependents: tuple[int, ...] = Field(default_factory=tuple)
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("due_date", "completed_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value: Any) -> Any:
        return "" if value is None else value

    def with_state(self, state: TaskState) -> Task:
        """Return a replacement record carrying ``state``."""
        return self.model_copy(update={"state": TaskState(state)})


TaskMap = dict[int, Task]
DependencyGraph = dict[int, list[int]]
