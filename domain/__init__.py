"""Task domain types."""

from domain.task import DependencyGraph, Task, TaskMap, TaskState

__all__ = [
    "DependencyGraph",
    "Task",
    "TaskMap",
    "TaskState",
]
