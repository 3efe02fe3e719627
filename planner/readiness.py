"""Blocked/actionable predicates over a task map."""

from __future__ import annotations

from domain.task import Task, TaskMap, TaskState


def is_blocked(task: Task, task_map: TaskMap) -> bool:
    """True when some blocker resolves to a task that is not DONE.

    Blocker ids that do not resolve are ignored here.
    """
    for blocker_id in task.blockers:
        blocker = task_map.get(blocker_id)
        if blocker is not None and blocker.state != TaskState.DONE:
            return True
    return False


def is_actionable(task: Task, task_map: TaskMap) -> bool:
    """True when every blocker resolves to a DONE task.

    Unlike :func:`is_blocked`, an unresolved blocker id makes the task
    non-actionable.
    """
    for blocker_id in task.blockers:
        blocker = task_map.get(blocker_id)
        if blocker is None or blocker.state != TaskState.DONE:
            return False
    return True


def derive_state(task: Task, task_map: TaskMap) -> TaskState:
    """Return the state ``task`` should hold given its blockers."""
    if is_blocked(task, task_map):
        return TaskState.BLOCKED
    if task.state == TaskState.BLOCKED:
        return TaskState.TODO
    return task.state
