"""Blocked/actionable predicate tests."""

from __future__ import annotations

from domain.task import Task, TaskState
from planner.dependency_graph import build_task_map
from planner.readiness import derive_state, is_actionable, is_blocked


def make_task(task_id: int, state: TaskState = TaskState.TODO, blockers: list[int] | None = None) -> Task:
    return Task(id=task_id, title=f"Task {task_id}", state=state, blockers=tuple(blockers or []))


def test_task_without_blockers_is_actionable_and_not_blocked() -> None:
    for state in TaskState:
        task = make_task(1, state)
        assert is_blocked(task, {}) is False
        assert is_actionable(task, {}) is True


def test_blocked_when_any_blocker_is_not_done() -> None:
    t1 = make_task(1, TaskState.DONE)
    t2 = make_task(2, TaskState.IN_PROGRESS)
    t3 = make_task(3, blockers=[1, 2])
    task_map = build_task_map([t1, t2, t3])

    assert is_blocked(t3, task_map) is True
    assert is_actionable(t3, task_map) is False


def test_actionable_when_every_blocker_is_done() -> None:
    t1 = make_task(1, TaskState.DONE)
    t2 = make_task(2, TaskState.DONE)
    t3 = make_task(3, blockers=[1, 2])
    task_map = build_task_map([t1, t2, t3])

    assert is_blocked(t3, task_map) is False
    assert is_actionable(t3, task_map) is True


def test_unresolved_blocker_is_ignored_by_blocked_but_fails_actionable() -> None:
    t1 = make_task(1, TaskState.DONE)
    t2 = make_task(2, blockers=[1, 404])
    task_map = build_task_map([t1, t2])

    assert is_blocked(t2, task_map) is False
    assert is_actionable(t2, task_map) is False


def test_derive_state() -> None:
    done = make_task(1, TaskState.DONE)
    open_ = make_task(2, TaskState.TODO)
    task_map = build_task_map([done, open_])

    assert derive_state(make_task(3, TaskState.IN_PROGRESS, [2]), task_map) == TaskState.BLOCKED
    assert derive_state(make_task(3, TaskState.BLOCKED, [1]), task_map) == TaskState.TODO
    assert derive_state(make_task(3, TaskState.IN_PROGRESS, [1]), task_map) == TaskState.IN_PROGRESS
    assert derive_state(make_task(3, TaskState.BACKLOG), task_map) == TaskState.BACKLOG
