"""End-to-end transition flow tests against an in-memory backend."""

from __future__ import annotations

from pathlib import Path

from client.base_backend import TaskBackend
from core.errors import TaskBackendError
from core.event_bus import (
    TASK_STATE_CHANGED,
    TRANSITION_APPLIED,
    TRANSITION_REJECTED,
    TRANSITION_REVERTED,
    EventBus,
)
from core.state_manager import StateManager
from domain.task import Task, TaskState
from executor.transition_runner import TransitionRunner
from governance.audit_logger import AuditLogger
from governance.transition_policy import ReasonCode
from planner.propagation import propagate_state_change


class InMemoryBackend(TaskBackend):
    """Backend that applies the cascade server-side, or fails on demand."""

    def __init__(self, tasks: list[Task], fail: bool = False) -> None:
        self.tasks = list(tasks)
        self.fail = fail
        self.submitted: list[tuple[int, TaskState]] = []
        self.snapshot_at_submit: tuple[Task, ...] | None = None
        self.state_manager: StateManager | None = None

    def fetch_tasks(self) -> list[Task]:
        return list(self.tasks)

    def submit_state(self, task_id: int, state: TaskState) -> Task:
        if self.state_manager is not None:
            self.snapshot_at_submit = self.state_manager.snapshot
        self.submitted.append((task_id, state))
        if self.fail:
            raise TaskBackendError("API Error: Internal Server Error", status_code=500)
        self.tasks = propagate_state_change(task_id, state, self.tasks)
        return next(task for task in self.tasks if task.id == task_id)


def make_task(task_id: int, state: TaskState = TaskState.TODO, blockers: list[int] | None = None) -> Task:
    return Task(id=task_id, title=f"Task {task_id}", state=state, blockers=tuple(blockers or []))


def build_runner(tmp_path: Path, tasks: list[Task], fail: bool = False):
    backend = InMemoryBackend(tasks, fail=fail)
    bus = EventBus()
    events: list[tuple[str, dict]] = []
    for name in (TRANSITION_APPLIED, TRANSITION_REJECTED, TRANSITION_REVERTED, TASK_STATE_CHANGED):
        bus.subscribe(name, lambda payload, name=name: events.append((name, payload)))
    state = StateManager(event_bus=bus)
    backend.state_manager = state
    audit = AuditLogger(tmp_path / "audit.jsonl")
    runner = TransitionRunner(backend=backend, state_manager=state, audit_logger=audit, event_bus=bus)
    runner.refresh()
    return runner, backend, state, audit, events


def states(tasks) -> dict[int, TaskState]:
    return {task.id: task.state for task in tasks}


def test_approved_change_is_applied_and_cascaded(tmp_path: Path) -> None:
    tasks = [make_task(1, TaskState.TODO), make_task(2, TaskState.BLOCKED, [1]), make_task(3, TaskState.BLOCKED, [2])]
    runner, backend, state, audit, events = build_runner(tmp_path, tasks)

    result = runner.run(1, TaskState.DONE)

    assert result.success is True
    assert result.changes == {1: (TaskState.TODO, TaskState.DONE), 2: (TaskState.BLOCKED, TaskState.TODO)}
    assert states(state.snapshot) == {1: TaskState.DONE, 2: TaskState.TODO, 3: TaskState.BLOCKED}
    assert backend.submitted == [(1, TaskState.DONE)]
    assert states(backend.snapshot_at_submit)[2] == TaskState.TODO

    [event] = audit.read_events()
    assert event["outcome"] == "applied"
    assert event["cascaded"] == {"1": ["TODO", "DONE"], "2": ["BLOCKED", "TODO"]}
    assert [name for name, _ in events].count(TASK_STATE_CHANGED) == 2
    assert events[-1][0] == TRANSITION_APPLIED


def test_rejected_change_never_reaches_backend(tmp_path: Path) -> None:
    tasks = [make_task(1, TaskState.TODO), make_task(2, TaskState.BLOCKED, [1])]
    runner, backend, state, audit, events = build_runner(tmp_path, tasks)
    before = state.snapshot

    blocked_target = runner.run(1, TaskState.BLOCKED)
    blocked_task = runner.run(2, TaskState.TODO)

    assert blocked_target.success is False
    assert blocked_target.reason_code == ReasonCode.BLOCKED_TARGET
    assert blocked_task.reason_code == ReasonCode.TASK_BLOCKED
    assert backend.submitted == []
    assert state.snapshot == before
    assert [event["reason"] for event in audit.read_events()] == ["blocked_target", "task_blocked"]
    assert [name for name, _ in events] == [TRANSITION_REJECTED, TRANSITION_REJECTED]


def test_unknown_task_is_rejected(tmp_path: Path) -> None:
    runner, backend, _, audit, _ = build_runner(tmp_path, [make_task(1)])
    result = runner.run(42, TaskState.DONE)
    assert result.success is False
    assert result.reason_code is None
    assert "not found" in result.outcome
    assert audit.read_events()[0]["reason"] == "not_found"


def test_backend_failure_restores_previous_snapshot(tmp_path: Path) -> None:
    tasks = [make_task(1, TaskState.DONE), make_task(2, TaskState.DONE, [1])]
    runner, backend, state, audit, events = build_runner(tmp_path, tasks, fail=True)
    before = state.snapshot

    result = runner.run(1, TaskState.TODO)

    assert result.success is False
    assert "Internal Server Error" in result.outcome
    assert states(backend.snapshot_at_submit) == {1: TaskState.TODO, 2: TaskState.BLOCKED}
    assert state.snapshot == before
    assert len(runner.rollback_manager) == 0
    assert audit.read_events()[0]["outcome"] == "failed"
    assert events[-1][0] == TRANSITION_REVERTED


def test_snapshot_is_refreshed_from_backend_after_submit(tmp_path: Path) -> None:
    tasks = [make_task(1, TaskState.TODO)]
    runner, backend, state, _, _ = build_runner(tmp_path, tasks)
    backend.tasks.append(make_task(2, TaskState.BACKLOG))

    runner.run(1, TaskState.IN_PROGRESS)

    assert states(state.snapshot) == {1: TaskState.IN_PROGRESS, 2: TaskState.BACKLOG}


class FailingFetchBackend(InMemoryBackend):
    """Stores submits but cannot serve the follow-up fetch."""

    def __init__(self, tasks: list[Task]) -> None:
        super().__init__(tasks)
        self.fetch_fails = False

    def fetch_tasks(self) -> list[Task]:
        if self.fetch_fails:
            raise TaskBackendError("API Error: timeout")
        return super().fetch_tasks()


def test_failed_refresh_after_stored_submit_keeps_the_change(tmp_path: Path) -> None:
    tasks = [make_task(1, TaskState.TODO), make_task(2, TaskState.BLOCKED, [1])]
    backend = FailingFetchBackend(tasks)
    state = StateManager()
    audit = AuditLogger(tmp_path / "audit.jsonl")
    runner = TransitionRunner(backend=backend, state_manager=state, audit_logger=audit)
    runner.refresh()
    backend.fetch_fails = True

    result = runner.run(1, TaskState.DONE)

    assert result.success is True
    assert states(backend.tasks)[1] == TaskState.DONE
    assert states(state.snapshot) == {1: TaskState.DONE, 2: TaskState.TODO}
    assert len(runner.rollback_manager) == 0
    assert audit.read_events()[0]["outcome"] == "applied"
