"""Snapshot checkpoint tests."""

from __future__ import annotations

from domain.task import Task, TaskState
from executor.rollback_manager import RollbackManager


def test_rollback_returns_captured_snapshot_once() -> None:
    manager = RollbackManager()
    snapshot = [Task(id=1, state=TaskState.DONE)]
    checkpoint_id = manager.create_checkpoint(snapshot)

    snapshot.append(Task(id=2))

    assert manager.rollback(checkpoint_id) == (Task(id=1, state=TaskState.DONE),)
    assert manager.rollback(checkpoint_id) is None


def test_oldest_checkpoints_are_evicted() -> None:
    manager = RollbackManager(max_checkpoints=2)
    first = manager.create_checkpoint([])
    manager.create_checkpoint([])
    manager.create_checkpoint([])

    assert len(manager) == 2
    assert manager.rollback(first) is None


def test_discard_forgets_checkpoint() -> None:
    manager = RollbackManager()
    checkpoint_id = manager.create_checkpoint([Task(id=1)])
    manager.discard(checkpoint_id)
    assert len(manager) == 0
