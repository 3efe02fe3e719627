"""Snapshot checkpoints for optimistic state changes."""

from __future__ import annotations

import uuid
from collections import OrderedDict
from collections.abc import Iterable

from domain.task import Task


class RollbackManager:
    """Keeps pre-change task snapshots so a failed submit can be undone."""

    def __init__(self, max_checkpoints: int = 16) -> None:
        self.max_checkpoints = max_checkpoints
        self._checkpoints: OrderedDict[str, tuple[Task, ...]] = OrderedDict()

    def create_checkpoint(self, tasks: Iterable[Task]) -> str:
        """Capture ``tasks`` and return the checkpoint id."""
        checkpoint_id = uuid.uuid4().hex
        self._checkpoints[checkpoint_id] = tuple(tasks)
        while len(self._checkpoints) > self.max_checkpoints:
            self._checkpoints.popitem(last=False)
        return checkpoint_id

    def rollback(self, checkpoint_id: str) -> tuple[Task, ...] | None:
        """Return and forget the snapshot for ``checkpoint_id``."""
        return self._checkpoints.pop(checkpoint_id, None)

    def discard(self, checkpoint_id: str) -> None:
        self._checkpoints.pop(checkpoint_id, None)

    def __len__(self) -> int:
        return len(self._checkpoints)
