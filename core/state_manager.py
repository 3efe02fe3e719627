"""Authoritative task snapshot for a session."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from core.errors import IngestionError
from core.event_bus import SNAPSHOT_PUBLISHED, EventBus
from domain.task import Task
from governance.consistency import ConsistencyReport, FindingKind, inspect_ingestion

logger = logging.getLogger("taskgate.state")

_REJECTING_KINDS = {
    "reject_cycles": FindingKind.CYCLE,
    "reject_self_blockers": FindingKind.SELF_BLOCKER,
    "reject_duplicate_ids": FindingKind.DUPLICATE_ID,
}


class StateManager:
    """Holds the current task snapshot and swaps it atomically.

    Readers always see a complete tuple of tasks: either the snapshot
    before a propagation or the one after it, never a mix.
    """

    def __init__(
        self,
        ingestion: dict[str, Any] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.ingestion = dict(ingestion or {})
        self.event_bus = event_bus
        self._snapshot: tuple[Task, ...] = ()
        self.last_report: ConsistencyReport = ConsistencyReport()

    @property
    def snapshot(self) -> tuple[Task, ...]:
        return self._snapshot

    def get(self, task_id: int) -> Task | None:
        """Return the task with ``task_id`` from the current snapshot."""
        for task in reversed(self._snapshot):
            if task.id == task_id:
                return task
        return None

    def load(self, tasks: Iterable[Task]) -> ConsistencyReport:
        """Check ``tasks`` with the ingestion guard and publish them.

        Raises IngestionError when a finding kind enabled in the ingestion
        config is present; the current snapshot is left untouched.
        """
        tasks = tuple(tasks)
        report = inspect_ingestion(tasks)
        rejected = [
            finding
            for flag, kind in _REJECTING_KINDS.items()
            if self.ingestion.get(flag, True)
            for finding in report.of_kind(kind)
        ]
        if rejected:
            raise IngestionError(
                "Task snapshot rejected: " + "; ".join(finding.message for finding in rejected),
                findings=rejected,
            )
        if self.ingestion.get("warn_unresolved_blockers", True):
            for finding in report.of_kind(FindingKind.UNRESOLVED_BLOCKER):
                logger.warning(finding.message)
        self.last_report = report
        self.publish(tasks)
        return report

    def publish(self, tasks: Iterable[Task]) -> None:
        """Replace the snapshot without running the ingestion guard."""
        self._snapshot = tuple(tasks)
        if self.event_bus is not None:
            self.event_bus.emit(SNAPSHOT_PUBLISHED, {"task_count": len(self._snapshot)})
