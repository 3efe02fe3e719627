"""Structured JSONL audit logger for state transitions."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from domain.task import TaskState


class AuditLogger:
    """Writes transition audit records as JSON lines."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("taskgate.audit")

    def log(
        self,
        task_id: int,
        requested_state: TaskState | str,
        outcome: str,
        approved: bool,
        reason: str = "",
        cascaded: dict[int, tuple[TaskState, TaskState]] | None = None,
    ) -> dict[str, Any]:
        """Append one JSONL audit event and return it."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "task_id": task_id,
            "requested_state": getattr(requested_state, "value", requested_state),
            "outcome": outcome,
            "approved": approved,
            "reason": reason,
            "cascaded": {
                str(tid): [old.value, new.value] for tid, (old, new) in (cascaded or {}).items()
            },
        }
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(event, ensure_ascii=True) + "\n")
        self.logger.info(json.dumps(event, ensure_ascii=True))
        return event

    def read_events(self) -> list[dict[str, Any]]:
        """Return all recorded events, oldest first."""
        if not self.log_path.exists():
            return []
        with self.log_path.open("r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
