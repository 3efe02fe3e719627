"""Applies a requested state change end to end.

Validate against the current snapshot, publish the propagated snapshot
optimistically, submit the single change to the backend, then refresh
from the backend. A failed submit restores the pre-change snapshot; a
failed refresh keeps the optimistic one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from client.base_backend import TaskBackend
from core.errors import TaskBackendError, TaskGateError
from core.event_bus import (
    TASK_STATE_CHANGED,
    TRANSITION_APPLIED,
    TRANSITION_REJECTED,
    TRANSITION_REVERTED,
    EventBus,
)
from core.state_manager import StateManager
from domain.task import TaskState
from executor.rollback_manager import RollbackManager
from governance.audit_logger import AuditLogger
from governance.transition_policy import ReasonCode, can_transition_to
from planner.dependency_graph import build_task_map
from planner.propagation import diff_states, propagate_state_change

logger = logging.getLogger("taskgate.runner")


@dataclass
class TransitionOutcome:
    """Result of one requested transition."""

    task_id: int
    requested_state: str
    success: bool
    outcome: str
    reason_code: ReasonCode | None = None
    changes: dict[int, tuple[TaskState, TaskState]] = field(default_factory=dict)


class TransitionRunner:
    """Runs state changes only when the transition policy allows them."""

    def __init__(
        self,
        backend: TaskBackend,
        state_manager: StateManager,
        audit_logger: AuditLogger | None = None,
        event_bus: EventBus | None = None,
        rollback_manager: RollbackManager | None = None,
    ) -> None:
        self.backend = backend
        self.state_manager = state_manager
        self.audit_logger = audit_logger
        self.event_bus = event_bus or EventBus()
        self.rollback_manager = rollback_manager or RollbackManager()

    def refresh(self) -> None:
        """Reload the authoritative snapshot from the backend."""
        self.state_manager.load(self.backend.fetch_tasks())

    def run(self, task_id: int, new_state: TaskState | str) -> TransitionOutcome:
        requested = getattr(new_state, "value", str(new_state))
        before = self.state_manager.snapshot
        task = self.state_manager.get(task_id)
        if task is None:
            return self._reject(task_id, requested, None, f"Task {task_id} not found")

        decision = can_transition_to(task, new_state, build_task_map(before))
        if not decision.approved:
            return self._reject(task_id, requested, decision.reason_code, decision.message)

        target = TaskState(new_state)
        checkpoint_id = self.rollback_manager.create_checkpoint(before)
        propagated = propagate_state_change(task_id, target, before)
        changes = diff_states(before, propagated)
        self.state_manager.publish(propagated)

        try:
            self.backend.submit_state(task_id, target)
        except TaskBackendError as exc:
            restored = self.rollback_manager.rollback(checkpoint_id)
            self.state_manager.publish(restored if restored is not None else before)
            logger.warning("Reverted task %s -> %s: %s", task_id, requested, exc)
            self._audit(task_id, requested, "failed", True, str(exc), changes)
            self.event_bus.emit(
                TRANSITION_REVERTED,
                {"task_id": task_id, "requested_state": requested, "error": str(exc)},
            )
            return TransitionOutcome(
                task_id=task_id,
                requested_state=requested,
                success=False,
                outcome=f"Update failed: {exc}",
            )

        self.rollback_manager.discard(checkpoint_id)
        try:
            self.refresh()
        except TaskGateError as exc:
            # The change is stored; keep the propagated snapshot until the next refresh.
            logger.warning("Refresh after task %s -> %s failed: %s", task_id, requested, exc)
        self._audit(task_id, requested, "applied", True, "", changes)
        for changed_id, (old, new) in changes.items():
            self.event_bus.emit(
                TASK_STATE_CHANGED,
                {"task_id": changed_id, "old_state": old.value, "new_state": new.value},
            )
        self.event_bus.emit(
            TRANSITION_APPLIED,
            {"task_id": task_id, "requested_state": requested, "changed": sorted(changes)},
        )
        cascaded = len(changes) - (1 if task_id in changes else 0)
        logger.info("Task %s -> %s applied (%d cascaded)", task_id, requested, cascaded)
        return TransitionOutcome(
            task_id=task_id,
            requested_state=requested,
            success=True,
            outcome=f"Task {task_id} moved to {requested}",
            changes=changes,
        )

    def _reject(
        self,
        task_id: int,
        requested: str,
        reason_code: ReasonCode | None,
        message: str,
    ) -> TransitionOutcome:
        logger.info("Rejected task %s -> %s: %s", task_id, requested, message)
        reason = reason_code.value if reason_code else "not_found"
        self._audit(task_id, requested, "rejected", False, reason)
        self.event_bus.emit(
            TRANSITION_REJECTED,
            {"task_id": task_id, "requested_state": requested, "reason": reason},
        )
        return TransitionOutcome(
            task_id=task_id,
            requested_state=requested,
            success=False,
            outcome=f"Rejected: {message}",
            reason_code=reason_code,
        )

    def _audit(
        self,
        task_id: int,
        requested: str,
        outcome: str,
        approved: bool,
        reason: str,
        changes: dict[int, tuple[TaskState, TaskState]] | None = None,
    ) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log(
                task_id=task_id,
                requested_state=requested,
                outcome=outcome,
                approved=approved,
                reason=reason,
                cascaded=changes,
            )
