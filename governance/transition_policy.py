"""Manual state-change policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from domain.task import Task, TaskMap, TaskState
from planner.readiness import is_actionable


class ReasonCode(str, Enum):
    """Stable rejection reasons for a requested transition."""

    BLOCKED_TARGET = "blocked_target"
    TASK_BLOCKED = "task_blocked"
    NOT_ACTIONABLE = "not_actionable"
    UNKNOWN_STATE = "unknown_state"


REASON_MESSAGES: dict[ReasonCode, str] = {
    ReasonCode.BLOCKED_TARGET: (
        "Cannot manually set a task to blocked state. "
        "Tasks are automatically blocked when their blockers are not done."
    ),
    ReasonCode.TASK_BLOCKED: "Cannot edit a blocked task. Complete its blockers first.",
    ReasonCode.NOT_ACTIONABLE: "Task has incomplete blockers and cannot be modified.",
    ReasonCode.UNKNOWN_STATE: "Requested state is not a known task state.",
}


@dataclass(frozen=True)
class TransitionDecision:
    """Represents approve/reject decision."""

    approved: bool
    reason_code: ReasonCode | None = None

    @property
    def message(self) -> str:
        if self.reason_code is None:
            return "Allowed by policy."
        return REASON_MESSAGES[self.reason_code]


APPROVED = TransitionDecision(True)


def can_transition_to(task: Task, target: TaskState | str, task_map: TaskMap) -> TransitionDecision:
    """Decide whether a caller may move ``task`` to ``target``.

    Advisory only; the caller applies an approved change through
    :func:`planner.propagation.propagate_state_change`.
    """
    try:
        target = TaskState(target)
    except ValueError:
        return TransitionDecision(False, ReasonCode.UNKNOWN_STATE)

    if target == TaskState.BLOCKED:
        return TransitionDecision(False, ReasonCode.BLOCKED_TARGET)
    if task.state == TaskState.BLOCKED:
        return TransitionDecision(False, ReasonCode.TASK_BLOCKED)
    if not is_actionable(task, task_map):
        return TransitionDecision(False, ReasonCode.NOT_ACTIONABLE)
    return APPROVED
