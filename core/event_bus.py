"""In-process event bus for task state notifications."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

TRANSITION_REJECTED = "transition_rejected"
TRANSITION_APPLIED = "transition_applied"
TRANSITION_REVERTED = "transition_reverted"
TASK_STATE_CHANGED = "task_state_changed"
SNAPSHOT_PUBLISHED = "snapshot_published"


class EventBus:
    """Dispatches events to subscribers by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a callback for an event."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event to all subscribers."""
        for handler in list(self._handlers.get(event_name, [])):
            handler(payload)
