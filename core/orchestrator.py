"""Top-level application wiring."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from client.backend_factory import build_backend
from client.base_backend import TaskBackend
from core.event_bus import EventBus
from core.logging_setup import configure_from_config
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.state_manager import StateManager
from executor.transition_runner import TransitionRunner
from governance.audit_logger import AuditLogger


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    backend: TaskBackend
    state: StateManager
    runner: TransitionRunner
    audit: AuditLogger
    event_bus: EventBus


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        configure_from_config(self.root, config)
        paths = ensure_runtime_dirs(self.root, config)

        event_bus = EventBus()
        backend = build_backend(config, paths["db_path"])
        state = StateManager(ingestion=config.get("ingestion", {}), event_bus=event_bus)
        audit = AuditLogger(paths["audit_log_path"])
        runner = TransitionRunner(
            backend=backend,
            state_manager=state,
            audit_logger=audit,
            event_bus=event_bus,
        )
        return RuntimeBundle(
            config=config,
            backend=backend,
            state=state,
            runner=runner,
            audit=audit,
            event_bus=event_bus,
        )
