"""Task backend factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from client.base_backend import TaskBackend
from client.task_api import TaskApiClient
from memory.task_repository import TaskRepository


def build_backend(config: dict[str, Any], db_path: Path) -> TaskBackend:
    """Build the configured backend, defaulting to the local SQLite store."""
    backend_cfg = config.get("backend", {})
    backend_type = str(backend_cfg.get("type", "sql")).lower()

    if backend_type == "http":
        return TaskApiClient(
            base_url=str(backend_cfg.get("base_url", "http://localhost:8000")),
            timeout=float(backend_cfg.get("timeout_seconds", 10)),
        )
    if backend_type != "sql":
        raise ValueError(f"Unknown backend type: {backend_type!r}")
    return TaskRepository(db_path)
