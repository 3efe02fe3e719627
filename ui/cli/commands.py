"""Typer command handlers."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from core.errors import TaskGateError
from core.orchestrator import Orchestrator, RuntimeBundle
from domain.task import Task, TaskState
from governance.consistency import inspect_ingestion
from memory.task_repository import TaskRepository
from planner.dependency_graph import build_dependency_graph, build_task_map, collect_downstream
from planner.readiness import is_actionable

_ROOT: Path | None = None


def set_root(root: Path | None) -> None:
    global _ROOT
    _ROOT = root


def _runtime() -> RuntimeBundle:
    return Orchestrator(root=_ROOT).build()


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _repository(bundle: RuntimeBundle) -> TaskRepository:
    if not isinstance(bundle.backend, TaskRepository):
        _fail("This command needs the local sql backend.")
    return bundle.backend


def _format_task(task: Task, actionable: bool) -> str:
    marker = "*" if actionable and task.state != TaskState.DONE else " "
    line = f"{marker} {task.id}. [{task.state.value}] {task.title}"
    if task.blockers:
        line += f" (blocked by: {', '.join(str(bid) for bid in task.blockers)})"
    return line


def tasks_list(state: TaskState | None = None, as_json: bool = False) -> None:
    """List tasks from the current snapshot."""
    bundle = _runtime()
    try:
        bundle.runner.refresh()
    except TaskGateError as exc:
        _fail(str(exc))
    tasks = list(bundle.state.snapshot)
    task_map = build_task_map(tasks)
    if state is not None:
        tasks = [task for task in tasks if task.state == state]

    if as_json:
        typer.echo(json.dumps([task.model_dump(mode="json") for task in tasks], indent=2))
        return
    if not tasks:
        typer.echo("(no tasks)")
        return
    for task in tasks:
        typer.echo(_format_task(task, is_actionable(task, task_map)))


def tasks_add(title: str, description: str, blockers: list[int]) -> None:
    """Create a task in the local store."""
    bundle = _runtime()
    repo = _repository(bundle)
    try:
        task = repo.add_task(title=title, description=description, blockers=blockers)
    except TaskGateError as exc:
        _fail(str(exc))
    typer.echo(f"Added task {task.id} [{task.state.value}]: {task.title}")


def tasks_set_state(task_id: int, state: TaskState) -> None:
    """Request a manual state change and report the cascade."""
    bundle = _runtime()
    try:
        bundle.runner.refresh()
    except TaskGateError as exc:
        _fail(str(exc))
    result = bundle.runner.run(task_id, state)
    if not result.success:
        code = f" ({result.reason_code.value})" if result.reason_code else ""
        _fail(f"{result.outcome}{code}")
    typer.echo(result.outcome)
    for changed_id, (old, new) in sorted(result.changes.items()):
        if changed_id != task_id:
            typer.echo(f"  task {changed_id}: {old.value} -> {new.value}")


def tasks_set_blockers(task_id: int, blockers: list[int]) -> None:
    """Replace the blockers of a task in the local store."""
    bundle = _runtime()
    repo = _repository(bundle)
    try:
        task = repo.set_blockers(task_id, blockers)
    except TaskGateError as exc:
        _fail(str(exc))
    typer.echo(f"Task {task.id} [{task.state.value}] now blocked by: {list(task.blockers) or 'nothing'}")


def tasks_remove(task_id: int) -> None:
    """Delete a task from the local store."""
    bundle = _runtime()
    repo = _repository(bundle)
    try:
        changed = repo.delete_task(task_id)
    except TaskGateError as exc:
        _fail(str(exc))
    typer.echo(f"Task {task_id} removed.")
    if changed:
        typer.echo(f"Re-derived tasks: {', '.join(str(tid) for tid in changed)}")


def graph_check() -> None:
    """Report consistency and structural findings without loading the snapshot."""
    bundle = _runtime()
    try:
        tasks = bundle.backend.fetch_tasks()
    except TaskGateError as exc:
        _fail(str(exc))
    report = inspect_ingestion(tasks)
    if report.valid:
        typer.echo(f"OK: {len(tasks)} tasks, no findings.")
        return
    for finding in report.findings:
        typer.echo(f"[{finding.kind.value}] {finding.message}")
    raise typer.Exit(code=1)


def graph_downstream(task_id: int) -> None:
    """Show every task transitively downstream of a task."""
    bundle = _runtime()
    try:
        tasks = bundle.backend.fetch_tasks()
    except TaskGateError as exc:
        _fail(str(exc))
    task_map = build_task_map(tasks)
    if task_id not in task_map:
        _fail(f"Task {task_id} not found.")
    downstream = collect_downstream(task_id, build_dependency_graph(tasks))
    if not downstream:
        typer.echo(f"Nothing depends on task {task_id}.")
        return
    for downstream_id in downstream:
        task = task_map[downstream_id]
        typer.echo(f"{task.id}. [{task.state.value}] {task.title}")


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))
