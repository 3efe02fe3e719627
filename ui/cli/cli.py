"""CLI entrypoint for taskgate."""

from __future__ import annotations

from pathlib import Path

import typer

from domain.task import TaskState
from ui.cli import commands

app = typer.Typer(help="Dependency-aware task state manager")
tasks_app = typer.Typer(help="Task commands")
graph_app = typer.Typer(help="Dependency graph commands")
config_app = typer.Typer(help="Configuration commands")


@app.callback()
def main_callback(
    root: Path = typer.Option(
        None,
        "--root",
        envvar="TASKGATE_ROOT",
        help="Project root holding config/ (defaults to the install directory)",
    ),
) -> None:
    """Dependency-aware task state manager."""
    commands.set_root(root)


@tasks_app.command("list")
def tasks_list_cmd(
    state: TaskState = typer.Option(None, "--state", help="Only show tasks in this state"),
    as_json: bool = typer.Option(False, "--json", help="Print tasks as JSON"),
) -> None:
    """List tasks; '*' marks actionable tasks."""
    commands.tasks_list(state=state, as_json=as_json)


@tasks_app.command("add")
def tasks_add_cmd(
    title: str = typer.Argument(..., help="Task title"),
    description: str = typer.Option("", help="Task description"),
    blocker: list[int] = typer.Option([], "--blocker", "-b", help="Id of a blocking task (repeatable)"),
) -> None:
    """Add a task."""
    commands.tasks_add(title=title, description=description, blockers=blocker)


@tasks_app.command("set-state")
def tasks_set_state_cmd(
    task_id: int = typer.Argument(..., help="Task id"),
    state: TaskState = typer.Argument(..., help="Target state"),
) -> None:
    """Change a task's state and cascade to its dependents."""
    commands.tasks_set_state(task_id=task_id, state=state)


@tasks_app.command("set-blockers")
def tasks_set_blockers_cmd(
    task_id: int = typer.Argument(..., help="Task id"),
    blockers: list[int] = typer.Argument(None, help="Blocking task ids (none clears them)"),
) -> None:
    """Replace a task's blockers."""
    commands.tasks_set_blockers(task_id=task_id, blockers=blockers or [])


@tasks_app.command("remove")
def tasks_remove_cmd(task_id: int = typer.Argument(..., help="Task id")) -> None:
    """Remove a task."""
    commands.tasks_remove(task_id=task_id)


@graph_app.command("check")
def graph_check_cmd() -> None:
    """Check the task graph for cycles and consistency defects."""
    commands.graph_check()


@graph_app.command("downstream")
def graph_downstream_cmd(task_id: int = typer.Argument(..., help="Task id")) -> None:
    """List tasks that transitively depend on a task."""
    commands.graph_downstream(task_id=task_id)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(tasks_app, name="tasks")
app.add_typer(graph_app, name="graph")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
