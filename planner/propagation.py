"""Cascading BLOCKED/unblocked propagation after a state change.

The cascade is a single depth-first pass from the changed task along
forward edges ("who lists me as a blocker"):

* a downstream task that should be blocked but is not becomes BLOCKED;
* a BLOCKED downstream task with no remaining non-DONE blocker becomes TODO;
* a task whose stored state already matches its readiness ends the branch.

Only tasks whose state changed are entered, and each task is entered at
most once per call. A task reached again is re-evaluated in place but
not entered a second time. That visited set is what guarantees termination, so
the result is only guaranteed consistent when the blocker relation is a
DAG; check ingested data with :func:`planner.dependency_graph.has_cycle`.

Inputs are never mutated: changed tasks are replaced by new records in a
fresh list that is returned to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from domain.task import DependencyGraph, Task, TaskMap, TaskState
from planner.dependency_graph import build_dependency_graph, build_task_map, get_downstream_tasks
from planner.readiness import is_blocked

logger = logging.getLogger("taskgate.propagation")


def _cascade_target(task: Task, task_map: TaskMap) -> TaskState | None:
    """Return the automatic state for ``task``, or None when it is consistent."""
    should_block = is_blocked(task, task_map)
    if should_block and task.state != TaskState.BLOCKED:
        return TaskState.BLOCKED
    if not should_block and task.state == TaskState.BLOCKED:
        return TaskState.TODO
    return None


def propagate_state_change(
    task_id: int,
    new_state: TaskState,
    tasks: Iterable[Task] | None,
) -> list[Task]:
    """Set ``task_id`` to ``new_state`` and cascade through its dependents.

    Returns the complete task list, changed and unchanged tasks in input
    order. An unknown ``task_id`` returns the input tasks unchanged.
    """
    original = list(tasks or [])
    positions: dict[int, int] = {}
    for index, task in enumerate(original):
        positions[task.id] = index
    if task_id not in positions:
        return original

    # Topology comes from the input set; only states move during the cascade.
    graph = build_dependency_graph(original)

    working = list(original)
    start = positions[task_id]
    working[start] = working[start].with_state(new_state)
    task_map = build_task_map(working)

    visited: set[int] = set()
    _cascade(task_id, graph, task_map, working, positions, visited)
    return working


def _cascade(
    start_id: int,
    graph: DependencyGraph,
    task_map: TaskMap,
    working: list[Task],
    positions: dict[int, int],
    visited: set[int],
) -> None:
    # Explicit stack of neighbour iterators; same visiting order as recursion.
    # Already visited neighbours are re-evaluated but never re-entered. The
    # start task keeps the requested state.
    visited.add(start_id)
    stack: list[Iterator[int]] = [iter(get_downstream_tasks(start_id, graph))]
    while stack:
        downstream_id = next(stack[-1], None)
        if downstream_id is None:
            stack.pop()
            continue
        if downstream_id == start_id:
            continue
        downstream = task_map.get(downstream_id)
        if downstream is None:
            continue
        target = _cascade_target(downstream, task_map)
        if target is None:
            continue

        replacement = downstream.with_state(target)
        working[positions[downstream_id]] = replacement
        task_map[downstream_id] = replacement
        logger.debug(
            "Task %s: %s -> %s (cascade from %s)",
            downstream_id,
            downstream.state.value,
            target.value,
            start_id,
        )

        if downstream_id in visited:
            continue
        visited.add(downstream_id)
        stack.append(iter(get_downstream_tasks(downstream_id, graph)))


def diff_states(
    before: Iterable[Task] | None,
    after: Iterable[Task] | None,
) -> dict[int, tuple[TaskState, TaskState]]:
    """Return ``{id: (old_state, new_state)}`` for tasks whose state differs."""
    previous = build_task_map(before)
    changes: dict[int, tuple[TaskState, TaskState]] = {}
    for task in after or []:
        old = previous.get(task.id)
        if old is not None and old.state != task.state:
            changes[task.id] = (old.state, task.state)
    return changes
