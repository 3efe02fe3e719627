"""Task lookup, forward dependency edges and cycle detection."""

from __future__ import annotations

from collections.abc import Iterable

from domain.task import DependencyGraph, Task, TaskMap

# DFS colours
_UNVISITED = 0
_IN_PROGRESS = 1
_FINISHED = 2


def build_task_map(tasks: Iterable[Task] | None) -> TaskMap:
    """Index tasks by id. Later duplicates replace earlier ones."""
    task_map: TaskMap = {}
    if not tasks:
        return task_map
    for task in tasks:
        task_map[task.id] = task
    return task_map


def build_dependency_graph(tasks: Iterable[Task] | None) -> DependencyGraph:
    """Map each task id to the ids of tasks that list it as a blocker.

    Every known id gets an entry, possibly empty. Blocker ids that do not
    resolve to a known task contribute no edge.
    """
    graph: DependencyGraph = {}
    if not tasks:
        return graph
    tasks = list(tasks)
    for task in tasks:
        graph[task.id] = []
    for task in tasks:
        for blocker_id in task.blockers:
            if blocker_id in graph:
                graph[blocker_id].append(task.id)
    return graph


def get_downstream_tasks(task_id: int, graph: DependencyGraph) -> list[int]:
    """Return ids directly unblocked by ``task_id``."""
    return graph.get(task_id, [])


def _reaches_grey_node(task_map: TaskMap, colour: dict[int, int], root: int) -> bool:
    """Iterative three-colour DFS over blocker edges starting at ``root``."""
    colour[root] = _IN_PROGRESS
    path = [root]
    stack = [iter(task_map[root].blockers)]
    while stack:
        blocker_id = next(stack[-1], None)
        if blocker_id is None:
            stack.pop()
            colour[path.pop()] = _FINISHED
            continue
        state = colour.get(blocker_id, _UNVISITED)
        if state == _IN_PROGRESS:
            return True
        if state == _FINISHED:
            continue
        blocker = task_map.get(blocker_id)
        if blocker is None:
            # Dangling reference: a leaf with no outgoing edges.
            colour[blocker_id] = _FINISHED
            continue
        colour[blocker_id] = _IN_PROGRESS
        path.append(blocker_id)
        stack.append(iter(blocker.blockers))
    return False


def has_cycle(tasks: Iterable[Task] | None) -> bool:
    """Return True when the blocker relation contains a directed cycle."""
    if not tasks:
        return False
    tasks = list(tasks)
    task_map = build_task_map(tasks)
    colour: dict[int, int] = {}
    for task in tasks:
        if colour.get(task.id, _UNVISITED) != _UNVISITED:
            continue
        if _reaches_grey_node(task_map, colour, task.id):
            return True
    return False


def find_cycle_members(tasks: Iterable[Task] | None) -> set[int]:
    """Return ids of tasks lying on at least one blocker cycle.

    Each strongly connected component with more than one node, or with a
    self-loop, is a cycle region; all of its members are reported.
    """
    if not tasks:
        return set()
    task_map = build_task_map(tasks)

    index_of: dict[int, int] = {}
    low: dict[int, int] = {}
    on_stack: set[int] = set()
    scc_stack: list[int] = []
    members: set[int] = set()
    counter = 0

    for root in task_map:
        if root in index_of:
            continue
        index_of[root] = low[root] = counter
        counter += 1
        scc_stack.append(root)
        on_stack.add(root)
        work = [(root, iter(task_map[root].blockers))]
        while work:
            node, edges = work[-1]
            advanced = False
            for nxt in edges:
                if nxt not in task_map:
                    continue
                if nxt not in index_of:
                    index_of[nxt] = low[nxt] = counter
                    counter += 1
                    scc_stack.append(nxt)
                    on_stack.add(nxt)
                    work.append((nxt, iter(task_map[nxt].blockers)))
                    advanced = True
                    break
                if nxt in on_stack:
                    low[node] = min(low[node], index_of[nxt])
            if advanced:
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] == index_of[node]:
                component = []
                while True:
                    member = scc_stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                if len(component) > 1 or node in task_map[node].blockers:
                    members.update(component)
    return members


def collect_downstream(task_id: int, graph: DependencyGraph) -> list[int]:
    """Return every id transitively downstream of ``task_id``, nearest first."""
    seen = {task_id}
    order: list[int] = []
    frontier = [task_id]
    while frontier:
        next_frontier: list[int] = []
        for current in frontier:
            for downstream_id in get_downstream_tasks(current, graph):
                if downstream_id not in seen:
                    seen.add(downstream_id)
                    order.append(downstream_id)
                    next_frontier.append(downstream_id)
        frontier = next_frontier
    return order
