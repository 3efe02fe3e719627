"""Data consistency checks over a task collection.

Nothing here raises or blocks; every problem is returned as a
:class:`Finding`. Callers decide whether a finding rejects a snapshot
(see ``core.state_manager``).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from domain.task import Task, TaskState
from planner.dependency_graph import build_dependency_graph, build_task_map, find_cycle_members


class FindingKind(str, Enum):
    UNRESOLVED_BLOCKER = "unresolved_blocker"
    DONE_WITH_OPEN_BLOCKERS = "done_with_open_blockers"
    STALE_DEPENDENTS = "stale_dependents"
    SELF_BLOCKER = "self_blocker"
    DUPLICATE_ID = "duplicate_id"
    CYCLE = "cycle"


@dataclass(frozen=True)
class Finding:
    """One consistency defect."""

    kind: FindingKind
    task_id: int
    related_ids: tuple[int, ...] = ()
    message: str = ""


@dataclass
class ConsistencyReport:
    findings: list[Finding] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.findings

    def of_kind(self, kind: FindingKind) -> list[Finding]:
        return [finding for finding in self.findings if finding.kind == kind]

    def kinds(self) -> set[FindingKind]:
        return {finding.kind for finding in self.findings}


def check_consistency(tasks: Iterable[Task] | None) -> ConsistencyReport:
    """Report referential and DONE-state defects.

    Covers blocker ids with no matching task, DONE tasks with a non-DONE
    blocker, and stored ``dependents`` caches that disagree with the
    edges rebuilt from ``blockers``.
    """
    tasks = list(tasks or [])
    task_map = build_task_map(tasks)
    graph = build_dependency_graph(tasks)
    report = ConsistencyReport()

    for task in tasks:
        missing = tuple(bid for bid in task.blockers if bid not in task_map)
        if missing:
            report.findings.append(
                Finding(
                    FindingKind.UNRESOLVED_BLOCKER,
                    task.id,
                    missing,
                    f"Task {task.id} depends on non-existent task(s) "
                    f"{', '.join(str(bid) for bid in missing)}",
                )
            )

        if task.state == TaskState.DONE:
            open_blockers = tuple(
                bid
                for bid in task.blockers
                if bid in task_map and task_map[bid].state != TaskState.DONE
            )
            if open_blockers:
                report.findings.append(
                    Finding(
                        FindingKind.DONE_WITH_OPEN_BLOCKERS,
                        task.id,
                        open_blockers,
                        f"Task {task.id} is marked as done but has incomplete blockers: "
                        f"{', '.join(str(bid) for bid in open_blockers)}",
                    )
                )

        expected = graph.get(task.id, [])
        if task.dependents and sorted(set(task.dependents)) != sorted(set(expected)):
            report.findings.append(
                Finding(
                    FindingKind.STALE_DEPENDENTS,
                    task.id,
                    tuple(expected),
                    f"Task {task.id} stores dependents {list(task.dependents)} "
                    f"but blockers imply {expected}",
                )
            )

    return report


def inspect_ingestion(tasks: Iterable[Task] | None) -> ConsistencyReport:
    """Run :func:`check_consistency` plus the structural ingestion checks.

    Adds self-referencing blockers, duplicate ids and cycle membership.
    """
    tasks = list(tasks or [])
    report = check_consistency(tasks)

    for task in tasks:
        if task.id in task.blockers:
            report.findings.append(
                Finding(FindingKind.SELF_BLOCKER, task.id, (task.id,), f"Task {task.id} lists itself as a blocker")
            )

    counts = Counter(task.id for task in tasks)
    for task_id, count in sorted(counts.items()):
        if count > 1:
            report.findings.append(
                Finding(
                    FindingKind.DUPLICATE_ID,
                    task_id,
                    message=f"Task id {task_id} appears {count} times; the last record wins",
                )
            )

    members = sorted(find_cycle_members(tasks))
    for task_id in members:
        report.findings.append(
            Finding(
                FindingKind.CYCLE,
                task_id,
                tuple(members),
                f"Task {task_id} is part of a blocker cycle",
            )
        )
    return report
