"""SQLite-backed task store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from client.base_backend import TaskBackend
from core.errors import TaskBackendError, TaskNotFoundError
from domain.task import Task, TaskState
from memory.schemas import Base, TaskRecord, utc_now
from planner.dependency_graph import build_dependency_graph, build_task_map, has_cycle
from planner.propagation import diff_states, propagate_state_change
from planner.readiness import derive_state

logger = logging.getLogger("taskgate.repository")


def _requested_state(state: TaskState | str) -> TaskState:
    # BLOCKED is only ever derived from blockers.
    state = TaskState(state)
    if state == TaskState.BLOCKED:
        raise TaskBackendError("BLOCKED cannot be requested directly", status_code=422)
    return state


class TaskRepository(TaskBackend):
    """Persists tasks and applies the cascade for every stored state change."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        self._session_factory = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """One unit of work: a read, its cascade and the writes commit together."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def fetch_tasks(self) -> list[Task]:
        return self.list_tasks()

    def list_tasks(self, state: TaskState | None = None) -> list[Task]:
        """List tasks ordered by id, optionally filtered by state."""
        with self._session() as sess:
            query = sess.query(TaskRecord)
            if state is not None:
                query = query.filter(TaskRecord.state == TaskState(state).value)
            rows = query.order_by(TaskRecord.id).all()
            if state is None:
                return self._with_dependents(rows)
            return [self._record_to_task(row) for row in rows]

    def get_task(self, task_id: int) -> Task:
        with self._session() as sess:
            row = sess.get(TaskRecord, task_id)
            if row is None:
                raise TaskNotFoundError(task_id)
            return self._record_to_task(row)

    def add_task(
        self,
        title: str,
        description: str = "",
        blockers: Iterable[int] = (),
        state: TaskState = TaskState.TODO,
        due_date: datetime | None = None,
    ) -> Task:
        """Insert a task; its stored state is derived from its blockers."""
        blockers = list(dict.fromkeys(blockers))
        state = _requested_state(state)
        with self._session() as sess:
            task_map = build_task_map(self._record_to_task(row) for row in sess.query(TaskRecord).all())
            unknown = [bid for bid in blockers if bid not in task_map]
            if unknown:
                raise TaskBackendError(f"Unknown blocker id(s): {unknown}", status_code=422)
            draft = Task(id=0, title=title, state=state, blockers=tuple(blockers))
            record = TaskRecord(
                title=title,
                description=description,
                state=derive_state(draft, task_map).value,
                blockers=blockers,
                due_date=due_date,
            )
            sess.add(record)
            sess.flush()
            task = self._record_to_task(record)
        logger.info("Added task %s (%s)", task.id, task.state.value)
        return task

    def submit_state(self, task_id: int, state: TaskState) -> Task:
        """Store ``state`` for ``task_id`` together with its cascade."""
        state = _requested_state(state)
        with self._session() as sess:
            rows = {row.id: row for row in sess.query(TaskRecord).all()}
            if task_id not in rows:
                raise TaskNotFoundError(task_id)
            before = [self._record_to_task(row) for row in rows.values()]
            after = propagate_state_change(task_id, state, before)
            self._write_states(rows, diff_states(before, after))
            sess.flush()
            return self._record_to_task(rows[task_id])

    def set_blockers(self, task_id: int, blockers: Iterable[int]) -> Task:
        """Replace a task's blockers, refusing edits that would create a cycle."""
        blockers = list(dict.fromkeys(blockers))
        with self._session() as sess:
            rows = {row.id: row for row in sess.query(TaskRecord).all()}
            if task_id not in rows:
                raise TaskNotFoundError(task_id)
            unknown = [bid for bid in blockers if bid not in rows]
            if unknown:
                raise TaskBackendError(f"Unknown blocker id(s): {unknown}", status_code=422)

            before = [self._record_to_task(row) for row in rows.values()]
            edited = [
                task.model_copy(update={"blockers": tuple(blockers)}) if task.id == task_id else task
                for task in before
            ]
            if has_cycle(edited):
                raise TaskBackendError(
                    f"Blockers {blockers} for task {task_id} would create a cycle", status_code=422
                )
            task_map = build_task_map(edited)
            after = propagate_state_change(task_id, derive_state(task_map[task_id], task_map), edited)
            rows[task_id].blockers = blockers
            self._write_states(rows, diff_states(before, after))
            sess.flush()
            return self._record_to_task(rows[task_id])

    def delete_task(self, task_id: int) -> list[int]:
        """Delete a task, drop it from other blocker lists and re-derive them.

        Returns the ids of tasks whose state changed as a result.
        """
        with self._session() as sess:
            rows = {row.id: row for row in sess.query(TaskRecord).all()}
            if task_id not in rows:
                raise TaskNotFoundError(task_id)
            before = [self._record_to_task(row) for row in rows.values()]
            dependents = build_dependency_graph(before)[task_id]

            sess.delete(rows.pop(task_id))
            after = [task for task in before if task.id != task_id]
            for dependent_id in dependents:
                rows[dependent_id].blockers = [bid for bid in rows[dependent_id].blockers if bid != task_id]
            after = [
                task.model_copy(update={"blockers": tuple(rows[task.id].blockers)})
                if task.id in dependents
                else task
                for task in after
            ]
            for dependent_id in dependents:
                task_map = build_task_map(after)
                after = propagate_state_change(
                    dependent_id, derive_state(task_map[dependent_id], task_map), after
                )
            changes = diff_states(before, after)
            self._write_states(rows, changes)
        logger.info("Deleted task %s", task_id)
        return sorted(changes)

    @staticmethod
    def _write_states(rows: dict[int, TaskRecord], changes: dict[int, tuple[TaskState, TaskState]]) -> None:
        now = utc_now()
        for changed_id, (old, new) in changes.items():
            row = rows[changed_id]
            row.state = new.value
            if new == TaskState.DONE:
                row.completed_at = now
            elif old == TaskState.DONE:
                row.completed_at = None
            logger.debug("Stored task %s: %s -> %s", changed_id, old.value, new.value)

    def _with_dependents(self, rows: list[TaskRecord]) -> list[Task]:
        tasks = [self._record_to_task(row) for row in rows]
        graph = build_dependency_graph(tasks)
        return [task.model_copy(update={"dependents": tuple(graph[task.id])}) for task in tasks]

    @staticmethod
    def _record_to_task(row: TaskRecord) -> Task:
        return Task(
            id=row.id,
            title=row.title,
            description=row.description or "",
            state=TaskState(row.state),
            blockers=tuple(row.blockers or []),
            due_date=row.due_date,
            completed_at=row.completed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
