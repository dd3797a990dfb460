"""Task store - authoritative in-memory task list plus session state.

Mutations update the list synchronously, notify observers, then write the
full collection through the repository. Write failures are logged and never
raised; the in-memory list stays authoritative for the running session.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .core.projection import TaskFilter, project, remaining
from .core.tasks import Priority, Task
from .ports.task_repo import TaskRepository

logger = logging.getLogger(__name__)

Observer = Callable[["TaskStore"], None]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an edit argument that was not passed, as opposed to an explicit None
UNSET = _Unset()


@dataclass(frozen=True)
class DeletedTask:
    """Undo record: the removed task and where it sat."""

    task: Task
    index: int


class TaskStore:
    """
    Owns the task list, the search/filter session state and the undo buffer.

    Mutating operations are coroutines because they await the persistence
    write. They are serialized by a lock, so at most one is in flight.
    """

    def __init__(
        self,
        repository: TaskRepository,
        clock: Callable[[], datetime] = datetime.now,
        rng: random.Random | None = None,
    ):
        self._repo = repository
        self._clock = clock
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._observers: list[Observer] = []

        self._items: list[Task] = []
        self._query = ""
        self._filter = TaskFilter.ALL
        self._last_deleted: DeletedTask | None = None

    # ============== Reads ==============

    @property
    def items(self) -> list[Task]:
        """The displayed list, recomputed from current state on every read."""
        return project(self._items, self._query, self._filter, self._clock())

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Full collection in insertion/load order."""
        return tuple(self._items)

    @property
    def remaining(self) -> int:
        return remaining(self._items)

    @property
    def query(self) -> str:
        return self._query

    @property
    def filter(self) -> TaskFilter:
        return self._filter

    @property
    def can_undo(self) -> bool:
        return self._last_deleted is not None

    @property
    def last_deleted(self) -> DeletedTask | None:
        return self._last_deleted

    def get(self, task_id: str) -> Task | None:
        idx = self._index_of(task_id)
        return self._items[idx] if idx is not None else None

    # ============== Observers ==============

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer. Returns a function that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception:
                logger.exception(f"Observer {observer!r} failed")

    # ============== Persistence ==============

    async def load(self) -> None:
        """Replace the list with whatever the repository holds."""
        async with self._lock:
            try:
                loaded = await asyncio.to_thread(self._repo.load)
            except Exception:
                logger.exception("Failed to load tasks; starting empty")
                loaded = []
            self._items = list(loaded)
            logger.info(f"Loaded {len(self._items)} tasks")
            self._notify()

    async def _persist(self) -> None:
        snapshot = tuple(self._items)
        try:
            await asyncio.to_thread(self._repo.save, snapshot)
        except Exception:
            logger.exception(f"Failed to save {len(snapshot)} tasks")

    async def _commit(self) -> None:
        self._notify()
        await self._persist()

    # ============== Mutations ==============

    def _index_of(self, task_id: str) -> int | None:
        for idx, task in enumerate(self._items):
            if task.id == task_id:
                return idx
        return None

    def _new_id(self) -> str:
        """Clock millis plus a random suffix, retried on the rare clash."""
        existing = {t.id for t in self._items}
        while True:
            millis = int(self._clock().timestamp() * 1000)
            candidate = f"{millis}-{self._rng.randrange(100000)}"
            if candidate not in existing:
                return candidate

    async def add(
        self,
        title: str,
        deadline: datetime | None = None,
        priority: Priority = Priority.MEDIUM,
    ) -> Task | None:
        """Append a new task. Blank titles are ignored."""
        clean = title.strip()
        if not clean:
            logger.debug("Ignoring add with blank title")
            return None

        async with self._lock:
            task = Task(
                id=self._new_id(),
                title=clean,
                created_at=self._clock(),
                deadline=deadline,
                priority=priority,
            )
            self._items.append(task)
            logger.debug(f"Added task {task.id}")
            await self._commit()
            return task

    async def toggle(self, task_id: str) -> None:
        async with self._lock:
            idx = self._index_of(task_id)
            if idx is None:
                logger.debug(f"Ignoring toggle of unknown task {task_id}")
                return
            task = self._items[idx]
            self._items[idx] = task.with_changes(is_done=not task.is_done)
            await self._commit()

    async def edit(
        self,
        task_id: str,
        title: str,
        deadline: datetime | None | _Unset = UNSET,
        priority: Priority | None = None,
    ) -> None:
        """
        Replace title, deadline and priority of a task.

        Omitted deadline/priority keep their current values; deadline=None
        clears the deadline. id, created_at and is_done are preserved.
        """
        clean = title.strip()
        if not clean:
            logger.debug("Ignoring edit with blank title")
            return

        async with self._lock:
            idx = self._index_of(task_id)
            if idx is None:
                logger.debug(f"Ignoring edit of unknown task {task_id}")
                return

            changes: dict = {"title": clean}
            if deadline is not UNSET:
                changes["deadline"] = deadline
            if priority is not None:
                changes["priority"] = priority
            self._items[idx] = self._items[idx].with_changes(**changes)
            await self._commit()

    async def remove(self, task_id: str) -> None:
        """Delete a task, keeping it as the single undo record."""
        async with self._lock:
            idx = self._index_of(task_id)
            if idx is None:
                logger.debug(f"Ignoring remove of unknown task {task_id}")
                return
            self._last_deleted = DeletedTask(task=self._items.pop(idx), index=idx)
            await self._commit()

    async def undo_delete(self) -> None:
        """Put the last removed task back, clamped to the current length."""
        async with self._lock:
            record = self._last_deleted
            if record is None:
                return
            self._items.insert(min(record.index, len(self._items)), record.task)
            self._last_deleted = None
            await self._commit()

    async def clear_completed(self) -> int:
        """Remove every done task. Not undoable."""
        async with self._lock:
            before = len(self._items)
            self._items = [t for t in self._items if not t.is_done]
            removed = before - len(self._items)
            logger.debug(f"Cleared {removed} completed tasks")
            await self._commit()
            return removed

    # ============== Session state ==============

    def set_query(self, text: str) -> None:
        self._query = text.lower()
        self._notify()

    def set_filter(self, value: TaskFilter | str) -> None:
        self._filter = TaskFilter(value)
        self._notify()
