"""Task repository backed by a key-value preferences store."""

import logging
from typing import Iterable

from todolist.core.tasks import Task, TaskFormatError
from todolist.ports.preferences import PreferencesStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "todos_v3_deadline_priority"


class PreferencesTaskRepository:
    """
    Stores the task collection as a list of JSON strings under one key.

    Implements TaskRepository protocol. No business logic - just I/O and
    (de)serialization.
    """

    def __init__(self, prefs: PreferencesStore, key: str = STORAGE_KEY):
        self.prefs = prefs
        self.key = key

    def load(self) -> list[Task]:
        """Load all tasks, skipping entries that fail to decode."""
        raw = self.prefs.get_string_list(self.key) or []
        tasks = []
        seen_ids: set[str] = set()

        for position, entry in enumerate(raw):
            try:
                task = Task.from_json(entry)
            except TaskFormatError as e:
                logger.warning(f"Skipping stored task #{position}: {e}")
                continue
            if task.id in seen_ids:
                logger.warning(f"Skipping stored task #{position}: duplicate id {task.id}")
                continue
            seen_ids.add(task.id)
            tasks.append(task)

        logger.debug(f"Loaded {len(tasks)} of {len(raw)} stored tasks from {self.key}")
        return tasks

    def save(self, tasks: Iterable[Task]) -> None:
        """Write the entire collection."""
        entries = [t.to_json() for t in tasks]
        self.prefs.set_string_list(self.key, entries)
        logger.debug(f"Saved {len(entries)} tasks to {self.key}")
