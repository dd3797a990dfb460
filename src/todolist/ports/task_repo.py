"""Task repository interface."""

from typing import Iterable, Protocol

from todolist.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for loading and saving the whole task collection."""

    def load(self) -> list[Task]:
        """Load all stored tasks, in stored order."""
        ...

    def save(self, tasks: Iterable[Task]) -> None:
        """Replace the stored collection with the given tasks."""
        ...
