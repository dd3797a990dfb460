"""Pure projection logic: search, filter and display order - no I/O."""

from datetime import datetime
from enum import Enum
from typing import Iterable

from .tasks import Task


class TaskFilter(Enum):
    """Which completion states to show."""

    ALL = "all"
    ACTIVE = "active"
    DONE = "done"

    def matches(self, task: Task) -> bool:
        if self is TaskFilter.ACTIVE:
            return not task.is_done
        if self is TaskFilter.DONE:
            return task.is_done
        return True


def matches_query(task: Task, query: str) -> bool:
    """Case-insensitive substring match on the title. Empty query matches all."""
    if not query:
        return True
    return query.lower() in task.title.lower()


def sort_for_display(tasks: Iterable[Task], as_of: datetime | None = None) -> list[Task]:
    """
    Sort tasks into display order.

    First pass: incomplete before done, then tasks with a deadline before
    those without, earliest deadline, highest priority, oldest created.
    Second pass (stable): overdue incomplete tasks move ahead of the other
    incomplete tasks, keeping first-pass order inside each group.

    Pure function - no I/O.
    """
    as_of = as_of or datetime.now()

    def sort_key(t: Task) -> tuple:
        # (has no deadline, deadline) keeps None out of datetime comparisons
        deadline_key = (0, t.deadline) if t.deadline is not None else (1, datetime.min)
        return (t.is_done, deadline_key, -t.priority.rank, t.created_at)

    ordered = sorted(tasks, key=sort_key)

    # Done tasks all compare equal here, so they keep their place at the end
    return sorted(ordered, key=lambda t: (t.is_done, not t.is_done and not t.is_overdue(as_of)))


def project(
    tasks: Iterable[Task],
    query: str = "",
    task_filter: TaskFilter = TaskFilter.ALL,
    as_of: datetime | None = None,
) -> list[Task]:
    """
    Derive the displayed list from the full collection.

    Applies the search query, then the completion filter, then display order.
    Recomputed on every call - nothing is cached.
    """
    visible = [t for t in tasks if matches_query(t, query) and task_filter.matches(t)]
    return sort_for_display(visible, as_of)


def remaining(tasks: Iterable[Task]) -> int:
    """Count of incomplete tasks, ignoring any query or filter."""
    return sum(1 for t in tasks if not t.is_done)


def filter_overdue(tasks: Iterable[Task], as_of: datetime | None = None) -> list[Task]:
    """Filter to overdue tasks only."""
    as_of = as_of or datetime.now()
    return [t for t in tasks if t.is_overdue(as_of)]
