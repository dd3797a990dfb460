"""Functional core - pure business logic with no I/O."""

from .tasks import Task, Priority, TaskFormatError
from .projection import TaskFilter, project, remaining, sort_for_display
from .format import deadline_label, format_task_line, friendly_time, priority_label

__all__ = [
    # Tasks
    "Task",
    "Priority",
    "TaskFormatError",
    # Projection
    "TaskFilter",
    "project",
    "remaining",
    "sort_for_display",
    # Formatting
    "deadline_label",
    "format_task_line",
    "friendly_time",
    "priority_label",
]
