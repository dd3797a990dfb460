"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .preferences import PreferencesStore

__all__ = [
    "TaskRepository",
    "PreferencesStore",
]
