"""Adapters - I/O implementations of ports."""

from .file_preferences import JsonFilePreferences
from .memory_preferences import MemoryPreferences
from .prefs_task_repo import PreferencesTaskRepository, STORAGE_KEY

__all__ = [
    "JsonFilePreferences",
    "MemoryPreferences",
    "PreferencesTaskRepository",
    "STORAGE_KEY",
]
