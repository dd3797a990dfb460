"""Wiring between config, adapters and the task store."""

import logging
from pathlib import Path

from .adapters.file_preferences import JsonFilePreferences
from .adapters.prefs_task_repo import PreferencesTaskRepository
from .config import Config
from .store import TaskStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: Config, debug: bool = False) -> None:
    logging.basicConfig(
        format=LOG_FORMAT,
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )


def get_repository(config: Config) -> PreferencesTaskRepository:
    """Resolve the task repository from config."""
    prefs = JsonFilePreferences(Path(config.data_file).expanduser())
    return PreferencesTaskRepository(prefs, key=config.storage_key)


async def open_store(config: Config) -> TaskStore:
    """Build a store for the configured data file and load it."""
    store = TaskStore(get_repository(config))
    store.set_filter(config.task_filter)
    await store.load()
    return store
