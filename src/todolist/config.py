"""Configuration management for todolist."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .adapters.prefs_task_repo import STORAGE_KEY
from .core.projection import TaskFilter
from .core.tasks import Priority

logger = logging.getLogger(__name__)

TODOLIST_HOME = Path(os.environ.get("TODOLIST_HOME", Path.home() / "todolist"))
CONFIG_FILE = TODOLIST_HOME / "config" / "todolist.conf"
DATA_DIR = TODOLIST_HOME / "data"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """todolist configuration."""

    data_file: str = str(DATA_DIR / "preferences.json")
    storage_key: str = STORAGE_KEY
    default_priority: str = Priority.MEDIUM.value
    default_filter: str = TaskFilter.ALL.value
    log_level: str = "WARNING"

    @property
    def priority(self) -> Priority:
        return Priority(self.default_priority)

    @property
    def task_filter(self) -> TaskFilter:
        return TaskFilter(self.default_filter)


def _unquote(value: str) -> str:
    """Strip surrounding quotes, or an inline comment from unquoted values."""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from todolist.conf, then apply env overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "data_file":
                    config.data_file = value
                case "storage_key":
                    if value:
                        config.storage_key = value
                case "default_priority":
                    if value.lower() in {p.value for p in Priority}:
                        config.default_priority = value.lower()
                    else:
                        logger.warning(f"Unknown DEFAULT_PRIORITY {value!r}; using {config.default_priority}")
                case "default_filter":
                    if value.lower() in {f.value for f in TaskFilter}:
                        config.default_filter = value.lower()
                    else:
                        logger.warning(f"Unknown DEFAULT_FILTER {value!r}; using {config.default_filter}")
                case "log_level":
                    if value.upper() in LOG_LEVELS:
                        config.log_level = value.upper()
                    else:
                        logger.warning(f"Unknown LOG_LEVEL {value!r}; using {config.log_level}")

    if os.environ.get("TODOLIST_DATA_FILE"):
        config.data_file = os.environ["TODOLIST_DATA_FILE"]
    env_level = os.environ.get("TODOLIST_LOG_LEVEL", "").upper()
    if env_level in LOG_LEVELS:
        config.log_level = env_level

    return config
