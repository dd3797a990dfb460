"""File-based preferences adapter."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class JsonFilePreferences:
    """
    JSON file preferences storage.

    Implements PreferencesStore protocol. The whole file is one JSON object
    mapping keys to lists of strings.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict[str, list[str]]:
        """Read every key. Missing or unreadable file means no keys."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path}: not a JSON object")
            return {}
        return data

    def get_string_list(self, key: str) -> list[str] | None:
        """Return the list stored under key, or None if unset."""
        value = self._read_all().get(key)
        if not isinstance(value, list):
            return None
        return [v for v in value if isinstance(v, str)]

    def set_string_list(self, key: str, values: list[str]) -> None:
        """Store values under key, keeping every other key as-is."""
        data = self._read_all()
        data[key] = list(values)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self.path)

