"""Key-value preferences interface."""

from typing import Protocol


class PreferencesStore(Protocol):
    """Opaque string-keyed store of string lists."""

    def get_string_list(self, key: str) -> list[str] | None:
        """Return the list stored under key, or None if unset."""
        ...

    def set_string_list(self, key: str, values: list[str]) -> None:
        """Store values under key, replacing anything already there."""
        ...
