"""In-memory preferences adapter."""


class MemoryPreferences:
    """
    Dict-backed preferences.

    Implements PreferencesStore protocol. Nothing survives the process.
    """

    def __init__(self, initial: dict[str, list[str]] | None = None):
        self._data: dict[str, list[str]] = {k: list(v) for k, v in (initial or {}).items()}

    def get_string_list(self, key: str) -> list[str] | None:
        value = self._data.get(key)
        return list(value) if value is not None else None

    def set_string_list(self, key: str, values: list[str]) -> None:
        self._data[key] = list(values)
