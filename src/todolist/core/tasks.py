"""Pure task domain logic - no I/O dependencies."""

import json
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class TaskFormatError(ValueError):
    """Raised when a stored task cannot be decoded."""

    pass


class Priority(Enum):
    """Task priority, ordered low to high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """0 for low, 2 for high."""
        return list(Priority).index(self)

    @classmethod
    def parse(cls, raw: object) -> "Priority":
        """Lenient lookup - anything unrecognized is medium."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True)
class Task:
    """A single to-do item. Replaced wholesale on every change."""

    id: str
    title: str
    created_at: datetime
    is_done: bool = False
    deadline: datetime | None = None
    priority: Priority = Priority.MEDIUM

    def is_overdue(self, as_of: datetime | None = None) -> bool:
        """Incomplete and past its deadline."""
        if self.is_done or self.deadline is None:
            return False
        as_of = as_of or datetime.now()
        return self.deadline < as_of

    def with_changes(self, **changes) -> "Task":
        """Copy with new field values. id and created_at never change."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "isDone": self.is_done,
            "createdAt": self.created_at.isoformat(),
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "priority": self.priority.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """
        Create Task from its stored mapping.

        id, title, isDone and createdAt are required. priority falls back to
        medium and a missing/null deadline means no deadline.
        """
        if not isinstance(data, dict):
            raise TaskFormatError(f"Expected an object, got {type(data).__name__}")

        for key, kind in (("id", str), ("title", str), ("isDone", bool), ("createdAt", str)):
            if key not in data:
                raise TaskFormatError(f"Missing required field: {key}")
            if not isinstance(data[key], kind):
                raise TaskFormatError(f"Field {key} must be {kind.__name__}")

        deadline = data.get("deadline")
        if deadline is not None and not isinstance(deadline, str):
            raise TaskFormatError("Field deadline must be a string or null")

        return cls(
            id=data["id"],
            title=data["title"],
            is_done=data["isDone"],
            created_at=parse_timestamp(data["createdAt"]),
            deadline=parse_timestamp(deadline) if deadline else None,
            priority=Priority.parse(data.get("priority", "medium")),
        )

    @classmethod
    def from_json(cls, source: str) -> "Task":
        try:
            data = json.loads(source)
        except (json.JSONDecodeError, RecursionError) as e:
            raise TaskFormatError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)


def parse_timestamp(raw: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into naive local time.

    Aware values (e.g. trailing 'Z') are converted to the local zone so every
    timestamp in a collection compares against every other.
    """
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise TaskFormatError(f"Invalid timestamp: {raw!r}") from e
    if value.tzinfo is not None:
        try:
            value = value.astimezone().replace(tzinfo=None)
        except (OverflowError, OSError) as e:
            raise TaskFormatError(f"Timestamp out of range: {raw!r}") from e
    return value
