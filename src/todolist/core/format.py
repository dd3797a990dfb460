"""Display formatting for tasks - no I/O."""

from datetime import datetime

from .tasks import Priority, Task

PRIORITY_LABELS = {
    Priority.HIGH: "High",
    Priority.MEDIUM: "Medium",
    Priority.LOW: "Low",
}


def priority_label(priority: Priority) -> str:
    return PRIORITY_LABELS[priority]


def _date_short(dt: datetime) -> str:
    return dt.strftime("%d/%m")


def _time_short(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def friendly_time(dt: datetime, as_of: datetime | None = None) -> str:
    """How long ago something happened, e.g. '5m ago'."""
    as_of = as_of or datetime.now()
    seconds = (as_of - dt).total_seconds()
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h ago"
    return f"{_date_short(dt)} {_time_short(dt)}"


def deadline_label(deadline: datetime, as_of: datetime | None = None) -> str:
    """
    Short label for a deadline relative to now.

    Past deadlines read 'Overdue • 14/01 09:00'; upcoming ones count down in
    minutes, then hours, then 'Tomorrow • HH:MM', then whole days.
    """
    as_of = as_of or datetime.now()
    seconds = (deadline - as_of).total_seconds()
    if seconds < 0:
        return f"Overdue • {_date_short(deadline)} {_time_short(deadline)}"

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if hours < 1:
        return f"Due in {minutes}m"
    if days < 1:
        return f"Due in {hours}h"
    if days == 1:
        return f"Tomorrow • {_time_short(deadline)}"
    return f"{days}d • {_date_short(deadline)}"


def format_task_line(task: Task, as_of: datetime | None = None, index: int | None = None) -> str:
    """
    Format a single task for display in a listing.

    Pure function - no I/O.
    """
    as_of = as_of or datetime.now()
    check = "x" if task.is_done else " "
    prefix = f"{index:>3}. " if index is not None else ""
    parts = [f"{prefix}[{check}] {task.title}", f"({priority_label(task.priority)})"]
    if task.deadline:
        parts.append(deadline_label(task.deadline, as_of))
    return "  ".join(parts)
