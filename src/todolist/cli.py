"""todolist CLI - terminal front-end for the task store."""

import asyncio
import json
import shlex
import sys
from datetime import datetime

import click

from .app import open_store, setup_logging
from .config import Config, load_config
from .core.format import format_task_line, friendly_time, priority_label
from .core.projection import TaskFilter, filter_overdue
from .core.tasks import Priority, Task
from .store import TaskStore

DEADLINE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]
PRIORITY_CHOICE = click.Choice([p.value for p in Priority], case_sensitive=False)
FILTER_CHOICE = click.Choice([f.value for f in TaskFilter], case_sensitive=False)

SHELL_HELP = """Commands:
  add TITLE            add a task (prompts for deadline and priority)
  edit REF             edit a task
  toggle REF           mark done / not done
  rm REF               delete a task
  undo                 restore the last deleted task
  clear                delete all completed tasks
  search [TEXT]        filter by title (no text clears the search)
  filter all|active|done
  list                 show tasks
  quit                 leave the shell

REF is a list position or a task id (a unique prefix is enough)."""


def parse_deadline(text: str) -> datetime | None:
    """Parse a deadline typed by the user. Blank means no deadline."""
    text = text.strip()
    if not text:
        return None
    for fmt in DEADLINE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise click.BadParameter(f"{text!r} does not match {', '.join(DEADLINE_FORMATS)}")


def resolve_ref(store: TaskStore, ref: str) -> Task | None:
    """Find a task by list position, exact id, or unique id prefix."""
    items = store.items
    if ref.isdigit() and 1 <= int(ref) <= len(items):
        return items[int(ref) - 1]

    exact = store.get(ref)
    if exact:
        return exact

    matches = [t for t in store.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def listing_options(f):
    """Query and filter options shared by every command that numbers the listing."""
    f = click.option("--filter", "task_filter", type=FILTER_CHOICE, default=None, help="all, active or done")(f)
    return click.option("--query", "-q", default="", help="Only tasks whose title contains this text")(f)


def apply_listing(store: TaskStore, query: str, task_filter: str | None) -> None:
    store.set_query(query)
    if task_filter:
        store.set_filter(task_filter.lower())


def render(store: TaskStore) -> str:
    """Current listing plus the remaining-count footer."""
    now = datetime.now()
    items = store.items
    if not items:
        body = "No tasks."
    else:
        body = "\n".join(format_task_line(t, now, index=i) for i, t in enumerate(items, start=1))

    scope = [f"filter: {store.filter.value}"]
    if store.query:
        scope.append(f"search: {store.query!r}")
    return f"{body}\n\n{store.remaining} remaining ({', '.join(scope)})"


def _run(coro):
    return asyncio.run(coro)


def _require(store: TaskStore, ref: str) -> Task:
    task = resolve_ref(store, ref)
    if task is None:
        raise click.ClickException(f"no task matches {ref!r}")
    return task


@click.group()
@click.version_option(package_name="todolist")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, debug: bool):
    """todolist - a small to-do list."""
    config = load_config()
    setup_logging(config, debug)
    ctx.obj = config


@main.command("list")
@listing_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_tasks(config: Config, query: str, task_filter: str | None, as_json: bool):
    """List tasks in display order."""
    store = _run(open_store(config))
    apply_listing(store, query, task_filter)

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in store.items], indent=2))
    else:
        click.echo(render(store))


@main.command()
@click.argument("title")
@click.option("--deadline", type=click.DateTime(formats=DEADLINE_FORMATS), default=None, help="Due date/time")
@click.option("--priority", type=PRIORITY_CHOICE, default=None, help="low, medium or high")
@click.pass_obj
def add(config: Config, title: str, deadline: datetime | None, priority: str | None):
    """Add a task."""

    async def _add():
        store = await open_store(config)
        return await store.add(
            title,
            deadline=deadline,
            priority=Priority(priority.lower()) if priority else config.priority,
        )

    task = _run(_add())
    if task is None:
        click.echo("Error: title is empty", err=True)
        sys.exit(1)
    click.echo(f"Added {task.id}: {task.title}")


@main.command()
@click.argument("ref")
@listing_options
@click.pass_obj
def toggle(config: Config, ref: str, query: str, task_filter: str | None):
    """Mark a task done, or not done again."""

    async def _toggle():
        store = await open_store(config)
        apply_listing(store, query, task_filter)
        task = _require(store, ref)
        await store.toggle(task.id)
        return store.get(task.id)

    task = _run(_toggle())
    state = "done" if task.is_done else "not done"
    click.echo(f"{task.title}: {state}")


@main.command()
@click.argument("ref")
@click.option("--title", default=None, help="New title")
@click.option("--deadline", type=click.DateTime(formats=DEADLINE_FORMATS), default=None, help="New due date/time")
@click.option("--no-deadline", is_flag=True, help="Remove the deadline")
@click.option("--priority", type=PRIORITY_CHOICE, default=None, help="low, medium or high")
@listing_options
@click.pass_obj
def edit(
    config: Config,
    ref: str,
    title: str | None,
    deadline: datetime | None,
    no_deadline: bool,
    priority: str | None,
    query: str,
    task_filter: str | None,
):
    """Change a task's title, deadline or priority."""
    if deadline and no_deadline:
        click.echo("Error: --deadline and --no-deadline conflict", err=True)
        sys.exit(1)
    if title is not None and not title.strip():
        click.echo("Error: title is empty", err=True)
        sys.exit(1)

    async def _edit():
        store = await open_store(config)
        apply_listing(store, query, task_filter)
        task = _require(store, ref)
        kwargs = {}
        if no_deadline:
            kwargs["deadline"] = None
        elif deadline:
            kwargs["deadline"] = deadline
        if priority:
            kwargs["priority"] = Priority(priority.lower())
        await store.edit(task.id, title if title is not None else task.title, **kwargs)
        return store.get(task.id)

    task = _run(_edit())
    click.echo(f"Updated {task.id}: {task.title}")


@main.command()
@click.argument("ref")
@listing_options
@click.pass_obj
def remove(config: Config, ref: str, query: str, task_filter: str | None):
    """Delete a task."""

    async def _remove():
        store = await open_store(config)
        apply_listing(store, query, task_filter)
        task = _require(store, ref)
        await store.remove(task.id)
        return task

    task = _run(_remove())
    click.echo(f"Deleted {task.title}")


@main.command()
@click.pass_obj
def clear(config: Config):
    """Delete all completed tasks."""

    async def _clear():
        store = await open_store(config)
        return await store.clear_completed()

    removed = _run(_clear())
    click.echo(f"Cleared {removed} completed task{'s' if removed != 1 else ''}.")


@main.command()
@click.pass_obj
def shell(config: Config):
    """Interactive session (supports undo)."""
    _run(_shell(config))


async def _shell(config: Config) -> None:
    store = await open_store(config)
    store.subscribe(lambda s: click.echo(f"\n{render(s)}\n"))
    click.echo(f"\n{render(store)}\n")
    click.echo("Type 'help' for commands.")

    while True:
        try:
            line = click.prompt(">", default="", show_default=False).strip()
        except (EOFError, click.Abort):
            click.echo()
            return
        if not line:
            continue

        try:
            words = shlex.split(line)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            continue
        command, args = words[0].lower(), words[1:]

        if command in ("quit", "exit", "q"):
            return
        try:
            await _shell_command(store, config, command, args)
        except click.BadParameter as e:
            click.echo(f"Error: {e.format_message()}", err=True)


async def _shell_command(store: TaskStore, config: Config, command: str, args: list[str]) -> None:
    match command:
        case "help" | "?":
            click.echo(SHELL_HELP)
        case "list" | "ls":
            click.echo(render(store))
        case "add":
            title = " ".join(args) or click.prompt("Title", default="", show_default=False)
            deadline = parse_deadline(click.prompt("Deadline", default="", show_default=False))
            priority = click.prompt("Priority", type=PRIORITY_CHOICE, default=config.default_priority)
            if await store.add(title, deadline=deadline, priority=Priority(priority.lower())) is None:
                click.echo("Nothing added: title is empty.")
        case "edit":
            task = _shell_task(store, args)
            if task is None:
                return
            title = click.prompt("Title", default=task.title)
            current = task.deadline.strftime("%Y-%m-%d %H:%M") if task.deadline else ""
            deadline_text = click.prompt("Deadline ('-' for none)", default=current, show_default=bool(current))
            changes = {}
            if deadline_text.strip() == "-":
                changes["deadline"] = None
            elif deadline_text.strip() != current:
                changes["deadline"] = parse_deadline(deadline_text)
            priority = click.prompt("Priority", type=PRIORITY_CHOICE, default=task.priority.value)
            await store.edit(task.id, title, priority=Priority(priority.lower()), **changes)
        case "toggle" | "done":
            task = _shell_task(store, args)
            if task:
                await store.toggle(task.id)
        case "rm" | "remove" | "delete":
            task = _shell_task(store, args)
            if task:
                await store.remove(task.id)
                click.echo(f"Deleted {task.title!r} - 'undo' to restore.")
        case "undo":
            if not store.can_undo:
                click.echo("Nothing to undo.")
                return
            await store.undo_delete()
        case "clear":
            removed = await store.clear_completed()
            click.echo(f"Cleared {removed} completed task{'s' if removed != 1 else ''}.")
        case "search":
            store.set_query(" ".join(args))
        case "filter":
            if len(args) != 1 or args[0].lower() not in {f.value for f in TaskFilter}:
                click.echo("Usage: filter all|active|done")
                return
            store.set_filter(args[0].lower())
        case _:
            click.echo(f"Unknown command {command!r}. Type 'help' for commands.")


def _shell_task(store: TaskStore, args: list[str]) -> Task | None:
    if not args:
        click.echo("Which task? Give a list position or id.")
        return None
    task = resolve_ref(store, args[0])
    if task is None:
        click.echo(f"No task matches {args[0]!r}.")
    return task


@main.command()
@click.pass_obj
def status(config: Config):
    """Quick summary: remaining, oldest open and overdue tasks."""
    store = _run(open_store(config))
    now = datetime.now()
    overdue = filter_overdue(store.tasks, now)
    high = [t for t in store.tasks if not t.is_done and t.priority is Priority.HIGH]

    click.echo(f"{store.remaining} remaining of {len(store.tasks)}")
    click.echo(f"{priority_label(Priority.HIGH)} priority open: {len(high)}")
    open_tasks = [t for t in store.tasks if not t.is_done]
    if open_tasks:
        oldest = min(open_tasks, key=lambda t: t.created_at)
        click.echo(f"Oldest open: {oldest.title} (added {friendly_time(oldest.created_at, now)})")
    if overdue:
        click.echo("Overdue:")
        for task in overdue:
            click.echo(f"  {format_task_line(task, now)}")


if __name__ == "__main__":
    main()
