"""Tests for the task store."""

import asyncio
import random
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from todolist.adapters.memory_preferences import MemoryPreferences
from todolist.adapters.prefs_task_repo import STORAGE_KEY, PreferencesTaskRepository
from todolist.core.projection import TaskFilter
from todolist.core.tasks import Priority, Task
from todolist.store import TaskStore


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 12, 0))


@pytest.fixture
def prefs():
    return MemoryPreferences()


@pytest.fixture
def repo(prefs):
    return PreferencesTaskRepository(prefs)


@pytest.fixture
def store(repo, clock):
    return TaskStore(repo, clock=clock, rng=random.Random(7))


def run(coro):
    return asyncio.run(coro)


def add_all(store, clock, *titles):
    tasks = []
    for title in titles:
        tasks.append(run(store.add(title)))
        clock.advance(seconds=1)
    return tasks


def titles(tasks):
    return [t.title for t in tasks]


class TestLoad:
    def test_empty_repository(self, store):
        run(store.load())
        assert store.tasks == ()

    def test_loads_in_stored_order(self, prefs, store, clock):
        stored = [
            Task(id="b", title="Second", created_at=clock.now).to_json(),
            Task(id="a", title="First", created_at=clock.now).to_json(),
        ]
        prefs.set_string_list(STORAGE_KEY, stored)
        run(store.load())
        assert [t.id for t in store.tasks] == ["b", "a"]

    def test_skips_malformed_entries(self, prefs, store, clock):
        prefs.set_string_list(
            STORAGE_KEY,
            [
                "{broken",
                Task(id="ok", title="Fine", created_at=clock.now).to_json(),
                '{"id": "no-title", "isDone": false, "createdAt": "2025-01-01T00:00:00"}',
            ],
        )
        run(store.load())
        assert [t.id for t in store.tasks] == ["ok"]

    def test_out_of_range_entry_keeps_stored_tasks(self, prefs, repo, store, clock):
        prefs.set_string_list(
            STORAGE_KEY,
            [
                Task(id="ok", title="Fine", created_at=clock.now).to_json(),
                '{"id": "old", "title": "Old", "isDone": false, "createdAt": "0001-01-01T00:00:00+14:00"}',
            ],
        )
        run(store.load())
        run(store.add("new"))
        assert titles(repo.load()) == ["Fine", "new"]

    def test_repository_failure_means_empty(self, clock):
        repo = MagicMock()
        repo.load.side_effect = OSError("disk gone")
        store = TaskStore(repo, clock=clock)
        run(store.load())
        assert store.tasks == ()

    def test_replaces_existing_items(self, store, clock):
        add_all(store, clock, "Unsaved?")
        run(store.load())
        # the add was persisted, so load brings it back rather than duplicating it
        assert titles(store.tasks) == ["Unsaved?"]

    def test_notifies(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(len(s.tasks)))
        run(store.load())
        assert seen == [0]


class TestAdd:
    def test_appends_task(self, store, clock):
        task = run(store.add("  Buy milk  ", deadline=clock.now + timedelta(days=1), priority=Priority.HIGH))
        assert store.tasks == (task,)
        assert task.title == "Buy milk"
        assert task.is_done is False
        assert task.created_at == clock.now
        assert task.deadline == clock.now + timedelta(days=1)
        assert task.priority is Priority.HIGH

    def test_defaults(self, store):
        task = run(store.add("Plain"))
        assert task.deadline is None
        assert task.priority is Priority.MEDIUM

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_blank_title_is_ignored(self, store, repo, title):
        run(store.add("Keep"))
        before = store.tasks
        saved_before = repo.load()
        assert run(store.add(title)) is None
        assert store.tasks == before
        assert repo.load() == saved_before

    def test_insertion_order(self, store, clock):
        add_all(store, clock, "one", "two", "three")
        assert titles(store.tasks) == ["one", "two", "three"]

    def test_ids_are_distinct(self, store):
        # fixed clock: every id shares its millisecond part
        for i in range(200):
            run(store.add(f"Task {i}"))
        ids = [t.id for t in store.tasks]
        assert len(set(ids)) == len(ids)

    def test_ids_distinct_when_random_repeats(self, repo, clock):
        rng = MagicMock()
        rng.randrange.side_effect = [5, 5, 5, 9]
        store = TaskStore(repo, clock=clock, rng=rng)
        first = run(store.add("a"))
        second = run(store.add("b"))
        assert first.id != second.id
        assert second.id.endswith("-9")

    def test_id_format(self, store, clock):
        task = run(store.add("Check id"))
        millis, _, suffix = task.id.partition("-")
        assert int(millis) == int(clock.now.timestamp() * 1000)
        assert 0 <= int(suffix) < 100000

    def test_persists(self, store, repo):
        task = run(store.add("Saved"))
        assert repo.load() == [task]


class TestToggle:
    def test_flips_done(self, store):
        task = run(store.add("Flip me"))
        run(store.toggle(task.id))
        assert store.get(task.id).is_done is True

    def test_twice_restores(self, store):
        task = run(store.add("Flip me"))
        run(store.toggle(task.id))
        run(store.toggle(task.id))
        assert store.get(task.id) == task

    def test_unknown_id_is_noop(self, store):
        run(store.add("Only"))
        before = store.tasks
        run(store.toggle("missing"))
        assert store.tasks == before

    def test_keeps_position(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.toggle(second.id))
        assert titles(store.tasks) == ["one", "two", "three"]

    def test_persists(self, store, repo):
        task = run(store.add("Flip me"))
        run(store.toggle(task.id))
        assert repo.load()[0].is_done is True


class TestEdit:
    def test_replaces_fields(self, store, clock):
        task = run(store.add("Old", deadline=clock.now, priority=Priority.LOW))
        new_deadline = clock.now + timedelta(days=2)
        run(store.edit(task.id, "  New  ", deadline=new_deadline, priority=Priority.HIGH))
        edited = store.get(task.id)
        assert edited.title == "New"
        assert edited.deadline == new_deadline
        assert edited.priority is Priority.HIGH
        assert edited.id == task.id
        assert edited.created_at == task.created_at

    def test_omitted_fields_keep_values(self, store, clock):
        task = run(store.add("Old", deadline=clock.now, priority=Priority.LOW))
        run(store.edit(task.id, "New"))
        edited = store.get(task.id)
        assert edited.deadline == clock.now
        assert edited.priority is Priority.LOW

    def test_explicit_none_clears_deadline(self, store, clock):
        task = run(store.add("Old", deadline=clock.now))
        run(store.edit(task.id, "Old", deadline=None))
        assert store.get(task.id).deadline is None

    def test_keeps_done_state(self, store):
        task = run(store.add("Old"))
        run(store.toggle(task.id))
        run(store.edit(task.id, "New"))
        assert store.get(task.id).is_done is True

    def test_blank_title_is_noop(self, store):
        task = run(store.add("Keep"))
        run(store.edit(task.id, "   ", priority=Priority.HIGH))
        assert store.get(task.id) == task

    def test_unknown_id_is_noop(self, store):
        run(store.add("Keep"))
        before = store.tasks
        run(store.edit("missing", "Other"))
        assert store.tasks == before


class TestRemoveAndUndo:
    def test_remove(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.remove(second.id))
        assert titles(store.tasks) == ["one", "three"]
        assert store.can_undo is True
        assert store.last_deleted.task == second
        assert store.last_deleted.index == 1

    def test_remove_unknown_is_noop(self, store, clock):
        add_all(store, clock, "one")
        run(store.remove("missing"))
        assert titles(store.tasks) == ["one"]
        assert store.can_undo is False

    def test_undo_restores_exact_state(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.toggle(second.id))
        before = store.tasks
        run(store.remove(store.get(second.id).id))
        run(store.undo_delete())
        assert store.tasks == before
        assert store.can_undo is False

    def test_undo_persists(self, store, repo, clock):
        first, second = add_all(store, clock, "one", "two")
        run(store.remove(first.id))
        assert repo.load() == [second]
        run(store.undo_delete())
        assert repo.load() == [first, second]

    def test_undo_without_remove_is_noop(self, store, clock):
        add_all(store, clock, "one", "two")
        before = store.tasks
        run(store.undo_delete())
        assert store.tasks == before

    def test_undo_only_once(self, store, clock):
        first, second = add_all(store, clock, "one", "two")
        run(store.remove(first.id))
        run(store.undo_delete())
        run(store.undo_delete())
        assert titles(store.tasks) == ["one", "two"]

    def test_second_remove_overwrites_undo(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.remove(first.id))
        run(store.remove(third.id))
        run(store.undo_delete())
        assert titles(store.tasks) == ["two", "three"]

    def test_undo_index_clamped(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.remove(third.id))
        run(store.toggle(first.id))
        run(store.toggle(second.id))
        run(store.clear_completed())
        assert store.tasks == ()
        run(store.undo_delete())
        assert titles(store.tasks) == ["three"]


class TestClearCompleted:
    def test_removes_done(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.toggle(first.id))
        run(store.toggle(third.id))
        assert run(store.clear_completed()) == 2
        assert titles(store.tasks) == ["two"]

    def test_no_undo_from_clear(self, store, clock):
        first, second = add_all(store, clock, "one", "two")
        run(store.toggle(first.id))
        run(store.clear_completed())
        assert store.can_undo is False
        run(store.undo_delete())
        assert titles(store.tasks) == ["two"]

    def test_keeps_earlier_undo_record(self, store, clock):
        first, second, third = add_all(store, clock, "one", "two", "three")
        run(store.remove(first.id))
        run(store.toggle(third.id))
        run(store.clear_completed())
        assert store.last_deleted.task == first
        run(store.undo_delete())
        assert titles(store.tasks) == ["one", "two"]

    def test_persists(self, store, repo, clock):
        first, second = add_all(store, clock, "one", "two")
        run(store.toggle(first.id))
        run(store.clear_completed())
        assert titles(repo.load()) == ["two"]


class TestSessionState:
    def test_query_is_lowercased(self, store):
        store.set_query("MiLK")
        assert store.query == "milk"

    def test_filter_from_string(self, store):
        store.set_filter("done")
        assert store.filter is TaskFilter.DONE

    def test_invalid_filter(self, store):
        with pytest.raises(ValueError):
            store.set_filter("someday")

    def test_not_persisted(self, prefs, repo, clock):
        save_calls = []
        repo.save = lambda tasks: save_calls.append(tasks)
        store = TaskStore(repo, clock=clock)
        store.set_query("x")
        store.set_filter(TaskFilter.ACTIVE)
        assert save_calls == []

    def test_items_use_query_and_filter(self, store, clock):
        milk, bread = add_all(store, clock, "Buy milk", "Buy bread")
        store.set_query("mil")
        assert store.items == [milk]
        store.set_filter(TaskFilter.DONE)
        assert store.items == []
        run(store.toggle(milk.id))
        assert [t.id for t in store.items] == [milk.id]

    def test_items_recomputed_with_clock(self, store, clock):
        later = run(store.add("Later", deadline=clock.now + timedelta(hours=2), priority=Priority.HIGH))
        soon = run(store.add("Soon", deadline=clock.now + timedelta(hours=1)))
        plain = run(store.add("Plain", priority=Priority.LOW))
        assert [t.title for t in store.items] == ["Soon", "Later", "Plain"]
        clock.advance(hours=3)
        # both overdue now, ordered by deadline inside the overdue group
        assert [t.title for t in store.items] == ["Soon", "Later", "Plain"]
        run(store.edit(soon.id, "Soon", deadline=clock.now + timedelta(hours=1)))
        assert [t.title for t in store.items] == ["Later", "Soon", "Plain"]
        assert later.id == store.items[0].id
        assert plain.id == store.items[-1].id

    def test_remaining_ignores_query_and_filter(self, store, clock):
        first, second, third = add_all(store, clock, "Buy milk", "Call mum", "Walk dog")
        run(store.toggle(third.id))
        store.set_query("milk")
        store.set_filter(TaskFilter.DONE)
        assert store.items == []
        assert store.remaining == 2


class TestObservers:
    def test_notified_on_each_change(self, store, clock):
        events = []
        store.subscribe(lambda s: events.append(len(s.tasks)))
        task = run(store.add("one"))
        run(store.toggle(task.id))
        store.set_query("o")
        store.set_filter("active")
        run(store.remove(task.id))
        run(store.undo_delete())
        run(store.clear_completed())
        assert events == [1, 1, 1, 1, 0, 1, 0]

    def test_not_notified_on_noop(self, store):
        events = []
        store.subscribe(lambda s: events.append(1))
        run(store.add("   "))
        run(store.toggle("missing"))
        run(store.undo_delete())
        assert events == []

    def test_notified_before_persisting(self, repo, clock):
        order = []
        real_save = repo.save
        repo.save = lambda tasks: (order.append("save"), real_save(tasks))
        store = TaskStore(repo, clock=clock)
        store.subscribe(lambda s: order.append("notify"))
        run(store.add("one"))
        assert order == ["notify", "save"]

    def test_unsubscribe(self, store):
        events = []
        unsubscribe = store.subscribe(lambda s: events.append(1))
        unsubscribe()
        unsubscribe()
        run(store.add("one"))
        assert events == []

    def test_failing_observer_does_not_stop_others(self, store):
        events = []

        def broken(s):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda s: events.append(1))
        task = run(store.add("one"))
        assert events == [1]
        assert store.tasks == (task,)


class TestPersistenceFailure:
    def test_save_error_not_raised(self, clock):
        repo = MagicMock()
        repo.save.side_effect = OSError("read-only")
        store = TaskStore(repo, clock=clock)
        task = run(store.add("Still here"))
        assert store.tasks == (task,)

    def test_save_receives_full_snapshot(self, clock):
        repo = MagicMock()
        store = TaskStore(repo, clock=clock, rng=random.Random(1))
        first = run(store.add("one"))
        second = run(store.add("two"))
        assert repo.save.call_args.args[0] == (first, second)


class TestConcurrentCallers:
    def test_interleaved_adds_all_land(self, store):
        async def many():
            await asyncio.gather(*(store.add(f"Task {i}") for i in range(20)))

        run(many())
        assert len(store.tasks) == 20
        assert len({t.id for t in store.tasks}) == 20
