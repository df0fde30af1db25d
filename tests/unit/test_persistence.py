"""
Unit tests for optimistic persistence and rollback.
"""

import asyncio

import pytest

from timeline_planner.core.exceptions import PersistenceFailure
from timeline_planner.models.enums import CommitOutcome, DragMode, TimeScale
from timeline_planner.services.geometry import TimeMapper
from timeline_planner.services.interaction import InteractionStateMachine
from timeline_planner.services.milestone_store import MilestoneStore
from timeline_planner.services.persistence import PersistenceDispatcher


@pytest.fixture
def store(make_milestone):
    store = MilestoneStore()
    store.upsert(make_milestone("a", 1, 5))
    return store


@pytest.fixture
def dispatcher(repository, store):
    return PersistenceDispatcher(repository, store)


@pytest.fixture
def machine(store, dispatcher, settings, day):
    mapper = TimeMapper(day(1), TimeScale.DAY, settings=settings)
    return InteractionStateMachine(store, mapper, dispatcher=dispatcher, settings=settings)


def _move_a(machine, days: int):
    machine.begin_drag("a", DragMode.MOVE, 0)
    machine.update_drag(days * 20)
    return machine.end_drag()


@pytest.mark.asyncio
async def test_commit_is_saved_in_background(machine, dispatcher, repository, store, day):
    result = _move_a(machine, 2)

    assert result.outcome == CommitOutcome.COMMITTED
    assert dispatcher.pending == 1

    await dispatcher.drain()

    assert dispatcher.pending == 0
    assert [m.start for m in repository.saved] == [day(3)]
    assert store.get("a").start == day(3)


@pytest.mark.asyncio
async def test_failed_save_rolls_back(machine, dispatcher, repository, store, day):
    failures = []
    dispatcher.on_error(failures.append)
    repository.fail_saves = True

    _move_a(machine, 2)
    # Optimistic: the store shows the new bounds before the save settles
    assert store.get("a").start == day(3)

    await dispatcher.drain()

    assert store.get("a").start == day(1)
    assert store.get("a").end == day(5)
    assert len(failures) == 1
    failure = failures[0]
    assert isinstance(failure, PersistenceFailure)
    assert failure.retryable
    assert failure.milestone.start == day(3)
    assert failure.origin_start == day(1)
    assert failure.reason == "save rejected"


@pytest.mark.asyncio
async def test_rollback_skipped_after_later_edit(machine, dispatcher, repository, store, day):
    failures = []
    dispatcher.on_error(failures.append)
    repository.fail_saves = True
    repository.gate = asyncio.Event()

    _move_a(machine, 2)
    store.update_bounds("a", day(10), day(12))
    repository.gate.set()
    await dispatcher.drain()

    assert store.get("a").start == day(10)
    assert len(failures) == 1


@pytest.mark.asyncio
async def test_rollback_skipped_when_milestone_removed(machine, dispatcher, repository, store):
    failures = []
    dispatcher.on_error(failures.append)
    repository.fail_saves = True
    repository.gate = asyncio.Event()

    _move_a(machine, 2)
    store.remove("a")
    repository.gate.set()
    await dispatcher.drain()

    assert "a" not in store
    assert len(failures) == 1


@pytest.mark.asyncio
async def test_saves_of_one_milestone_land_in_commit_order(machine, dispatcher, repository, store, day):
    repository.save_delays = [0.05]

    _move_a(machine, 1)
    _move_a(machine, 1)
    await dispatcher.drain()

    assert [m.start for m in repository.saved] == [day(2), day(3)]
    assert repository.milestones["a"].start == store.get("a").start == day(3)


def test_dispatch_without_event_loop_runs_inline(dispatcher, repository, store):
    milestone = store.get("a")

    task = dispatcher.dispatch_save(milestone)

    assert task is None
    assert repository.saved == [milestone]
