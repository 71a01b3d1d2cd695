"""Tests for SchedulerSupervisor."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from nftbot.exceptions import ConfigurationError
from nftbot.scheduler.recurrence import RecurrenceCalculator
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.supervisor import SchedulerSupervisor
from nftbot.scheduler.types import Schedule


def make_supervisor(clock, schedules=None, list_error=None):
    manager = MagicMock()
    database = manager.database
    database.close = AsyncMock()
    locks = manager.locks
    locks.release_all = AsyncMock()
    store = MagicMock()
    store.list_enabled = AsyncMock(return_value=schedules or [], side_effect=list_error)
    executor = MagicMock()
    executor.execute = AsyncMock()
    registry = JobRegistry({"thank": AsyncMock(), "shill": AsyncMock()})

    supervisor = SchedulerSupervisor(
        database, store, locks, executor, RecurrenceCalculator(clock=clock), registry
    )
    return supervisor, manager


def test_missing_job_body_fails_construction(clock):
    with pytest.raises(ConfigurationError):
        SchedulerSupervisor(
            MagicMock(), MagicMock(), MagicMock(), MagicMock(),
            RecurrenceCalculator(clock=clock), JobRegistry({"thank": AsyncMock()}),
        )


@pytest.mark.asyncio
async def test_start_creates_one_timer_per_valid_schedule(clock):
    schedules = [
        Schedule(id=1, type="thank", cron_pattern="0 * * * *"),
        Schedule(id=2, type="shill", cron_pattern="not a pattern"),
        Schedule(id=3, type="shill", cron_pattern="0 9 * * 2", timezone="Atlantis/Lost"),
        Schedule(id=4, type="shill", cron_pattern="0 9 * * 2", timezone="Europe/Berlin"),
    ]
    supervisor, _ = make_supervisor(clock, schedules)

    timers = await supervisor.start()
    try:
        assert sorted(timers) == [1, 4]
        assert all(timer.running for timer in timers.values())
    finally:
        await supervisor.shutdown()

    assert supervisor.timers == {}
    assert not any(timer.running for timer in timers.values())


@pytest.mark.asyncio
async def test_start_with_no_schedules(clock):
    supervisor, _ = make_supervisor(clock, [])
    assert await supervisor.start() == {}


@pytest.mark.asyncio
async def test_start_propagates_load_failure(clock):
    supervisor, _ = make_supervisor(clock, list_error=OperationalError("SELECT", {}, Exception("db down")))
    with pytest.raises(OperationalError):
        await supervisor.start()


@pytest.mark.asyncio
async def test_timer_firing_goes_through_executor(clock):
    schedule = Schedule(id=1, type="thank", cron_pattern="0 * * * *")
    supervisor, _ = make_supervisor(clock, [schedule])
    await supervisor.start()
    try:
        callback = supervisor._make_callback(schedule)
        await callback()
        supervisor.executor.execute.assert_awaited_once_with(schedule)
    finally:
        await supervisor.shutdown()


@pytest.mark.asyncio
async def test_graceful_shutdown_releases_locks_before_closing(clock):
    supervisor, manager = make_supervisor(clock)

    await supervisor.shutdown()

    assert [c[0] for c in manager.mock_calls] == ["locks.release_all", "database.close"]


@pytest.mark.asyncio
async def test_abort_only_closes_database(clock):
    supervisor, manager = make_supervisor(clock)

    await supervisor.abort()

    manager.locks.release_all.assert_not_awaited()
    manager.database.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_returns_zero_without_schedules(clock):
    supervisor, manager = make_supervisor(clock, [])

    assert await supervisor.serve() == 0
    manager.database.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_returns_one_when_start_fails(clock):
    supervisor, manager = make_supervisor(clock, list_error=OperationalError("SELECT", {}, Exception("db down")))

    assert await supervisor.serve() == 1
    manager.locks.release_all.assert_not_awaited()
    manager.database.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_stop_request_is_graceful(clock):
    supervisor, manager = make_supervisor(clock, [Schedule(id=1, type="thank", cron_pattern="0 * * * *")])
    loop = asyncio.get_running_loop()

    loop.call_later(0.01, supervisor.request_stop)
    code = await supervisor.serve()

    assert code == 0
    manager.locks.release_all.assert_awaited_once()
    manager.database.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_unhandled_error_is_abrupt(clock):
    supervisor, manager = make_supervisor(clock, [Schedule(id=1, type="thank", cron_pattern="0 * * * *")])
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler()

    loop.call_later(
        0.01,
        lambda: loop.call_exception_handler({"message": "task failed", "exception": RuntimeError("boom")}),
    )
    code = await supervisor.serve()

    assert code == 1
    manager.locks.release_all.assert_not_awaited()
    manager.database.close.assert_awaited_once()
    # The previous handler is restored once serving ends.
    assert loop.get_exception_handler() is previous
