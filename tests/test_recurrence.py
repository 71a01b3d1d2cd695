"""Tests for RecurrenceCalculator and CronTimer."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from nftbot.exceptions import InvalidScheduleError
from nftbot.scheduler.recurrence import CronTimer, RecurrenceCalculator, normalize_pattern

UTC = timezone.utc


def test_normalize_pattern():
    assert normalize_pattern("0 * * * *") == "0 * * * *"
    # seconds-first six-field pattern moves seconds to the end
    assert normalize_pattern("30 0 * * * *") == "0 * * * * 30"
    with pytest.raises(InvalidScheduleError):
        normalize_pattern("* * * *")


def test_next_after_is_strictly_after(clock):
    calc = RecurrenceCalculator(clock=clock)
    at_top_of_hour = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)

    assert calc.next_after("0 * * * *", "UTC", at_top_of_hour) == datetime(2024, 1, 1, 11, 0, tzinfo=UTC)


def test_six_field_pattern_has_second_resolution(clock):
    calc = RecurrenceCalculator(clock=clock)

    assert calc.peek_next("30 0 * * * *", "UTC") == datetime(2024, 1, 1, 10, 0, 30, tzinfo=UTC)


def test_timezone_is_respected():
    calc = RecurrenceCalculator()
    # 12:00 UTC is 07:00 in New York (EST, UTC-5)
    now = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    next_run = calc.validate("0 9 * * *", "America/New_York", now)

    assert next_run == datetime(2024, 1, 15, 14, 0, tzinfo=UTC)
    assert next_run.tzinfo == UTC


def test_empty_timezone_means_utc(clock):
    calc = RecurrenceCalculator(clock=clock)
    assert calc.peek_next("15 * * * *", "") == calc.peek_next("15 * * * *", "UTC")


@pytest.mark.parametrize(
    "pattern,tz",
    [
        ("not a cron", "UTC"),
        ("61 * * * *", "UTC"),
        ("0 * * *", "UTC"),
        ("0 * * * *", "Mars/Olympus_Mons"),
    ],
)
def test_invalid_definitions_raise(clock, pattern, tz):
    calc = RecurrenceCalculator(clock=clock)
    with pytest.raises(InvalidScheduleError) as exc_info:
        calc.validate(pattern, tz)
    assert exc_info.value.cron_pattern == pattern


def test_validate_matches_peek_next(clock):
    calc = RecurrenceCalculator(clock=clock)
    for pattern in ("*/5 * * * *", "0 9 * * 2", "0 0 12 * * *"):
        assert calc.validate(pattern, "Europe/Paris") == calc.peek_next(pattern, "Europe/Paris")


@pytest.mark.asyncio
async def test_timer_peek_next_matches_validate(clock):
    calc = RecurrenceCalculator(clock=clock)
    on_fire = AsyncMock()

    timer = calc.start("0 * * * *", "UTC", on_fire)
    try:
        assert timer.running
        assert timer.peek_next() == calc.validate("0 * * * *", "UTC")
    finally:
        calc.stop(timer)
    assert not timer.running


@pytest.mark.asyncio
async def test_start_rejects_invalid_pattern(clock):
    calc = RecurrenceCalculator(clock=clock)
    with pytest.raises(InvalidScheduleError):
        calc.start("bogus", "UTC", AsyncMock())


@pytest.mark.asyncio
async def test_timer_fires_at_strictly_increasing_instants(clock):
    calc = RecurrenceCalculator(clock=clock)
    on_fire = AsyncMock()
    timer = CronTimer(calc, "0 * * * *", "UTC", on_fire)
    delays = []

    def fake_sleep(seconds):
        delays.append(seconds)
        if len(delays) >= 3:
            timer.stop()

    with patch("nftbot.scheduler.recurrence.asyncio.sleep", new=AsyncMock(side_effect=fake_sleep)):
        timer.start()
        with pytest.raises(asyncio.CancelledError):
            await timer._task

    # Let the spawned firings run.
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    # Clock is frozen at 10:00; fires are 11:00 then 12:00.
    assert delays[:2] == [3600.0, 7200.0]
    assert timer.fire_count == 2
    assert on_fire.await_count == 2


@pytest.mark.asyncio
async def test_firing_errors_reach_loop_exception_handler(clock):
    calc = RecurrenceCalculator(clock=clock)
    loop = asyncio.get_running_loop()
    contexts = []
    previous = loop.get_exception_handler()
    loop.set_exception_handler(lambda _loop, context: contexts.append(context))

    on_fire = AsyncMock(side_effect=RuntimeError("boom"))
    timer = CronTimer(calc, "0 * * * *", "UTC", on_fire, name="failing")
    calls = 0

    def fake_sleep(seconds):
        nonlocal calls
        calls += 1
        if calls >= 2:
            timer.stop()

    try:
        with patch("nftbot.scheduler.recurrence.asyncio.sleep", new=AsyncMock(side_effect=fake_sleep)):
            timer.start()
            with pytest.raises(asyncio.CancelledError):
                await timer._task
        for _ in range(3):
            await asyncio.sleep(0)
    finally:
        loop.set_exception_handler(previous)

    assert len(contexts) == 1
    assert isinstance(contexts[0]["exception"], RuntimeError)


@pytest.mark.asyncio
async def test_stop_does_not_cancel_inflight_firings(clock):
    calc = RecurrenceCalculator(clock=clock)
    release = asyncio.Event()
    finished = []

    async def slow_fire():
        await release.wait()
        finished.append(True)

    timer = CronTimer(calc, "0 * * * *", "UTC", slow_fire)
    calls = 0

    def fake_sleep(seconds):
        nonlocal calls
        calls += 1
        if calls >= 2:
            timer.stop()

    with patch("nftbot.scheduler.recurrence.asyncio.sleep", new=AsyncMock(side_effect=fake_sleep)):
        timer.start()
        with pytest.raises(asyncio.CancelledError):
            await timer._task

    assert len(timer._inflight) == 1
    release.set()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert finished == [True]
