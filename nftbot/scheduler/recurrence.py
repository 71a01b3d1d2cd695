"""Cron recurrence calculation and live asyncio timers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from loguru import logger

from nftbot.exceptions import InvalidScheduleError
from nftbot.utils.helpers import utcnow

Clock = Callable[[], datetime]
FireCallback = Callable[[], Awaitable[Any]]


def normalize_pattern(cron_pattern: str) -> str:
    """
    Convert a 5- or 6-field pattern to croniter's field order.

    Six-field patterns carry seconds first (``sec min hour dom mon dow``);
    croniter expects seconds last.
    """
    fields = cron_pattern.split()
    if len(fields) == 5:
        return " ".join(fields)
    if len(fields) == 6:
        return " ".join(fields[1:] + fields[:1])
    raise InvalidScheduleError(cron_pattern, "", f"expected 5 or 6 fields, got {len(fields)}")


def resolve_zone(name: str | None) -> ZoneInfo:
    """Look up an IANA zone; empty means UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidScheduleError("", name or "", f"unknown timezone: {e}") from e


class RecurrenceCalculator:
    """
    Pure translation of (cron pattern, timezone) into trigger instants.

    All instants are returned as aware UTC datetimes. The clock is
    injectable so callers can compute against a fixed reference time.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def next_after(self, cron_pattern: str, tz: str | None, after: datetime) -> datetime:
        """
        Compute the first trigger instant strictly after ``after``.

        Raises:
            InvalidScheduleError: Pattern or timezone is invalid, or no
                future instant matches.
        """
        try:
            zone = resolve_zone(tz)
            expression = normalize_pattern(cron_pattern)
        except InvalidScheduleError as e:
            raise InvalidScheduleError(cron_pattern, tz or "UTC", e.reason) from e

        if not croniter.is_valid(expression):
            raise InvalidScheduleError(cron_pattern, tz or "UTC", "unparseable cron pattern")

        try:
            itr = croniter(expression, after.astimezone(zone))
            next_run = itr.get_next(datetime)
        except (ValueError, KeyError) as e:
            raise InvalidScheduleError(cron_pattern, tz or "UTC", str(e)) from e

        return next_run.astimezone(timezone.utc)

    def validate(self, cron_pattern: str, tz: str | None, now: datetime | None = None) -> datetime:
        """Validate a definition and return its first trigger instant."""
        return self.next_after(cron_pattern, tz, now or self.now())

    def peek_next(self, cron_pattern: str, tz: str | None, now: datetime | None = None) -> datetime:
        """Next trigger instant after ``now`` (defaults to the clock)."""
        return self.next_after(cron_pattern, tz, now or self.now())

    def start(self, cron_pattern: str, tz: str | None, on_fire: FireCallback, name: str = "") -> CronTimer:
        """Validate and start a repeating timer. Requires a running event loop."""
        self.validate(cron_pattern, tz)
        timer = CronTimer(self, cron_pattern, tz or "UTC", on_fire, name=name)
        timer.start()
        return timer

    def stop(self, timer: CronTimer) -> None:
        timer.stop()


class CronTimer:
    """
    Repeating timer that invokes a callback at each computed instant.

    Each firing runs as its own task; the timer never waits for it and
    never prevents overlap. Fires are strictly increasing in time.
    """

    def __init__(
        self,
        calculator: RecurrenceCalculator,
        cron_pattern: str,
        tz: str,
        on_fire: FireCallback,
        name: str = "",
    ) -> None:
        self.calculator = calculator
        self.cron_pattern = cron_pattern
        self.timezone = tz
        self.name = name or cron_pattern
        self._on_fire = on_fire
        self._task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[Any]] = set()
        self._last_fire: datetime | None = None
        self._running = False
        self.fire_count = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"cron-timer:{self.name}")

    def peek_next(self) -> datetime:
        """Next instant this timer will fire at."""
        now = self.calculator.now()
        if self._last_fire is not None and self._last_fire > now:
            now = self._last_fire
        return self.calculator.next_after(self.cron_pattern, self.timezone, now)

    def stop(self) -> None:
        """Stop scheduling further firings; in-flight firings keep running."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        while self._running:
            fire_at = self.peek_next()
            delay = (fire_at - self.calculator.now()).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)

            if not self._running:
                break

            self._last_fire = fire_at
            self.fire_count += 1
            task = asyncio.create_task(self._on_fire(), name=f"cron-fire:{self.name}")
            self._inflight.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Firing of timer {self.name} raised: {exc}")
            task.get_loop().call_exception_handler(
                {"message": f"Unhandled error in timer {self.name}", "exception": exc, "task": task}
            )
