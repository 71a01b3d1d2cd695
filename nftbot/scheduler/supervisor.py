"""Process-level owner of the schedule timers."""

import asyncio
import signal
from typing import Any

from loguru import logger

from nftbot.db.database import Database
from nftbot.exceptions import InvalidScheduleError
from nftbot.scheduler.executor import JobExecutor
from nftbot.scheduler.locks import LockManager
from nftbot.scheduler.recurrence import CronTimer, RecurrenceCalculator
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.store import ScheduleStore
from nftbot.scheduler.types import Schedule


class SchedulerSupervisor:
    """
    Loads enabled schedules once, starts one timer per schedule and owns
    shutdown.

    Schedules are read only at start; changes made later through the store
    take effect on the next process start.
    """

    def __init__(
        self,
        database: Database,
        store: ScheduleStore,
        locks: LockManager,
        executor: JobExecutor,
        calculator: RecurrenceCalculator,
        registry: JobRegistry,
    ) -> None:
        registry.require()
        self.database = database
        self.store = store
        self.locks = locks
        self.executor = executor
        self.calculator = calculator
        self.registry = registry
        self._timers: dict[int, CronTimer] = {}
        self._stop_event: asyncio.Event | None = None
        self._fatal: BaseException | None = None

    @property
    def timers(self) -> dict[int, CronTimer]:
        return dict(self._timers)

    async def start(self) -> dict[int, CronTimer]:
        """
        Start a timer for every enabled, valid schedule.

        Raises:
            SQLAlchemyError: Schedules could not be loaded.
        """
        schedules = await self.store.list_enabled()

        if not schedules:
            logger.info("No enabled schedules found")
            logger.info("Add one with: nftbot schedule add <type> <cron_pattern> [timezone]")
            return {}

        logger.info(f"Loaded {len(schedules)} schedule(s)")
        for schedule in schedules:
            try:
                timer = self.calculator.start(
                    schedule.cron_pattern,
                    schedule.timezone,
                    self._make_callback(schedule),
                    name=f"schedule-{schedule.id}",
                )
            except InvalidScheduleError as e:
                logger.error(f"Skipping schedule {schedule.id}: {e}")
                continue

            self._timers[schedule.id] = timer
            logger.info(
                f"Scheduled {schedule.type} (id {schedule.id}) '{schedule.cron_pattern}' "
                f"in {schedule.timezone}, next run {timer.peek_next().isoformat()}"
            )

        return self.timers

    def _make_callback(self, schedule: Schedule):
        async def on_fire() -> None:
            await self.executor.execute(schedule)

        return on_fire

    def _stop_timers(self) -> None:
        for timer in self._timers.values():
            self.calculator.stop(timer)
        self._timers.clear()

    async def shutdown(self) -> None:
        """Graceful stop: release every held lock, then close the pool."""
        logger.info("Shutting down scheduler")
        self._stop_timers()
        await self.locks.release_all()
        await self.database.close()

    async def abort(self) -> None:
        """Abrupt stop: close the pool without releasing locks explicitly."""
        logger.error("Aborting scheduler")
        self._stop_timers()
        await self.database.close()

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.error(f"Unhandled error: {context.get('message')}: {exc}")
        self._fatal = exc or RuntimeError(context.get("message", "unknown error"))
        if self._stop_event is not None:
            self._stop_event.set()

    async def serve(self) -> int:
        """
        Run until a stop signal or a fatal error.

        Returns:
            Process exit code: 0 after a graceful stop, 1 on a start-up
            failure or an unhandled error.
        """
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._fatal = None

        try:
            await self.start()
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            await self.abort()
            return 1

        if not self._timers:
            await self.shutdown()
            return 0

        installed: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.warning(f"Cannot install handler for {sig.name}")
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_exception)

        logger.info(f"Scheduler running with {len(self._timers)} timer(s)")
        try:
            await self._stop_event.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            loop.set_exception_handler(previous_handler)

        if self._fatal is not None:
            await self.abort()
            return 1
        await self.shutdown()
        return 0
