"""One firing of one schedule, from lock attempt to release."""

from datetime import datetime, timedelta

from loguru import logger

from nftbot.db.database import DATABASE_ERRORS
from nftbot.exceptions import InvalidScheduleError
from nftbot.scheduler.locks import LockManager
from nftbot.scheduler.recurrence import RecurrenceCalculator
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.store import ScheduleStore
from nftbot.scheduler.types import ExecutionOutcome, Schedule

MIN_RUN_INTERVAL = timedelta(minutes=1)


class JobExecutor:
    """
    Runs a schedule's job body under its lock.

    Every firing ends in exactly one ExecutionOutcome; nothing raised by
    the job body or the timestamp write escapes ``execute``.
    """

    def __init__(
        self,
        store: ScheduleStore,
        locks: LockManager,
        registry: JobRegistry,
        calculator: RecurrenceCalculator,
        min_interval: timedelta = MIN_RUN_INTERVAL,
    ) -> None:
        self.store = store
        self.locks = locks
        self.registry = registry
        self.calculator = calculator
        self.min_interval = min_interval

    async def execute(self, schedule: Schedule) -> ExecutionOutcome:
        if not await self.locks.try_acquire(schedule.id):
            logger.info(f"Schedule {schedule.id} is already running elsewhere, skipping")
            return ExecutionOutcome.SKIPPED_LOCKED

        try:
            return await self._execute_locked(schedule)
        finally:
            await self.locks.release(schedule.id)

    async def _execute_locked(self, schedule: Schedule) -> ExecutionOutcome:
        now = self.calculator.now()

        if schedule.last_run_at is not None and now - schedule.last_run_at < self.min_interval:
            logger.info(
                f"Schedule {schedule.id} last ran at {schedule.last_run_at.isoformat()}, "
                f"less than {int(self.min_interval.total_seconds())}s ago, skipping"
            )
            return ExecutionOutcome.SKIPPED_TOO_SOON

        logger.info(f"Executing schedule {schedule.id} ({schedule.type})")
        outcome = ExecutionOutcome.COMPLETED

        body = self.registry.get(schedule.type)
        if body is None:
            logger.warning(f"Unknown schedule type: {schedule.type}")
            outcome = ExecutionOutcome.FAILED
        else:
            try:
                await body(False)
            except Exception as e:
                logger.error(f"Schedule {schedule.id} ({schedule.type}) failed: {e}")
                outcome = ExecutionOutcome.FAILED

        await self._record_run(schedule, now)
        if outcome is ExecutionOutcome.COMPLETED:
            logger.info(f"Schedule {schedule.id} completed")
        return outcome

    async def _record_run(self, schedule: Schedule, now: datetime) -> None:
        next_run: datetime | None
        try:
            next_run = self.calculator.next_after(schedule.cron_pattern, schedule.timezone, now)
        except InvalidScheduleError as e:
            logger.error(f"Cannot compute next run for schedule {schedule.id}: {e}")
            next_run = None

        schedule.last_run_at = now
        schedule.next_run_at = next_run

        try:
            updated = await self.store.update_run_times(schedule.id, now, next_run)
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to record run times for schedule {schedule.id}: {e}")
            return
        if not updated:
            logger.warning(f"Run times for schedule {schedule.id} were not updated")
