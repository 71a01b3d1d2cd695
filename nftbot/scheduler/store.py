"""Persistent schedule definitions and their run timestamps."""

from datetime import datetime

from loguru import logger
from sqlalchemy import delete, or_, select, update
from sqlalchemy.sql import func

from nftbot.db.database import Database
from nftbot.db.models import ScheduleRecord
from nftbot.scheduler.recurrence import RecurrenceCalculator
from nftbot.scheduler.types import Schedule
from nftbot.utils.helpers import as_utc


def _to_schedule(record: ScheduleRecord) -> Schedule:
    return Schedule(
        id=record.id,
        type=record.type,
        cron_pattern=record.cron_pattern,
        timezone=record.timezone or "UTC",
        enabled=bool(record.enabled),
        last_run_at=as_utc(record.last_run_at),
        next_run_at=as_utc(record.next_run_at),
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


class ScheduleStore:
    """
    CRUD over the ``schedules`` table.

    Management operations only change rows; a running supervisor keeps the
    timers it started with until it is restarted.
    """

    def __init__(self, database: Database, calculator: RecurrenceCalculator) -> None:
        self.database = database
        self.calculator = calculator

    async def add(self, type: str, cron_pattern: str, timezone: str = "UTC") -> Schedule:
        """
        Validate and persist a new enabled schedule.

        Raises:
            InvalidScheduleError: The pattern or timezone is invalid.
                Nothing is written in that case.
        """
        timezone = timezone or "UTC"
        next_run = self.calculator.validate(cron_pattern, timezone)

        async with self.database.session() as session:
            record = ScheduleRecord(
                type=type,
                cron_pattern=cron_pattern,
                timezone=timezone,
                enabled=True,
                next_run_at=next_run,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)

        logger.info(f"Schedule added: {record.id} {type} '{cron_pattern}' ({timezone})")
        return _to_schedule(record)

    async def get(self, schedule_id: int) -> Schedule | None:
        async with self.database.session() as session:
            record = await session.get(ScheduleRecord, schedule_id)
            return _to_schedule(record) if record else None

    async def list_all(self) -> list[Schedule]:
        async with self.database.session() as session:
            result = await session.scalars(select(ScheduleRecord).order_by(ScheduleRecord.id))
            return [_to_schedule(r) for r in result]

    async def list_enabled(self) -> list[Schedule]:
        """Enabled schedules in ascending id order."""
        async with self.database.session() as session:
            result = await session.scalars(
                select(ScheduleRecord).where(ScheduleRecord.enabled.is_(True)).order_by(ScheduleRecord.id)
            )
            return [_to_schedule(r) for r in result]

    async def set_enabled(self, schedule_id: int, enabled: bool) -> bool:
        """Flip the enabled flag. Returns False when the id does not exist."""
        async with self.database.session() as session:
            result = await session.execute(
                update(ScheduleRecord)
                .where(ScheduleRecord.id == schedule_id)
                .values(enabled=enabled, updated_at=func.now())
            )
            await session.commit()
        changed = result.rowcount > 0
        if changed:
            logger.info(f"Schedule {schedule_id} {'enabled' if enabled else 'disabled'}")
        return changed

    async def remove(self, schedule_id: int) -> bool:
        """Hard-delete a schedule. Returns False when the id does not exist."""
        async with self.database.session() as session:
            result = await session.execute(delete(ScheduleRecord).where(ScheduleRecord.id == schedule_id))
            await session.commit()
        removed = result.rowcount > 0
        if removed:
            logger.info(f"Schedule removed: {schedule_id}")
        return removed

    async def update_run_times(
        self,
        schedule_id: int,
        last_run_at: datetime,
        next_run_at: datetime | None,
    ) -> bool:
        """
        Record a firing in a single statement.

        ``last_run_at`` never moves backwards: a stale write from an older
        firing matches no row and is dropped.

        Returns:
            True if the row was updated.
        """
        async with self.database.session() as session:
            result = await session.execute(
                update(ScheduleRecord)
                .where(
                    ScheduleRecord.id == schedule_id,
                    or_(ScheduleRecord.last_run_at.is_(None), ScheduleRecord.last_run_at <= last_run_at),
                )
                .values(last_run_at=last_run_at, next_run_at=next_run_at, updated_at=func.now())
            )
            await session.commit()
        return result.rowcount > 0
