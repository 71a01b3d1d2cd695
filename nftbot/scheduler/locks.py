"""Per-schedule mutual exclusion backed by the database."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from loguru import logger
from sqlalchemy import delete, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from nftbot.db.database import DATABASE_ERRORS, Database
from nftbot.db.models import ScheduleLockRecord
from nftbot.utils.helpers import utcnow


class LockManager(ABC):
    """
    Non-blocking try-lock keyed by schedule id.

    A token is held by the acquiring execution until released, or until
    the backing session or lease ends. Acquiring an id this manager
    already holds fails: overlap within one process is contention too.
    """

    @property
    @abstractmethod
    def held(self) -> set[int]:
        """Ids currently held by this manager."""
        pass

    @abstractmethod
    async def try_acquire(self, schedule_id: int) -> bool:
        """Attempt to take the token; never waits for a holder."""
        pass

    @abstractmethod
    async def release(self, schedule_id: int) -> bool:
        """Release the token if held here. Returns whether one was released."""
        pass

    @abstractmethod
    async def release_all(self) -> None:
        """Release every token held here. Used on shutdown only."""
        pass

    @asynccontextmanager
    async def hold(self, schedule_id: int) -> AsyncIterator[bool]:
        """Try to acquire and release on exit if acquired."""
        acquired = await self.try_acquire(schedule_id)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(schedule_id)


class AdvisoryLockManager(LockManager):
    """
    PostgreSQL session-level advisory locks.

    Every held token pins its own pooled connection, so the lock lives
    exactly as long as that session; a crashed process loses its
    sessions and with them its locks.
    """

    def __init__(self, database: Database) -> None:
        self.database = database
        self._connections: dict[int, AsyncConnection] = {}

    @property
    def held(self) -> set[int]:
        return set(self._connections)

    async def try_acquire(self, schedule_id: int) -> bool:
        if schedule_id in self._connections:
            return False
        # Reserve the id before the first await so a concurrent task sees it.
        self._connections[schedule_id] = None  # type: ignore[assignment]
        conn: AsyncConnection | None = None
        acquired = False
        try:
            conn = await self.database.connect()
            result = await conn.execute(text("SELECT pg_try_advisory_lock(:key) AS acquired"), {"key": schedule_id})
            acquired = bool(result.scalar())
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to acquire lock for schedule {schedule_id}: {e}")
        finally:
            if acquired:
                self._connections[schedule_id] = conn  # type: ignore[assignment]
            else:
                self._connections.pop(schedule_id, None)
                if conn is not None:
                    await conn.close()

        if acquired:
            logger.debug(f"Acquired advisory lock for schedule {schedule_id}")
        return acquired

    async def release(self, schedule_id: int) -> bool:
        conn = self._connections.get(schedule_id)
        if conn is None:
            return False
        del self._connections[schedule_id]
        try:
            result = await conn.execute(text("SELECT pg_advisory_unlock(:key) AS released"), {"key": schedule_id})
            released = bool(result.scalar())
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to release lock for schedule {schedule_id}: {e}")
            released = False
        finally:
            await conn.close()
        return released

    async def release_all(self) -> None:
        connections = [c for c in self._connections.values() if c is not None]
        self._connections.clear()
        for conn in connections:
            try:
                await conn.execute(text("SELECT pg_advisory_unlock_all()"))
            except DATABASE_ERRORS as e:
                logger.error(f"Failed to release all locks: {e}")
            finally:
                await conn.close()


class LeaseLockManager(LockManager):
    """
    Row leases in ``schedule_locks`` for databases without advisory locks.

    A lease past ``expires_at`` is treated as abandoned and may be taken
    over, which is what frees the locks of a crashed holder.
    """

    def __init__(self, database: Database, instance_id: str | None = None, lease_seconds: int = 1800) -> None:
        self.database = database
        self.instance_id = instance_id or uuid.uuid4().hex
        self.lease = timedelta(seconds=lease_seconds)
        self._held: set[int] = set()

    @property
    def held(self) -> set[int]:
        return set(self._held)

    async def try_acquire(self, schedule_id: int) -> bool:
        if schedule_id in self._held:
            return False
        self._held.add(schedule_id)

        now = utcnow()
        acquired = False
        try:
            async with self.database.session() as session:
                await session.execute(
                    delete(ScheduleLockRecord).where(
                        ScheduleLockRecord.schedule_id == schedule_id,
                        ScheduleLockRecord.expires_at < now,
                    )
                )
                session.add(
                    ScheduleLockRecord(
                        schedule_id=schedule_id,
                        holder=self.instance_id,
                        acquired_at=now,
                        expires_at=now + self.lease,
                    )
                )
                await session.commit()
            acquired = True
        except IntegrityError:
            logger.debug(f"Lease for schedule {schedule_id} already held")
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to acquire lock for schedule {schedule_id}: {e}")
        finally:
            if not acquired:
                self._held.discard(schedule_id)

        if acquired:
            logger.debug(f"Acquired lease for schedule {schedule_id}")
        return acquired

    async def release(self, schedule_id: int) -> bool:
        if schedule_id not in self._held:
            return False
        self._held.discard(schedule_id)
        try:
            async with self.database.session() as session:
                result = await session.execute(
                    delete(ScheduleLockRecord).where(
                        ScheduleLockRecord.schedule_id == schedule_id,
                        ScheduleLockRecord.holder == self.instance_id,
                    )
                )
                await session.commit()
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to release lock for schedule {schedule_id}: {e}")
            return False
        return result.rowcount > 0

    async def release_all(self) -> None:
        self._held.clear()
        try:
            async with self.database.session() as session:
                await session.execute(delete(ScheduleLockRecord).where(ScheduleLockRecord.holder == self.instance_id))
                await session.commit()
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to release all locks: {e}")


def create_lock_manager(database: Database, backend: str = "auto", lease_seconds: int = 1800) -> LockManager:
    """
    Pick a lock backend.

    ``auto`` uses advisory locks on PostgreSQL and row leases elsewhere.
    """
    if backend == "auto":
        backend = "advisory" if database.dialect == "postgresql" else "lease"
    if backend == "advisory":
        return AdvisoryLockManager(database)
    if backend == "lease":
        return LeaseLockManager(database, lease_seconds=lease_seconds)
    raise ValueError(f"Unknown lock backend: {backend!r}")
