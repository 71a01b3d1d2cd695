"""Explicit database handle shared by the store, the locks and the jobs."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from nftbot.db.models import Base

# Driver-level connection failures (refused, reset, timed out) reach callers
# unwrapped, next to SQLAlchemy's own errors.
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class Database:
    """
    Owns one async engine (connection pool) and its session factory.

    Constructed once by the composition root and passed to every
    collaborator that needs persistence; there is no module-level engine.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int = 5) -> None:
        self.url = url
        engine_kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            engine_kwargs["pool_size"] = pool_size
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        self._closed = False

    @property
    def dialect(self) -> str:
        """SQLAlchemy dialect name, e.g. ``postgresql`` or ``sqlite``."""
        return self.engine.dialect.name

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session; the caller commits."""
        async with self.session_factory() as session:
            yield session

    async def connect(self) -> AsyncConnection:
        """Check a dedicated autocommit connection out of the pool."""
        conn = await self.engine.connect()
        try:
            return await conn.execution_options(isolation_level="AUTOCOMMIT")
        except BaseException:
            await conn.close()
            raise

    async def create_schema(self) -> None:
        """Create every table that does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema is up to date")

    async def ping(self) -> dict[str, str]:
        """Run a trivial query and report server details."""
        async with self.engine.connect() as conn:
            if self.dialect == "postgresql":
                row = (await conn.execute(text("SELECT NOW() AS now, version() AS version"))).one()
                return {"version": str(row.version), "time": str(row.now)}
            row = (await conn.execute(text("SELECT sqlite_version() AS version, CURRENT_TIMESTAMP AS now"))).one()
            return {"version": f"SQLite {row.version}", "time": str(row.now)}

    async def close(self) -> None:
        """Dispose of the pool. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        logger.info("Database pool closed")
