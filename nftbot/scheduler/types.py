"""Schedule type definitions."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ScheduleType(str, Enum):
    """Known job kinds a schedule can dispatch to."""

    THANK = "thank"     # Thank-you tweets for new sales
    SHILL = "shill"     # Weekly promotional thread


class ExecutionOutcome(Enum):
    """Terminal state of one firing."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED_LOCKED = "skipped_locked"
    SKIPPED_TOO_SOON = "skipped_too_soon"


# A job body takes a single dry-run flag.
JobBody = Callable[[bool], Awaitable[None]]


@dataclass
class Schedule:
    """A persisted recurring job definition."""

    id: int
    type: str
    cron_pattern: str
    timezone: str = "UTC"
    enabled: bool = True
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
