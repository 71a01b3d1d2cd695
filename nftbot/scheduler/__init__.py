"""Database-backed cron scheduler with per-schedule locking."""

from nftbot.scheduler.executor import MIN_RUN_INTERVAL, JobExecutor
from nftbot.scheduler.locks import AdvisoryLockManager, LeaseLockManager, LockManager, create_lock_manager
from nftbot.scheduler.recurrence import CronTimer, RecurrenceCalculator
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.store import ScheduleStore
from nftbot.scheduler.supervisor import SchedulerSupervisor
from nftbot.scheduler.types import ExecutionOutcome, JobBody, Schedule, ScheduleType

__all__ = [
    "AdvisoryLockManager",
    "CronTimer",
    "ExecutionOutcome",
    "JobBody",
    "JobExecutor",
    "JobRegistry",
    "LeaseLockManager",
    "LockManager",
    "MIN_RUN_INTERVAL",
    "RecurrenceCalculator",
    "Schedule",
    "ScheduleStore",
    "ScheduleType",
    "SchedulerSupervisor",
    "create_lock_manager",
]
