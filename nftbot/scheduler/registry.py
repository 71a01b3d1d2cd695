"""Closed mapping from schedule type to job body."""

from collections.abc import Iterable
from enum import Enum

from nftbot.exceptions import ConfigurationError
from nftbot.scheduler.types import JobBody, ScheduleType


class JobRegistry:
    """Holds the job body for each schedule type the bot knows how to run."""

    def __init__(self, jobs: dict[str, JobBody] | None = None) -> None:
        self._jobs: dict[str, JobBody] = {}
        for type_name, body in (jobs or {}).items():
            self.register(type_name, body)

    def register(self, type_name: str | ScheduleType, body: JobBody) -> None:
        key = type_name.value if isinstance(type_name, Enum) else type_name
        self._jobs[key] = body

    def get(self, type_name: str) -> JobBody | None:
        return self._jobs.get(type_name)

    @property
    def types(self) -> list[str]:
        return sorted(self._jobs)

    def require(self, types: Iterable[ScheduleType] = ScheduleType) -> None:
        """
        Check that every known type has a body.

        Raises:
            ConfigurationError: A known schedule type has no registered body.
        """
        missing = [t.value for t in types if t.value not in self._jobs]
        if missing:
            raise ConfigurationError(f"No job registered for schedule type(s): {', '.join(missing)}")
