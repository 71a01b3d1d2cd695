"""Tests for JobRegistry."""

from unittest.mock import AsyncMock

import pytest

from nftbot.exceptions import ConfigurationError
from nftbot.scheduler.registry import JobRegistry
from nftbot.scheduler.types import ScheduleType


def test_register_and_get():
    thank = AsyncMock()
    registry = JobRegistry()
    registry.register(ScheduleType.THANK, thank)

    assert registry.get("thank") is thank
    assert registry.get("shill") is None
    assert registry.types == ["thank"]


def test_require_reports_missing_types():
    registry = JobRegistry({"thank": AsyncMock()})

    with pytest.raises(ConfigurationError, match="shill"):
        registry.require()

    registry.register("shill", AsyncMock())
    registry.require()


def test_extra_types_are_allowed():
    registry = JobRegistry({"thank": AsyncMock(), "shill": AsyncMock(), "digest": AsyncMock()})
    registry.require()
    assert registry.types == ["digest", "shill", "thank"]
