"""Shared test fixtures for calendar engine tests.

This module provides common fixtures used across all test modules:
- Reference dates (a known Tuesday, a fixed "now")
- An EventDefinition factory
- Default engine configuration that never reads args/engine.yaml

Usage:
    def test_something(make_event, tuesday):
        event = make_event("standup", at(tuesday, 9), at(tuesday, 9, 15))
        ...
"""

from collections.abc import Callable
from datetime import date, datetime, time, timezone
from pathlib import Path

import pytest

from calendar_engine.config_models import EngineConfig
from calendar_engine.models import EventDefinition


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"


# ─────────────────────────────────────────────────────────────────────────────
# Dates
# ─────────────────────────────────────────────────────────────────────────────


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC datetime on ``day`` at hour:minute."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


@pytest.fixture
def monday() -> date:
    return date(2026, 10, 5)


@pytest.fixture
def tuesday() -> date:
    """A Tuesday with no DST transition nearby in Europe or the US."""
    return date(2026, 10, 6)


@pytest.fixture
def fixed_now(monday: date) -> datetime:
    """Monday 08:00 UTC, the reference "now" for booking tests."""
    return at(monday, 8)


# ─────────────────────────────────────────────────────────────────────────────
# Event Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_event() -> Callable[..., EventDefinition]:
    """Factory for EventDefinition with an owner of "alice" unless given.

    Returns:
        callable(id, start, end, **fields) -> EventDefinition
    """

    def _make(event_id: str, start: datetime, end: datetime, **fields) -> EventDefinition:
        fields.setdefault("owner_id", "alice")
        return EventDefinition(id=event_id, start=start, end=end, **fields)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Configuration Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def engine_config() -> EngineConfig:
    """Default configuration, independent of args/engine.yaml."""
    return EngineConfig()
