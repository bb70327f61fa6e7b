"""
Integration test fixtures for the calendar engine.

Provides a SchedulingEngine wired to in-process collaborators:
- InMemoryEventSource that records every fetch
- SharingPolicyOracle with per-user sharing settings
- FixedClock pinned to Monday 08:00 UTC
"""

import pytest

from calendar_engine import SchedulingEngine
from calendar_engine.collaborators import FixedClock, InMemoryEventSource, SharingPolicyOracle


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def event_source():
    return InMemoryEventSource()


@pytest.fixture
def oracle():
    """Organization-wide sharing by default; tests adjust ``oracle.settings`` per user."""
    return SharingPolicyOracle(teams={"platform": ["alice", "bob"]})


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)


# ─────────────────────────────────────────────────────────────────────────────
# Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def engine(event_source, oracle, clock, engine_config):
    return SchedulingEngine(event_source, oracle, clock, engine_config)
