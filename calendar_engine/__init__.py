"""
Calendar Engine: availability and scheduling core

Expands recurring events, computes busy time per person, detects conflicts
under buffer and notice constraints, intersects availability across
participants, and ranks candidate meeting times.

Components:
    models.py: Domain value objects (EventDefinition, BusyInterval, CandidateSlot)
    recurrence/: Recurrence rule expansion into concrete occurrences
    availability/: Busy-time extraction, conflict detection, multi-party analysis
    scheduling/: Booking-page slot generation and optimal meeting-time search
    collaborators.py: EventSource, PermissionOracle and Clock interfaces
    engine.py: Async facade that fetches snapshots once per call

Usage:
    from calendar_engine import SchedulingEngine, TimeWindow

    engine = SchedulingEngine(event_source, permission_oracle, clock)
    result = await engine.find_optimal_times(["a", "b"], 30, window, 5, requester_id="a")
"""

import os
from pathlib import Path

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = Path(os.environ.get("CALENDAR_ENGINE_ARGS_DIR", PROJECT_ROOT / "args"))
CONFIG_PATH = ARGS_DIR / "engine.yaml"

from calendar_engine.engine import SchedulingEngine  # noqa: E402
from calendar_engine.errors import EngineError, ValidationError  # noqa: E402
from calendar_engine.models import (  # noqa: E402
    BookingSlots,
    BusyInterval,
    BusyTimeResult,
    CandidateSlot,
    EventDefinition,
    OccurrenceInstance,
    RankedResult,
    SchedulingConstraints,
    TimeWindow,
)

__all__ = [
    "ARGS_DIR",
    "BookingSlots",
    "BusyInterval",
    "BusyTimeResult",
    "CandidateSlot",
    "CONFIG_PATH",
    "EngineError",
    "EventDefinition",
    "OccurrenceInstance",
    "PROJECT_ROOT",
    "RankedResult",
    "SchedulingConstraints",
    "SchedulingEngine",
    "TimeWindow",
    "ValidationError",
]
