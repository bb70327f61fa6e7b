"""
Tool: Conflict Detector
Purpose: Test a candidate interval, widened by its buffers, against busy time

A conflict exists iff some busy interval satisfies
    busy.start < candidate.end + buffer_after  and  busy.end > candidate.start - buffer_before

Intervals that only touch at an endpoint do not conflict, so a meeting that
ends exactly ``buffer_after`` minutes before the next event is fine.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Optional

from calendar_engine.errors import require
from calendar_engine.models import BusyInterval, ConflictResult, SchedulingConstraints, TimeWindow


def check_conflict(
    candidate: TimeWindow,
    busy: Iterable[BusyInterval],
    buffer_before_minutes: int = 0,
    buffer_after_minutes: int = 0,
    exclude_source_id: Optional[str] = None,
) -> ConflictResult:
    """
    Check ``candidate`` against ``busy``.

    Args:
        candidate: Proposed [start, end)
        busy: Busy intervals to test against (any order)
        buffer_before_minutes: Time that must also be free before the start
        buffer_after_minutes: Time that must also be free after the end
        exclude_source_id: Ignore intervals from this event (rescheduling it)

    Returns:
        ConflictResult with every conflicting interval, in input order
    """
    require(candidate.end is not None, "candidate needs an end", "candidate.end")
    require(candidate.start < candidate.end, "candidate start must be before end", "candidate.start")
    require(buffer_before_minutes >= 0, "must not be negative", "buffer_before_minutes")
    require(buffer_after_minutes >= 0, "must not be negative", "buffer_after_minutes")

    expanded_start = candidate.start - timedelta(minutes=buffer_before_minutes)
    expanded_end = candidate.end + timedelta(minutes=buffer_after_minutes)

    conflicting = tuple(
        b
        for b in busy
        if b.source_id != exclude_source_id and b.overlaps(expanded_start, expanded_end)
    )
    return ConflictResult(conflict=bool(conflicting), conflicting=conflicting)


def check_conflict_with_constraints(
    candidate: TimeWindow,
    constraints: SchedulingConstraints,
    busy: Iterable[BusyInterval],
    exclude_source_id: Optional[str] = None,
) -> ConflictResult:
    """Same as ``check_conflict`` with buffers taken from ``constraints``."""
    return check_conflict(
        candidate,
        busy,
        buffer_before_minutes=constraints.buffer_before_minutes,
        buffer_after_minutes=constraints.buffer_after_minutes,
        exclude_source_id=exclude_source_id,
    )


def is_free(start: datetime, end: datetime, busy: Iterable[BusyInterval]) -> bool:
    """Raw occupancy test for [start, end) with no buffers."""
    return not any(b.overlaps(start, end) for b in busy)
