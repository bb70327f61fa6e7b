"""
Availability calculation.

Key components:
- compute_busy_intervals: Busy time per person, with privacy redaction
- check_conflict: Buffer-aware conflict test for one candidate
- analyze_availability: Who is free across several participants
"""

from calendar_engine.availability.busy_time import BusyTimeExtractor, any_truncated, compute_busy_intervals
from calendar_engine.availability.conflicts import (
    check_conflict,
    check_conflict_with_constraints,
    is_free,
)
from calendar_engine.availability.multi_party import (
    UNKNOWN_ASSUME_AVAILABLE,
    UNKNOWN_EXCLUDE,
    analyze_availability,
    is_time_available_for_all,
)

__all__ = [
    "BusyTimeExtractor",
    "UNKNOWN_ASSUME_AVAILABLE",
    "UNKNOWN_EXCLUDE",
    "analyze_availability",
    "any_truncated",
    "check_conflict",
    "check_conflict_with_constraints",
    "compute_busy_intervals",
    "is_free",
    "is_time_available_for_all",
]
