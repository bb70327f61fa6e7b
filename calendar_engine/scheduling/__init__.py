"""
Scheduling: booking-page slots and multi-attendee meeting search.

Key components:
- generate_booking_slots / check_booking_slot: One owner's booking page
- find_optimal_times: Ranked meeting times for several attendees
- find_next_available_slot: Earliest time everyone is free
- WorkingHoursPolicy: Which local hours count as schedulable
"""

from calendar_engine.scheduling.booking_slots import check_booking_slot, generate_booking_slots
from calendar_engine.scheduling.optimizer import (
    SearchBudget,
    availability_grid,
    find_next_available_slot,
    find_optimal_times,
    score_candidate,
    suggest_alternative_times,
)
from calendar_engine.scheduling.working_hours import WorkingHoursPolicy

__all__ = [
    "SearchBudget",
    "WorkingHoursPolicy",
    "availability_grid",
    "check_booking_slot",
    "find_next_available_slot",
    "find_optimal_times",
    "generate_booking_slots",
    "score_candidate",
    "suggest_alternative_times",
]
