"""
Tool: Scheduling Optimizer
Purpose: Rank meeting times for several attendees

Candidates come from the working-hours policy (30-minute steps by default).
Each is scored:

    score = availability percentage
          + 10 if every attendee is free
          + 5  for a 10:00-12:00 start, + 3 for 14:00-16:00
          - 5  for a start before 09:00 or from 16:00
          + 2  on Tuesday to Thursday
          - 3  on Monday before 11:00, - 3 on Friday from 15:00

clamped to [0, 100], with times read in the policy's timezone. Ranking is
score descending, then available count descending, then earliest start.

Usage:
    from calendar_engine.scheduling.optimizer import find_optimal_times

    result = find_optimal_times(busy, ["a", "b"], 30, TimeWindow(start, end))
    for slot in result:
        print(slot.rank, slot.start, slot.score, slot.justification)
"""

from __future__ import annotations

import time as _time
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from calendar_engine.availability.busy_time import any_truncated
from calendar_engine.availability.multi_party import (
    UNKNOWN_EXCLUDE,
    analyze_availability,
    unique_ids,
    validate_participants,
)
from calendar_engine.errors import require
from calendar_engine.logging_config import get_logger
from calendar_engine.models import (
    AvailabilitySummary,
    BusyInterval,
    CandidateSlot,
    RankedResult,
    TimeWindow,
    Weekday,
)
from calendar_engine.scheduling.working_hours import WorkingHoursPolicy
from calendar_engine.timeutil import start_of_day_utc

logger = get_logger(__name__)

DEFAULT_STEP_MINUTES = 30
NEXT_AVAILABLE_HORIZON_DAYS = 14


@dataclass(frozen=True)
class SearchBudget:
    """Upper bounds for one search; None means unlimited."""

    max_candidates: Optional[int] = None
    max_seconds: Optional[float] = None

    def validate(self) -> None:
        require(
            self.max_candidates is None or self.max_candidates >= 1,
            "must be at least 1 when set",
            "max_candidates",
        )
        require(
            self.max_seconds is None or self.max_seconds > 0,
            "must be positive when set",
            "max_seconds",
        )


def score_candidate(summary: AvailabilitySummary, local_start: datetime) -> float:
    """Score a candidate from its availability and local start time."""
    score = summary.availability_percentage

    if summary.all_available:
        score += 10

    hour = local_start.hour
    if 10 <= hour < 12:
        score += 5
    elif 14 <= hour < 16:
        score += 3
    elif hour < 9 or hour >= 16:
        score -= 5

    weekday = Weekday.of(local_start.date())
    if weekday in (Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY):
        score += 2
    if weekday == Weekday.MONDAY and hour < 11:
        score -= 3
    if weekday == Weekday.FRIDAY and hour >= 15:
        score -= 3

    return float(max(0, min(100, score)))


def _clock_label(local: datetime) -> str:
    return local.strftime("%I:%M %p").lstrip("0")


def justify(slot: CandidateSlot, local_start: datetime) -> str:
    """Human-readable reason for a scored slot."""
    if slot.all_available:
        return f"Perfect time! All attendees available on {local_start.strftime('%A')} at {_clock_label(local_start)}."
    if (slot.score or 0) >= 80:
        return f"Excellent option with {slot.available_count}/{slot.total_count} attendees available."
    if (slot.score or 0) >= 60:
        return "Good option with most attendees available."
    return f"Alternative option with {slot.available_count}/{slot.total_count} available."


def _to_candidate(summary: AvailabilitySummary, policy: WorkingHoursPolicy) -> CandidateSlot:
    local_start = policy.local(summary.start)
    slot = CandidateSlot(
        start=summary.start,
        end=summary.end,
        available_participant_ids=list(summary.available_ids),
        busy_participant_ids=list(summary.busy_ids),
        unknown_participant_ids=list(summary.unknown_ids),
        conflicting_source_ids=list(summary.conflicting_source_ids),
        score=score_candidate(summary, local_start),
    )
    slot.justification = justify(slot, local_start)
    return slot


def _rank_key(slot: CandidateSlot):
    return (-(slot.score or 0.0), -slot.available_count, slot.start)


def validate_search(attendee_ids, duration_minutes, window, step_minutes, unknown_policy, max_suggestions=None):
    """Reject a malformed search before any busy time is fetched or scanned."""
    validate_participants(attendee_ids, unknown_policy)
    require(duration_minutes > 0, "duration must be positive", "duration_minutes")
    require(step_minutes > 0, "step must be positive", "step_minutes")
    require(window.end is not None, "search window needs an end", "window.end")
    require(window.start < window.end, "window start must be before end", "window.start")
    if max_suggestions is not None:
        require(max_suggestions >= 1, "must be at least 1", "max_suggestions")


def find_optimal_times(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    attendee_ids: Sequence[str],
    duration_minutes: int,
    window: TimeWindow,
    max_suggestions: int = 5,
    policy: Optional[WorkingHoursPolicy] = None,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    unknown_ids: Collection[str] = (),
    unknown_policy: str = UNKNOWN_EXCLUDE,
    exclude_source_id: Optional[str] = None,
    budget: Optional[SearchBudget] = None,
) -> RankedResult:
    """
    Rank candidate meeting times across ``window``.

    Args:
        busy_by_participant: Busy intervals per attendee id
        attendee_ids: Attendees in caller order
        duration_minutes: Meeting length
        window: Search window (must be bounded)
        max_suggestions: How many top-ranked slots to return
        policy: Working hours (default Mon-Fri 09:00-17:00 UTC)
        step_minutes: Distance between candidate starts
        unknown_ids: Attendees whose calendars could not be read
        unknown_policy: "exclude" or "assume_available"
        exclude_source_id: Ignore busy time from this event
        budget: Candidate and wall-time limits

    Returns:
        RankedResult; ``truncated`` is set when the budget cut the search short
        or when an attendee's busy time was cut short by an expansion cap
    """
    attendee_ids = unique_ids(attendee_ids)
    validate_search(attendee_ids, duration_minutes, window, step_minutes, unknown_policy, max_suggestions)
    policy = policy or WorkingHoursPolicy()
    budget = budget or SearchBudget()
    budget.validate()

    deadline = None if budget.max_seconds is None else _time.monotonic() + budget.max_seconds
    evaluated: list[CandidateSlot] = []
    truncated = False

    for candidate in policy.candidates(
        window, timedelta(minutes=duration_minutes), timedelta(minutes=step_minutes)
    ):
        if budget.max_candidates is not None and len(evaluated) >= budget.max_candidates:
            truncated = True
            break
        if deadline is not None and _time.monotonic() >= deadline:
            truncated = True
            break

        summary = analyze_availability(
            busy_by_participant,
            candidate,
            participant_ids=attendee_ids,
            unknown_ids=unknown_ids,
            unknown_policy=unknown_policy,
            exclude_source_id=exclude_source_id,
        )
        evaluated.append(_to_candidate(summary, policy))

    evaluated.sort(key=_rank_key)
    top = evaluated[:max_suggestions]
    for rank, slot in enumerate(top, start=1):
        slot.rank = rank

    if truncated:
        logger.warning(
            "search_truncated",
            candidates_evaluated=len(evaluated),
            max_candidates=budget.max_candidates,
            max_seconds=budget.max_seconds,
        )
    logger.debug(
        "optimal_times_ranked",
        attendees=len(attendee_ids),
        candidates_evaluated=len(evaluated),
        suggestions=len(top),
    )

    return RankedResult(
        slots=top,
        truncated=truncated or any_truncated(busy_by_participant),
        candidates_evaluated=len(evaluated),
        assumed_utc=window.assumed_utc,
    )


def find_next_available_slot(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    attendee_ids: Sequence[str],
    duration_minutes: int,
    search_from: datetime,
    policy: Optional[WorkingHoursPolicy] = None,
    horizon_days: int = NEXT_AVAILABLE_HORIZON_DAYS,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    unknown_ids: Collection[str] = (),
    unknown_policy: str = UNKNOWN_EXCLUDE,
) -> Optional[CandidateSlot]:
    """First candidate, in time order, where every attendee is free; None if none within the horizon."""
    require(horizon_days >= 1, "must be at least 1", "horizon_days")
    window = TimeWindow(search_from)
    window = TimeWindow(window.start, window.start + timedelta(days=horizon_days))
    attendee_ids = unique_ids(attendee_ids)
    validate_search(attendee_ids, duration_minutes, window, step_minutes, unknown_policy)
    policy = policy or WorkingHoursPolicy()

    for candidate in policy.candidates(
        window, timedelta(minutes=duration_minutes), timedelta(minutes=step_minutes)
    ):
        summary = analyze_availability(
            busy_by_participant,
            candidate,
            participant_ids=attendee_ids,
            unknown_ids=unknown_ids,
            unknown_policy=unknown_policy,
        )
        if summary.all_available:
            if any_truncated(busy_by_participant):
                logger.warning("next_available_on_truncated_busy_time", start=candidate.start.isoformat())
            return _to_candidate(summary, policy)
    return None


def alternatives_window(event_start: datetime, days: int = 7) -> TimeWindow:
    """Search window for rescheduling: the week starting on the event's (UTC) date."""
    start = start_of_day_utc(TimeWindow(event_start).start.date())
    return TimeWindow(start, start + timedelta(days=days))


def suggest_alternative_times(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    attendee_ids: Sequence[str],
    event_id: str,
    event_start: datetime,
    event_end: datetime,
    max_suggestions: int = 3,
    policy: Optional[WorkingHoursPolicy] = None,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    unknown_ids: Collection[str] = (),
    unknown_policy: str = UNKNOWN_EXCLUDE,
) -> RankedResult:
    """Other times in the same week for an existing event, ignoring its own busy time."""
    existing = TimeWindow(event_start, event_end)
    require(existing.start < existing.end, "event start must be before end", "event_start")
    duration_minutes = int((existing.end - existing.start).total_seconds() // 60)
    return find_optimal_times(
        busy_by_participant,
        attendee_ids,
        duration_minutes,
        alternatives_window(existing.start),
        max_suggestions=max_suggestions,
        policy=policy,
        step_minutes=step_minutes,
        unknown_ids=unknown_ids,
        unknown_policy=unknown_policy,
        exclude_source_id=event_id,
    )


def availability_grid(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    participant_ids: Sequence[str],
    window: TimeWindow,
    slot_minutes: int = DEFAULT_STEP_MINUTES,
    policy: Optional[WorkingHoursPolicy] = None,
    unknown_ids: Collection[str] = (),
    unknown_policy: str = UNKNOWN_EXCLUDE,
) -> list[AvailabilitySummary]:
    """Availability of every back-to-back working-hours slot of ``slot_minutes`` across ``window``."""
    participant_ids = unique_ids(participant_ids)
    validate_search(participant_ids, slot_minutes, window, slot_minutes, unknown_policy)
    policy = policy or WorkingHoursPolicy()
    step = timedelta(minutes=slot_minutes)

    return [
        analyze_availability(
            busy_by_participant,
            candidate,
            participant_ids=participant_ids,
            unknown_ids=unknown_ids,
            unknown_policy=unknown_policy,
        )
        for candidate in policy.candidates(window, step, step)
    ]
