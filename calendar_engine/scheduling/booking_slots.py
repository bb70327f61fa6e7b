"""
Tool: Booking Slot Generator
Purpose: Offer bookable slots on a single owner's booking page

For every local day of the page's timezone inside the query window that is
an enabled weekday and below the daily booking cap, candidate starts step
from ``daily_start`` to ``daily_end - duration`` by the slot granularity.
A start is offered when:
    - it is no earlier than now + min_notice
    - it is no later than now + max_advance
    - the slot widened by its buffers conflicts with none of the owner's busy time

``now`` is always passed in, so identical inputs give identical output.

Usage:
    from calendar_engine.scheduling.booking_slots import generate_booking_slots

    slots = generate_booking_slots(page, 30, constraints, events, window, now)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from calendar_engine.availability.busy_time import compute_busy_intervals
from calendar_engine.availability.conflicts import check_conflict_with_constraints
from calendar_engine.errors import require
from calendar_engine.logging_config import get_logger
from calendar_engine.models import (
    BookingCheck,
    BookingPage,
    BookingSlots,
    BusyTimeResult,
    CandidateSlot,
    EventDefinition,
    SchedulingConstraints,
    TimeWindow,
    Weekday,
)
from calendar_engine.recurrence import RecurrenceExpander
from calendar_engine.timeutil import daterange, ensure_utc, get_zone, local_to_utc

logger = get_logger(__name__)

# BookingCheck reasons
PAGE_INACTIVE = "page_inactive"
OUTSIDE_AVAILABILITY = "outside_availability_window"
INSUFFICIENT_NOTICE = "insufficient_notice"
BEYOND_ADVANCE_LIMIT = "beyond_advance_limit"
DAILY_LIMIT_REACHED = "daily_limit_reached"
SLOT_CONFLICT = "conflict"


def bookings_per_day(page: BookingPage, events: Iterable[EventDefinition]) -> Counter:
    """Count the page's existing bookings per local date."""
    zone = get_zone(page.timezone)
    tag = page.booking_tag
    return Counter(
        e.start.astimezone(zone).date()
        for e in events
        if e.owner_id == page.owner_id and not e.cancelled and tag in e.tags
    )


def _day_bounds(page: BookingPage, day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    return local_to_utc(day, page.daily_start, zone), local_to_utc(day, page.daily_end, zone)


def _owner_busy(
    page: BookingPage,
    window: TimeWindow,
    constraints: SchedulingConstraints,
    owner_events: Iterable[EventDefinition],
    expander: Optional[RecurrenceExpander],
) -> BusyTimeResult:
    query = window.expanded(
        timedelta(minutes=constraints.buffer_before_minutes),
        timedelta(minutes=constraints.buffer_after_minutes),
    )
    return compute_busy_intervals(page.owner_id, query, page.owner_id, owner_events, expander=expander)


def _validate(duration_minutes: int, constraints: SchedulingConstraints) -> None:
    require(duration_minutes > 0, "duration must be positive", "duration_minutes")
    constraints.validate()


def generate_booking_slots(
    page: BookingPage,
    duration_minutes: int,
    constraints: SchedulingConstraints,
    owner_events: Iterable[EventDefinition],
    window: TimeWindow,
    now: datetime,
    expander: Optional[RecurrenceExpander] = None,
) -> BookingSlots:
    """
    Generate the bookable slots of ``page`` inside ``window``.

    Args:
        page: Daily availability window, weekdays and timezone of the page
        duration_minutes: Length of each slot
        constraints: Notice, advance, buffer, granularity and daily cap rules
        owner_events: The page owner's events (series, exceptions, bookings)
        window: Bounded query window; offered slots lie entirely inside it
        now: Reference instant for notice and advance limits

    Returns:
        BookingSlots in start order, each naming the owner as available;
        ``truncated`` is set when the owner's busy time was cut short
    """
    _validate(duration_minutes, constraints)
    require(window.end is not None, "booking window needs an end", "window.end")
    require(window.start < window.end, "window start must be before end", "window.start")
    if not page.is_active:
        return BookingSlots()

    now, _ = ensure_utc(now, "now")
    owner_events = list(owner_events)
    zone = get_zone(page.timezone)
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=constraints.slot_granularity_minutes)
    earliest = now + timedelta(minutes=constraints.min_notice_minutes)
    latest = now + timedelta(days=constraints.max_advance_days)

    busy = _owner_busy(page, window, constraints, owner_events, expander)
    booked = bookings_per_day(page, owner_events)

    first_day = window.start.astimezone(zone).date()
    last_day = (window.end - timedelta(microseconds=1)).astimezone(zone).date()
    slots: list[CandidateSlot] = []

    for day in daterange(first_day, last_day):
        if Weekday.of(day) not in page.enabled_weekdays:
            continue
        cap = constraints.max_bookings_per_day
        if cap is not None and booked[day] >= cap:
            continue

        day_start, day_end = _day_bounds(page, day, zone)
        current = day_start
        while current + duration <= day_end:
            if current > latest:
                break
            end = current + duration
            if current >= earliest and current >= window.start and end <= window.end:
                result = check_conflict_with_constraints(TimeWindow(current, end), constraints, busy)
                if not result.conflict:
                    slots.append(
                        CandidateSlot(start=current, end=end, available_participant_ids=[page.owner_id])
                    )
            current += step

        if day_start > latest:
            break

    logger.debug(
        "booking_slots_generated",
        page_id=page.page_id,
        owner_id=page.owner_id,
        slots=len(slots),
        busy_intervals=len(busy),
        truncated=busy.truncated,
    )
    return BookingSlots(slots=slots, truncated=busy.truncated)


def check_booking_slot(
    page: BookingPage,
    start: datetime,
    duration_minutes: int,
    constraints: SchedulingConstraints,
    owner_events: Iterable[EventDefinition],
    now: datetime,
    expander: Optional[RecurrenceExpander] = None,
) -> BookingCheck:
    """
    Validate one requested booking and name the first rule it breaks.

    Rules are checked in order: page active, availability window, minimum
    notice, maximum advance, daily cap, conflicts (with buffers).
    """
    _validate(duration_minutes, constraints)
    if not page.is_active:
        return BookingCheck(False, PAGE_INACTIVE)

    start, _ = ensure_utc(start, "start")
    now, _ = ensure_utc(now, "now")
    owner_events = list(owner_events)
    zone = get_zone(page.timezone)
    end = start + timedelta(minutes=duration_minutes)

    local_start, local_end = start.astimezone(zone), end.astimezone(zone)
    day = local_start.date()
    day_start, day_end = _day_bounds(page, day, zone)
    if (
        Weekday.of(day) not in page.enabled_weekdays
        or local_end.date() != day
        or start < day_start
        or end > day_end
    ):
        return _rejected(page, start, OUTSIDE_AVAILABILITY)

    if start < now + timedelta(minutes=constraints.min_notice_minutes):
        return _rejected(page, start, INSUFFICIENT_NOTICE)
    if start > now + timedelta(days=constraints.max_advance_days):
        return _rejected(page, start, BEYOND_ADVANCE_LIMIT)

    cap = constraints.max_bookings_per_day
    if cap is not None and bookings_per_day(page, owner_events)[day] >= cap:
        return _rejected(page, start, DAILY_LIMIT_REACHED)

    candidate = TimeWindow(start, end)
    busy = _owner_busy(page, candidate, constraints, owner_events, expander)
    result = check_conflict_with_constraints(candidate, constraints, busy)
    if result.conflict:
        logger.info(
            "booking_slot_conflict",
            page_id=page.page_id,
            start=start.isoformat(),
            conflicting_sources=result.conflicting_sources,
        )
        return BookingCheck(False, SLOT_CONFLICT, truncated=busy.truncated)

    return BookingCheck(True, truncated=busy.truncated)


def _rejected(page: BookingPage, start: datetime, reason: str) -> BookingCheck:
    logger.info("booking_slot_rejected", page_id=page.page_id, start=start.isoformat(), reason=reason)
    return BookingCheck(False, reason)
