"""
Tool: Engine Models
Purpose: Value objects shared by every stage of the availability pipeline

Usage:
    from calendar_engine.models import EventDefinition, WeeklyRule, Weekday, TimeWindow

All instants are timezone-aware UTC datetimes. Naive datetimes handed to
these constructors are assumed to be UTC and the assumption is recorded in
an ``assumed_utc`` attribute so callers can audit it.

Recurrence rules form a closed union (DailyRule, WeeklyRule, MonthlyRule,
YearlyRule) with a separate end condition (Unbounded, Count, Until). An event
without a rule is a single occurrence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import IntEnum
from typing import Any, Optional, Union

from calendar_engine.errors import ValidationError, require
from calendar_engine.timeutil import ensure_utc

BUSY_LABEL = "Busy"


class Weekday(IntEnum):
    """Day of week, numbered like ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def short_name(self) -> str:
        return ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")[self.value]

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())


WORKING_WEEK = frozenset(Weekday(d) for d in range(5))


# =============================================================================
# Recurrence
# =============================================================================


@dataclass(frozen=True)
class Unbounded:
    """The series never ends on its own."""


@dataclass(frozen=True)
class Count:
    """The series ends after ``n`` occurrences."""

    n: int


@dataclass(frozen=True)
class Until:
    """The series ends on ``date`` (inclusive)."""

    date: date


EndCondition = Union[Unbounded, Count, Until]


@dataclass(frozen=True)
class DailyRule:
    interval: int = 1
    end: EndCondition = Unbounded()


@dataclass(frozen=True)
class WeeklyRule:
    """Weekly recurrence; an empty ``days_of_week`` repeats on the start's weekday."""

    days_of_week: frozenset = frozenset()
    interval: int = 1
    end: EndCondition = Unbounded()

    def __post_init__(self):
        object.__setattr__(
            self, "days_of_week", frozenset(Weekday(int(d)) for d in self.days_of_week)
        )


@dataclass(frozen=True)
class MonthlyRule:
    interval: int = 1
    end: EndCondition = Unbounded()


@dataclass(frozen=True)
class YearlyRule:
    interval: int = 1
    end: EndCondition = Unbounded()


RecurrenceRule = Union[DailyRule, WeeklyRule, MonthlyRule, YearlyRule]

_PATTERNS: dict[str, type] = {
    "daily": DailyRule,
    "weekly": WeeklyRule,
    "monthly": MonthlyRule,
    "yearly": YearlyRule,
}


def rule_to_dict(rule: RecurrenceRule) -> dict[str, Any]:
    """Serialize a recurrence rule to a plain dict."""
    pattern = next(name for name, cls in _PATTERNS.items() if isinstance(rule, cls))
    data: dict[str, Any] = {"pattern": pattern, "interval": rule.interval}
    if isinstance(rule, WeeklyRule):
        data["days_of_week"] = sorted(int(d) for d in rule.days_of_week)
    if isinstance(rule.end, Count):
        data["count"] = rule.end.n
    elif isinstance(rule.end, Until):
        data["until"] = rule.end.date.isoformat()
    return data


def rule_from_dict(data: dict[str, Any]) -> Optional[RecurrenceRule]:
    """
    Build a recurrence rule from a plain dict.

    Accepts {"pattern": "weekly", "interval": 1, "days_of_week": [0, 2],
    "count": 5} or {"until": "2026-12-31"}. Pattern "none" (or a missing
    pattern) yields None.
    """
    pattern = (data.get("pattern") or "none").lower()
    if pattern == "none":
        return None
    if pattern not in _PATTERNS:
        raise ValidationError(f"unknown recurrence pattern {pattern!r}", field="pattern")

    if data.get("count") is not None:
        end: EndCondition = Count(int(data["count"]))
    elif data.get("until"):
        until = data["until"]
        end = Until(date.fromisoformat(until) if isinstance(until, str) else until)
    else:
        end = Unbounded()

    kwargs: dict[str, Any] = {"interval": int(data.get("interval", 1)), "end": end}
    if pattern == "weekly":
        kwargs["days_of_week"] = frozenset(data.get("days_of_week") or ())
    return _PATTERNS[pattern](**kwargs)


# =============================================================================
# Windows and events
# =============================================================================


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open interval [start, end).

    ``end`` may be None only for recurrence expansion queries, where it means
    "no upper bound" (the expander applies its own hard cap).
    """

    start: datetime
    end: Optional[datetime] = None
    assumed_utc: bool = field(default=False, compare=False)

    def __post_init__(self):
        start, assumed_start = ensure_utc(self.start, "window.start")
        object.__setattr__(self, "start", start)
        assumed = assumed_start
        if self.end is not None:
            end, assumed_end = ensure_utc(self.end, "window.end")
            object.__setattr__(self, "end", end)
            assumed = assumed or assumed_end
        object.__setattr__(self, "assumed_utc", assumed or self.assumed_utc)

    @property
    def bounded(self) -> bool:
        return self.end is not None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end is None:
            return None
        return self.end - self.start

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Strict half-open overlap; touching endpoints do not overlap."""
        if self.end is not None and start >= self.end:
            return False
        return end > self.start

    def expanded(self, before: timedelta, after: timedelta) -> "TimeWindow":
        end = None if self.end is None else self.end + after
        return TimeWindow(self.start - before, end, assumed_utc=self.assumed_utc)


@dataclass
class EventDefinition:
    """
    A stored calendar event as handed over by an EventSource.

    Recurring series carry a ``recurrence`` rule. A modified or cancelled
    single occurrence is its own definition with ``parent_event_id`` set,
    ``is_exception`` True and ``exception_date`` naming the original date.
    """

    id: str
    owner_id: str
    start: datetime
    end: datetime
    all_day: bool = False
    recurrence: Optional[RecurrenceRule] = None
    parent_event_id: Optional[str] = None
    is_exception: bool = False
    exception_date: Optional[date] = None
    is_private: bool = False

    title: str = ""
    location: Optional[str] = None
    timezone: str = "UTC"
    cancelled: bool = False
    transparent: bool = False  # shown as free
    tags: list[str] = field(default_factory=list)

    assumed_utc: bool = field(default=False, compare=False)

    def __post_init__(self):
        self.start, assumed_start = ensure_utc(self.start, "event.start")
        self.end, assumed_end = ensure_utc(self.end, "event.end")
        self.assumed_utc = self.assumed_utc or assumed_start or assumed_end

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() / 60)

    @property
    def all_day_span_days(self) -> int:
        """Number of calendar days an all-day event covers (at least 1)."""
        return max(1, (self.end.date() - self.start.date()).days)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "all_day": self.all_day,
            "recurrence": rule_to_dict(self.recurrence) if self.recurrence else None,
            "parent_event_id": self.parent_event_id,
            "is_exception": self.is_exception,
            "exception_date": self.exception_date.isoformat() if self.exception_date else None,
            "is_private": self.is_private,
            "title": self.title,
            "location": self.location,
            "timezone": self.timezone,
            "cancelled": self.cancelled,
            "transparent": self.transparent,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventDefinition":
        """Create from dict."""
        data = data.copy()
        for time_field in ["start", "end"]:
            if isinstance(data.get(time_field), str):
                data[time_field] = datetime.fromisoformat(data[time_field].replace("Z", "+00:00"))
        if isinstance(data.get("exception_date"), str):
            data["exception_date"] = date.fromisoformat(data["exception_date"])
        if isinstance(data.get("recurrence"), dict):
            data["recurrence"] = rule_from_dict(data["recurrence"])
        return cls(**data)


# =============================================================================
# Derived values
# =============================================================================


@dataclass(frozen=True)
class OccurrenceInstance:
    """One concrete (start, end) materialization of an event."""

    start: datetime
    end: datetime
    source_event_id: str
    is_exception: bool = False
    original_date: Optional[date] = None
    all_day: bool = False
    assumed_utc: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class BusyInterval:
    """A span during which ``owner_id`` is unavailable, attributed to one source event."""

    start: datetime
    end: datetime
    owner_id: str
    source_id: str
    is_private: bool = False
    detail: str = BUSY_LABEL
    location: Optional[str] = None
    redacted: bool = False
    assumed_utc: bool = False

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Strict half-open overlap with [start, end)."""
        return self.start < end and self.end > start

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "owner_id": self.owner_id,
            "source_id": self.source_id,
            "is_private": self.is_private,
            "detail": self.detail,
            "location": self.location,
            "redacted": self.redacted,
        }


@dataclass(frozen=True)
class SchedulingConstraints:
    """Booking rules applied to every candidate slot."""

    min_notice_minutes: int = 0
    max_advance_days: int = 60
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    slot_granularity_minutes: int = 15
    max_bookings_per_day: Optional[int] = None

    def validate(self) -> None:
        require(self.min_notice_minutes >= 0, "must not be negative", "min_notice_minutes")
        require(self.max_advance_days >= 0, "must not be negative", "max_advance_days")
        require(self.buffer_before_minutes >= 0, "must not be negative", "buffer_before_minutes")
        require(self.buffer_after_minutes >= 0, "must not be negative", "buffer_after_minutes")
        require(self.slot_granularity_minutes > 0, "must be positive", "slot_granularity_minutes")
        require(
            self.max_bookings_per_day is None or self.max_bookings_per_day >= 1,
            "must be at least 1 when set",
            "max_bookings_per_day",
        )

    @classmethod
    def from_config(cls, config: Any) -> "SchedulingConstraints":
        """Build from a BookingConfig section."""
        return cls(
            min_notice_minutes=config.min_notice_minutes,
            max_advance_days=config.max_advance_days,
            buffer_before_minutes=config.buffer_before_minutes,
            buffer_after_minutes=config.buffer_after_minutes,
            slot_granularity_minutes=config.slot_granularity_minutes,
            max_bookings_per_day=config.max_bookings_per_day,
        )


@dataclass(frozen=True)
class BookingPage:
    """Recurring daily availability window of a booking page, in its own timezone."""

    owner_id: str
    page_id: str = ""
    daily_start: time = time(9, 0)
    daily_end: time = time(17, 0)
    enabled_weekdays: frozenset = WORKING_WEEK
    timezone: str = "UTC"
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(
            self, "enabled_weekdays", frozenset(Weekday(int(d)) for d in self.enabled_weekdays)
        )
        require(self.daily_start < self.daily_end, "daily_start must be before daily_end", "daily_start")

    @property
    def booking_tag(self) -> str:
        return f"booking-page-{self.page_id}"

    @classmethod
    def from_config(cls, owner_id: str, page_id: str, config: Any) -> "BookingPage":
        return cls(
            owner_id=owner_id,
            page_id=page_id,
            daily_start=config.daily_start,
            daily_end=config.daily_end,
            enabled_weekdays=frozenset(config.enabled_weekdays),
            timezone=config.timezone,
        )


@dataclass(frozen=True)
class BookingCheck:
    """Outcome of validating one requested booking slot."""

    bookable: bool
    reason: Optional[str] = None
    truncated: bool = False


@dataclass(frozen=True)
class ConflictResult:
    conflict: bool
    conflicting: tuple = ()

    @property
    def conflicting_sources(self) -> list[str]:
        """Source ids of the conflicting intervals, first-seen order, no repeats."""
        return list(dict.fromkeys(b.source_id for b in self.conflicting))


@dataclass
class AvailabilitySummary:
    """Who can and cannot attend during [start, end)."""

    start: datetime
    end: datetime
    available_ids: list[str] = field(default_factory=list)
    busy_ids: list[str] = field(default_factory=list)
    unknown_ids: list[str] = field(default_factory=list)
    conflicting_source_ids: list[str] = field(default_factory=list)
    assumed_available_ids: list[str] = field(default_factory=list)

    @property
    def available(self) -> int:
        return len(self.available_ids)

    @property
    def busy(self) -> int:
        return len(self.busy_ids)

    @property
    def unknown(self) -> int:
        return len(self.unknown_ids)

    @property
    def total(self) -> int:
        return self.available + self.busy

    @property
    def availability_percentage(self) -> float:
        return self.available / self.total * 100 if self.total else 0.0

    @property
    def all_available(self) -> bool:
        return self.total > 0 and self.busy == 0

    @property
    def quality_score(self) -> float:
        """Availability percentage minus up to 20 points for participants of unknown status."""
        considered = self.total + self.unknown
        if considered == 0:
            return 0.0
        score = self.availability_percentage - self.unknown / considered * 20
        return max(0.0, min(100.0, score))


@dataclass
class CandidateSlot:
    """A proposed meeting or booking time under evaluation."""

    start: datetime
    end: datetime
    available_participant_ids: list[str] = field(default_factory=list)
    busy_participant_ids: list[str] = field(default_factory=list)
    score: Optional[float] = None
    justification: str = ""
    rank: Optional[int] = None
    unknown_participant_ids: list[str] = field(default_factory=list)
    conflicting_source_ids: list[str] = field(default_factory=list)

    @property
    def available_count(self) -> int:
        return len(self.available_participant_ids)

    @property
    def conflict_count(self) -> int:
        return len(self.busy_participant_ids)

    @property
    def total_count(self) -> int:
        return self.available_count + self.conflict_count

    @property
    def availability_percentage(self) -> float:
        return self.available_count / self.total_count * 100 if self.total_count else 0.0

    @property
    def all_available(self) -> bool:
        return self.total_count > 0 and self.conflict_count == 0

    @property
    def quality(self) -> str:
        """Excellent / Good / Fair / Poor band of the score."""
        score = self.score or 0.0
        if score >= 90:
            return "Excellent"
        if score >= 70:
            return "Good"
        if score >= 50:
            return "Fair"
        return "Poor"

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available_participant_ids": list(self.available_participant_ids),
            "busy_participant_ids": list(self.busy_participant_ids),
            "unknown_participant_ids": list(self.unknown_participant_ids),
            "conflicting_source_ids": list(self.conflicting_source_ids),
            "score": self.score,
            "rank": self.rank,
            "justification": self.justification,
            "all_available": self.all_available,
        }


@dataclass
class RankedResult:
    """
    Ranked suggestions from a multi-attendee search.

    ``truncated`` is True when the search stopped at its candidate or time
    budget, in which case the slots are ranked over the candidates seen so
    far. It is also set when an attendee's busy time was cut short by a
    recurrence expansion cap.
    """

    slots: list[CandidateSlot] = field(default_factory=list)
    truncated: bool = False
    candidates_evaluated: int = 0
    assumed_utc: bool = False

    def __iter__(self):
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def __getitem__(self, index: int) -> CandidateSlot:
        return self.slots[index]


@dataclass
class BusyTimeResult:
    """
    One person's busy intervals for a window.

    ``truncated`` is True when a recurring series hit an expansion cap, so
    later occurrences in the window are missing from ``intervals``.
    """

    intervals: list[BusyInterval] = field(default_factory=list)
    truncated: bool = False

    def __iter__(self):
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def __getitem__(self, index: int) -> BusyInterval:
        return self.intervals[index]


@dataclass
class BookingSlots:
    """Bookable slots for a page; ``truncated`` mirrors the owner's busy time."""

    slots: list[CandidateSlot] = field(default_factory=list)
    truncated: bool = False

    def __iter__(self):
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def __getitem__(self, index: int) -> CandidateSlot:
        return self.slots[index]
