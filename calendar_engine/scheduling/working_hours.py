"""
Working-hours policy and candidate generation for multi-attendee search.

Candidates step through the search window at a fixed interval, starting at
the first working instant at or after the window start. A candidate is
kept only if it starts and ends inside the working hours of a single local
working day; when it would not fit, generation jumps to the next working
instant.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from calendar_engine.errors import require
from calendar_engine.models import WORKING_WEEK, TimeWindow, Weekday
from calendar_engine.timeutil import UTC, get_zone


@dataclass(frozen=True)
class WorkingHoursPolicy:
    """Working days and hours, interpreted in ``timezone`` (default Mon-Fri 09:00-17:00 UTC)."""

    start: time = time(9, 0)
    end: time = time(17, 0)
    days: frozenset = WORKING_WEEK
    timezone: str = "UTC"

    def __post_init__(self):
        object.__setattr__(self, "days", frozenset(Weekday(int(d)) for d in self.days))
        require(self.start < self.end, "working hours start must be before end", "working_hours.start")
        require(len(self.days) > 0, "at least one working day is required", "working_hours.days")
        get_zone(self.timezone)

    @classmethod
    def from_config(cls, config) -> "WorkingHoursPolicy":
        return cls(start=config.start, end=config.end, days=frozenset(config.days), timezone=config.timezone)

    @property
    def zone(self) -> ZoneInfo:
        return get_zone(self.timezone)

    @property
    def day_length(self) -> timedelta:
        return datetime.combine(datetime.min, self.end) - datetime.combine(datetime.min, self.start)

    def local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.zone)

    def is_working_day(self, instant: datetime) -> bool:
        return Weekday.of(self.local(instant).date()) in self.days

    def next_working_instant(self, instant: datetime) -> datetime:
        """First instant at or after ``instant`` that falls inside working hours."""
        zone = self.zone
        local = instant.astimezone(zone)
        day, at = local.date(), local.time().replace(tzinfo=None)

        for _ in range(8):
            if Weekday.of(day) in self.days:
                if at < self.start:
                    return datetime.combine(day, self.start, tzinfo=zone).astimezone(UTC)
                if at < self.end:
                    return local.astimezone(UTC)
            day += timedelta(days=1)
            at = time.min
            local = datetime.combine(day, time.min, tzinfo=zone)

        raise RuntimeError("no working day found in a full week")

    def contains(self, start: datetime, end: datetime) -> bool:
        """True when [start, end) lies inside the working hours of one local working day."""
        local_start, local_end = self.local(start), self.local(end)
        if local_start.date() != local_end.date():
            return False
        if Weekday.of(local_start.date()) not in self.days:
            return False
        return local_start.time() >= self.start and local_end.time() <= self.end

    def candidates(self, window: TimeWindow, duration: timedelta, step: timedelta) -> Iterator[TimeWindow]:
        """Yield candidate [start, end) windows of ``duration`` inside ``window``."""
        require(window.end is not None, "search window needs an end", "window.end")
        require(step > timedelta(0), "step must be positive", "step_minutes")
        if duration > self.day_length:
            return

        current = self.next_working_instant(window.start)
        while current < window.end:
            end = current + duration
            if end > window.end:
                break
            if not self.contains(current, end):
                current = self.next_working_instant(current + step)
                continue
            yield TimeWindow(current, end)
            current += step
