"""
Tool: Recurrence Expander
Purpose: Materialize recurring event definitions into concrete occurrences

Occurrences are computed on demand for a query window and never stored.
Timed events keep their wall-clock time in the event's own timezone, so a
09:00 America/New_York meeting stays at 09:00 local across DST changes.
All-day events are expanded with calendar-date arithmetic only.

Series dates come from a dateutil rruleset built over the event's local
wall-clock start. Modified and cancelled occurrences are registered as
exdates, so a Count end condition still spends them. Monthly and yearly
rules on the 29th to 31st fall back to the month's last day when the day
does not exist: a series on the 31st lands on Feb 28/29, Apr 30, Jun 30 and
returns to the 31st in July.

Expansion is always bounded: by the window end, by ``max_span_days`` past the
window start when the window is unbounded, and by ``max_instances`` emitted
occurrences. Hitting either cap marks the result as truncated.

Usage:
    from calendar_engine.recurrence import expand_recurrence

    result = expand_recurrence(event, TimeWindow(start, end))
    if result.truncated:
        ...
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from dateutil.rrule import DAILY, MO, MONTHLY, WEEKLY, YEARLY, rrule, rruleset

from calendar_engine.errors import ValidationError, require
from calendar_engine.logging_config import get_logger
from calendar_engine.models import (
    Count,
    DailyRule,
    EventDefinition,
    MonthlyRule,
    OccurrenceInstance,
    RecurrenceRule,
    TimeWindow,
    Unbounded,
    Until,
    WeeklyRule,
    YearlyRule,
)
from calendar_engine.timeutil import UTC, get_zone

logger = get_logger(__name__)

DEFAULT_MAX_INSTANCES = 1000
DEFAULT_MAX_SPAN_DAYS = 730

_FREQUENCIES = {DailyRule: DAILY, WeeklyRule: WEEKLY, MonthlyRule: MONTHLY, YearlyRule: YEARLY}


@dataclass
class ExpansionResult:
    """
    Occurrences of one event inside a window, ordered by start.

    ``truncated`` is True when an expansion cap stopped the series early.
    """

    occurrences: list[OccurrenceInstance] = field(default_factory=list)
    truncated: bool = False

    def __iter__(self):
        return iter(self.occurrences)

    def __len__(self) -> int:
        return len(self.occurrences)

    def __getitem__(self, index: int) -> OccurrenceInstance:
        return self.occurrences[index]


def validate_event(event: EventDefinition) -> None:
    """Reject malformed events and rules before any expansion work."""
    require(event.start < event.end, "event start must be before end", "event.start")

    rule = event.recurrence
    if rule is None:
        return

    if not isinstance(rule, (DailyRule, WeeklyRule, MonthlyRule, YearlyRule)):
        raise ValidationError(f"unsupported recurrence rule {type(rule).__name__}", field="recurrence")

    require(rule.interval >= 1, f"interval must be >= 1, got {rule.interval}", "recurrence.interval")

    end = rule.end
    if isinstance(end, Count):
        require(end.n >= 1, f"count must be >= 1, got {end.n}", "recurrence.count")
    elif isinstance(end, Until):
        require(
            end.date >= _anchor_date(event),
            f"until date {end.date} is before the series start {_anchor_date(event)}",
            "recurrence.until",
        )
    elif not isinstance(end, Unbounded):
        raise ValidationError(f"unsupported end condition {type(end).__name__}", field="recurrence.end")


def _anchor_date(event: EventDefinition) -> date:
    if event.all_day:
        return event.start.date()
    return event.start.astimezone(get_zone(event.timezone)).date()


def _wall_clock(event: EventDefinition) -> time:
    if event.all_day:
        return time.min
    return event.start.astimezone(get_zone(event.timezone)).time()


def _month_day(day: int) -> dict[str, Any]:
    # (day, -1) with bysetpos=1 picks ``day`` when the month has it, else the last day
    if day > 28:
        return {"bymonthday": (day, -1), "bysetpos": 1}
    return {"bymonthday": day}


def build_rule_set(event: EventDefinition, exceptions: Iterable[EventDefinition] = ()) -> rruleset:
    """
    Build the dateutil rruleset for a recurring event.

    The rule runs on naive local wall-clock datetimes in the event's timezone
    (UTC midnights for all-day events); ``exceptions`` with an
    ``exception_date`` become exdates.
    """
    rule = event.recurrence
    # rrule drops microseconds from dtstart; exdates must match what it yields
    dtstart = datetime.combine(_anchor_date(event), _wall_clock(event)).replace(microsecond=0)
    options: dict[str, Any] = {"dtstart": dtstart, "interval": rule.interval, "wkst": MO}

    if isinstance(rule, WeeklyRule):
        days = sorted(rule.days_of_week) or [dtstart.weekday()]
        options["byweekday"] = tuple(int(d) for d in days)
    elif isinstance(rule, MonthlyRule):
        options.update(_month_day(dtstart.day))
    elif isinstance(rule, YearlyRule):
        options["bymonth"] = dtstart.month
        options.update(_month_day(dtstart.day))

    end = rule.end
    if isinstance(end, Count):
        options["count"] = end.n
    elif isinstance(end, Until):
        options["until"] = datetime.combine(end.date, time.max)

    rule_set = rruleset()
    rule_set.rrule(rrule(_FREQUENCIES[type(rule)], **options))
    for exception in exceptions:
        if exception.exception_date is not None:
            rule_set.exdate(datetime.combine(exception.exception_date, dtstart.time()))
    return rule_set


class RecurrenceExpander:
    """Expands one event definition into occurrences within a query window."""

    def __init__(
        self,
        max_instances: int = DEFAULT_MAX_INSTANCES,
        max_span_days: int = DEFAULT_MAX_SPAN_DAYS,
    ):
        self.max_instances = max_instances
        self.max_span_days = max_span_days

    @classmethod
    def from_config(cls, config) -> "RecurrenceExpander":
        return cls(max_instances=config.max_instances, max_span_days=config.max_span_days)

    def expand(
        self,
        event: EventDefinition,
        window: TimeWindow,
        exceptions: Iterable[EventDefinition] = (),
    ) -> ExpansionResult:
        """
        Expand ``event`` into occurrences intersecting ``window``.

        Args:
            event: Series (or single) event definition
            window: Half-open query window; ``end`` may be None
            exceptions: Modified or cancelled single occurrences of the series

        Returns:
            ExpansionResult with occurrences ordered by start
        """
        validate_event(event)
        exceptions = [e for e in exceptions if e.parent_event_id == event.id]
        for exception in exceptions:
            validate_event(exception)

        if event.recurrence is None:
            return ExpansionResult(occurrences=self._literal(event, window))

        horizon = window.end
        if horizon is None:
            horizon = window.start + timedelta(days=self.max_span_days)

        rule_set = build_rule_set(event, exceptions)
        occurrences: list[OccurrenceInstance] = []
        truncated = False

        for local_start in rule_set.xafter(self._not_before(event, window), inc=True):
            day = local_start.date()
            start, end = self._bounds(event, day)
            if start >= horizon:
                truncated = window.end is None
                break

            if not window.overlaps(start, end):
                continue

            if len(occurrences) >= self.max_instances:
                truncated = True
                break

            occurrences.append(
                OccurrenceInstance(
                    start=start,
                    end=end,
                    source_event_id=event.id,
                    original_date=day,
                    all_day=event.all_day,
                    assumed_utc=event.assumed_utc,
                )
            )

        for exception in exceptions:
            if exception.cancelled:
                continue
            for occurrence in self._literal(exception, window):
                occurrences.append(occurrence)

        if truncated:
            logger.warning(
                "recurrence_expansion_truncated",
                event_id=event.id,
                emitted=len(occurrences),
                max_instances=self.max_instances,
                max_span_days=self.max_span_days,
            )

        return ExpansionResult(occurrences=_dedupe(occurrences), truncated=truncated)

    @staticmethod
    def _not_before(event: EventDefinition, window: TimeWindow) -> datetime:
        """Earliest local series start that can still overlap the window."""
        lookback = window.start - event.duration - timedelta(days=1)
        if event.all_day:
            return lookback.astimezone(UTC).replace(tzinfo=None)
        return lookback.astimezone(get_zone(event.timezone)).replace(tzinfo=None)

    @staticmethod
    def _bounds(event: EventDefinition, day: date) -> tuple[datetime, datetime]:
        if event.all_day:
            start = datetime.combine(day, time.min, tzinfo=UTC)
            return start, start + timedelta(days=event.all_day_span_days)

        start = datetime.combine(day, _wall_clock(event), tzinfo=get_zone(event.timezone)).astimezone(UTC)
        return start, start + event.duration

    @staticmethod
    def _literal(event: EventDefinition, window: TimeWindow) -> list[OccurrenceInstance]:
        if not window.overlaps(event.start, event.end):
            return []
        return [
            OccurrenceInstance(
                start=event.start,
                end=event.end,
                source_event_id=event.id,
                is_exception=event.is_exception,
                original_date=event.exception_date or event.start.date(),
                all_day=event.all_day,
                assumed_utc=event.assumed_utc,
            )
        ]


def _dedupe(occurrences: Sequence[OccurrenceInstance]) -> list[OccurrenceInstance]:
    seen: set[tuple[datetime, datetime]] = set()
    unique = []
    for occurrence in sorted(occurrences, key=lambda o: (o.start, o.end, o.is_exception)):
        key = (occurrence.start, occurrence.end)
        if key in seen:
            continue
        seen.add(key)
        unique.append(occurrence)
    return unique


def expand_recurrence(
    event: EventDefinition,
    window: TimeWindow,
    exceptions: Iterable[EventDefinition] = (),
    expander: Optional[RecurrenceExpander] = None,
) -> ExpansionResult:
    """Expand ``event`` with the default (or given) expander."""
    return (expander or RecurrenceExpander()).expand(event, window, exceptions)


def describe_recurrence(rule: Optional[RecurrenceRule]) -> str:
    """
    Human-readable summary of a rule.

    Examples:
        "Does not repeat"
        "Repeats every 2 days, 5 times"
        "Repeats weekly on Mon, Wed, until Mar 1, 2026"
    """
    if rule is None:
        return "Does not repeat"

    every = f"every {rule.interval} " if rule.interval > 1 else "every "
    plural = "s" if rule.interval > 1 else ""

    if isinstance(rule, DailyRule):
        text = f"Repeats {every}day{plural}"
    elif isinstance(rule, WeeklyRule):
        cadence = f"every {rule.interval} weeks" if rule.interval > 1 else "weekly"
        text = f"Repeats {cadence}"
        if rule.days_of_week:
            text += " on " + ", ".join(d.short_name for d in sorted(rule.days_of_week))
    elif isinstance(rule, MonthlyRule):
        text = f"Repeats {every}month{plural}"
    elif isinstance(rule, YearlyRule):
        text = f"Repeats {every}year{plural}"
    else:
        raise TypeError(f"unsupported recurrence rule {type(rule).__name__}")

    end = rule.end
    if isinstance(end, Count):
        text += f", {end.n} times"
    elif isinstance(end, Until):
        text += f", until {end.date.strftime('%b')} {end.date.day}, {end.date.year}"
    return text
