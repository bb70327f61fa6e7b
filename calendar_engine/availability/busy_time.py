"""
Tool: Busy Time Extractor
Purpose: Turn one person's event definitions into attributed busy intervals

Every contributing occurrence yields exactly one BusyInterval. Overlapping
intervals are never merged so conflicts can be traced to their source event.

Privacy:
    - The owner always sees full detail.
    - Anyone else sees private events as a generic "Busy" block.
    - When the viewer is not allowed detail at all (detail_visible=False),
      every block is redacted, but the busy time itself is kept.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import Optional

from calendar_engine.errors import require
from calendar_engine.logging_config import get_logger
from calendar_engine.models import BUSY_LABEL, BusyInterval, BusyTimeResult, EventDefinition, TimeWindow
from calendar_engine.recurrence import RecurrenceExpander

logger = get_logger(__name__)


def _is_exception(event: EventDefinition) -> bool:
    return event.is_exception and event.parent_event_id is not None


def compute_busy_intervals(
    owner_id: str,
    window: TimeWindow,
    viewer_id: str,
    events: Iterable[EventDefinition],
    detail_visible: bool = True,
    expander: Optional[RecurrenceExpander] = None,
) -> BusyTimeResult:
    """
    Compute ``owner_id``'s busy intervals inside ``window`` as seen by ``viewer_id``.

    Args:
        owner_id: Person whose calendar is evaluated
        window: Bounded half-open query window
        viewer_id: Person asking; drives redaction
        events: Direct events, series and exception definitions for the owner
        detail_visible: Whether the viewer may see titles of non-private events
        expander: Recurrence expander (defaults to a fresh one)

    Returns:
        BusyTimeResult with intervals sorted by start; ``truncated`` is set when
        a recurring series hit an expansion cap inside the window
    """
    require(window.end is not None, "busy time needs a bounded window", "window.end")
    expander = expander or RecurrenceExpander()

    owned = [e for e in events if e.owner_id == owner_id]
    by_id = {e.id: e for e in owned}

    exceptions_by_parent: dict[str, list[EventDefinition]] = defaultdict(list)
    for event in owned:
        if _is_exception(event) and event.parent_event_id in by_id:
            exceptions_by_parent[event.parent_event_id].append(event)

    redact_all = viewer_id != owner_id and not detail_visible
    intervals: list[BusyInterval] = []
    truncated = False

    for event in owned:
        if _is_exception(event) and event.parent_event_id in by_id:
            continue  # expanded together with its series
        if event.cancelled:
            continue

        expansion = expander.expand(event, window, exceptions_by_parent.get(event.id, ()))
        truncated = truncated or expansion.truncated
        for occurrence in expansion.occurrences:
            source = by_id.get(occurrence.source_event_id, event)
            if source.transparent or source.cancelled:
                continue

            redacted = redact_all or (source.is_private and viewer_id != owner_id)
            intervals.append(
                BusyInterval(
                    start=occurrence.start,
                    end=occurrence.end,
                    owner_id=owner_id,
                    source_id=source.id,
                    is_private=source.is_private,
                    detail=BUSY_LABEL if redacted else (source.title or BUSY_LABEL),
                    location=None if redacted else source.location,
                    redacted=redacted,
                    assumed_utc=occurrence.assumed_utc or window.assumed_utc,
                )
            )

    intervals.sort(key=lambda b: (b.start, b.end, b.source_id))
    if truncated:
        logger.warning("busy_time_truncated", owner_id=owner_id, intervals=len(intervals))
    return BusyTimeResult(intervals=intervals, truncated=truncated)


def any_truncated(busy_by_participant: Mapping[str, Iterable[BusyInterval]]) -> bool:
    """True when any participant's busy time was cut short by an expansion cap."""
    return any(isinstance(busy, BusyTimeResult) and busy.truncated for busy in busy_by_participant.values())


class BusyTimeExtractor:
    """Holds a configured expander; see ``compute_busy_intervals``."""

    def __init__(self, expander: Optional[RecurrenceExpander] = None):
        self.expander = expander or RecurrenceExpander()

    def extract(
        self,
        owner_id: str,
        window: TimeWindow,
        viewer_id: str,
        events: Iterable[EventDefinition],
        detail_visible: bool = True,
    ) -> BusyTimeResult:
        return compute_busy_intervals(
            owner_id, window, viewer_id, events, detail_visible=detail_visible, expander=self.expander
        )
