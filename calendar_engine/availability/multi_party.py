"""
Tool: Multi-Party Availability Analyzer
Purpose: Intersect several participants' busy time for one candidate window

A participant is busy for [start, end) iff any of their busy intervals
strictly overlaps it. Buffers are not applied; this is raw occupancy.

Participants whose calendars the requester may not view are "unknown".
What happens to them is a policy choice:
    exclude           listed in unknown_ids, left out of totals and scores (default)
    assume_available  counted as available and listed in assumed_available_ids
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Optional

from calendar_engine.errors import ValidationError, require
from calendar_engine.models import AvailabilitySummary, BusyInterval, TimeWindow

UNKNOWN_EXCLUDE = "exclude"
UNKNOWN_ASSUME_AVAILABLE = "assume_available"
UNKNOWN_POLICIES = (UNKNOWN_EXCLUDE, UNKNOWN_ASSUME_AVAILABLE)


def unique_ids(ids: Iterable[str]) -> list[str]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def validate_participants(participant_ids: Sequence[str], unknown_policy: str) -> None:
    require(len(participant_ids) > 0, "at least one participant is required", "participant_ids")
    if unknown_policy not in UNKNOWN_POLICIES:
        raise ValidationError(
            f"unknown_policy must be one of {UNKNOWN_POLICIES}, got {unknown_policy!r}",
            field="unknown_policy",
        )


def analyze_availability(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    window: TimeWindow,
    participant_ids: Optional[Sequence[str]] = None,
    unknown_ids: Collection[str] = (),
    unknown_policy: str = UNKNOWN_EXCLUDE,
    exclude_source_id: Optional[str] = None,
) -> AvailabilitySummary:
    """
    Summarize who is free during ``window``.

    Args:
        busy_by_participant: Busy intervals per participant id
        window: Candidate [start, end)
        participant_ids: Participants in caller order (default: mapping keys)
        unknown_ids: Participants whose availability could not be read
        unknown_policy: "exclude" or "assume_available"
        exclude_source_id: Ignore busy time from this event

    Returns:
        AvailabilitySummary with id lists and conflicting source ids
    """
    if participant_ids is None:
        participant_ids = list(busy_by_participant) + [u for u in unknown_ids if u not in busy_by_participant]
    participant_ids = unique_ids(participant_ids)
    validate_participants(participant_ids, unknown_policy)
    require(window.end is not None, "candidate window needs an end", "window.end")
    require(window.start < window.end, "window start must be before end", "window.start")

    summary = AvailabilitySummary(start=window.start, end=window.end)
    sources: dict[str, None] = {}

    for participant in participant_ids:
        if participant in unknown_ids:
            if unknown_policy == UNKNOWN_ASSUME_AVAILABLE:
                summary.available_ids.append(participant)
                summary.assumed_available_ids.append(participant)
            else:
                summary.unknown_ids.append(participant)
            continue

        conflicting = [
            b
            for b in busy_by_participant.get(participant, ())
            if b.source_id != exclude_source_id and b.overlaps(window.start, window.end)
        ]
        if conflicting:
            summary.busy_ids.append(participant)
            for interval in conflicting:
                sources.setdefault(interval.source_id, None)
        else:
            summary.available_ids.append(participant)

    summary.conflicting_source_ids = list(sources)
    return summary


def is_time_available_for_all(
    busy_by_participant: Mapping[str, Sequence[BusyInterval]],
    window: TimeWindow,
    participant_ids: Optional[Sequence[str]] = None,
) -> bool:
    return analyze_availability(busy_by_participant, window, participant_ids).all_available
