"""
Collaborators the engine depends on, plus in-process defaults.

The engine never reads storage, permissions or the wall clock directly:

    EventSource       async get_events(owner_id, window) -> list[EventDefinition]
    PermissionOracle  async can_view(target_user_id, requester_id) -> ViewPermission
    Clock             now() -> datetime

Defaults:
    InMemoryEventSource   dict-backed store, handy for tests and embedding
    SharingPolicyOracle   free/busy sharing levels per user
    SystemClock / FixedClock
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from calendar_engine.models import EventDefinition, TimeWindow
from calendar_engine.timeutil import UTC, to_utc


@dataclass(frozen=True)
class ViewPermission:
    """May the requester see the target's busy time, and with details?"""

    allowed: bool
    detail_visible: bool = False


@runtime_checkable
class EventSource(Protocol):
    async def get_events(self, owner_id: str, window: TimeWindow) -> list[EventDefinition]:
        """Events of ``owner_id`` relevant to ``window``, including series and exceptions."""
        ...


@runtime_checkable
class PermissionOracle(Protocol):
    async def can_view(self, target_user_id: str, requester_id: str) -> ViewPermission:
        ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        ...


# =============================================================================
# Clocks
# =============================================================================


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Always returns the same instant; advance() moves it."""

    def __init__(self, instant: datetime):
        self._instant = to_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta) -> None:
        self._instant += timedelta(**delta)


# =============================================================================
# In-memory event store
# =============================================================================


class InMemoryEventSource:
    """
    Dict-backed EventSource.

    ``get_events`` returns every series that could produce an occurrence in
    the window (series are not clipped by their first start), every direct
    event overlapping it, and all exception definitions of returned series.
    """

    def __init__(self, events: Optional[Iterable[EventDefinition]] = None):
        self._events: dict[str, list[EventDefinition]] = defaultdict(list)
        self.calls: list[tuple[str, TimeWindow]] = []
        for event in events or ():
            self.add(event)

    def add(self, event: EventDefinition) -> None:
        self._events[event.owner_id].append(event)

    def remove(self, event_id: str) -> None:
        for owner, events in self._events.items():
            self._events[owner] = [e for e in events if e.id != event_id]

    async def get_events(self, owner_id: str, window: TimeWindow) -> list[EventDefinition]:
        self.calls.append((owner_id, window))
        owned = self._events.get(owner_id, [])
        series_ids = {e.id for e in owned if e.is_recurring and _series_may_reach(e, window)}

        selected = []
        for event in owned:
            if event.id in series_ids:
                selected.append(event)
            elif event.parent_event_id in series_ids:
                selected.append(event)
            elif not event.is_recurring and window.overlaps(event.start, event.end):
                selected.append(event)
        return selected


def _series_may_reach(event: EventDefinition, window: TimeWindow) -> bool:
    return window.end is None or event.start < window.end


# =============================================================================
# Free/busy sharing
# =============================================================================


class SharingLevel(str, Enum):
    NONE = "none"
    TEAM_MEMBERS = "team_members"
    ORGANIZATION = "organization"
    PUBLIC = "public"


@dataclass(frozen=True)
class SharingSettings:
    publish_free_busy: bool = True
    level: SharingLevel = SharingLevel.ORGANIZATION
    show_details: bool = False


class SharingPolicyOracle:
    """
    PermissionOracle driven by per-user sharing settings.

    Owners always see their own calendar in full. Otherwise the target's
    settings decide: nothing when unpublished or level NONE, team mates only
    for TEAM_MEMBERS, everyone for ORGANIZATION and PUBLIC. Details are
    only visible for PUBLIC sharing with ``show_details`` enabled.
    """

    def __init__(
        self,
        settings: Optional[Mapping[str, SharingSettings]] = None,
        teams: Optional[Mapping[str, Iterable[str]]] = None,
        default: SharingSettings = SharingSettings(),
    ):
        self.settings = dict(settings or {})
        self.default = default
        self._teams_of: dict[str, set[str]] = defaultdict(set)
        for team, members in (teams or {}).items():
            for member in members:
                self._teams_of[member].add(team)

    def same_team(self, a: str, b: str) -> bool:
        return bool(self._teams_of.get(a, set()) & self._teams_of.get(b, set()))

    async def can_view(self, target_user_id: str, requester_id: str) -> ViewPermission:
        if target_user_id == requester_id:
            return ViewPermission(allowed=True, detail_visible=True)

        settings = self.settings.get(target_user_id, self.default)
        if not settings.publish_free_busy or settings.level == SharingLevel.NONE:
            return ViewPermission(allowed=False)
        if settings.level == SharingLevel.TEAM_MEMBERS and not self.same_team(target_user_id, requester_id):
            return ViewPermission(allowed=False)

        detail_visible = settings.level == SharingLevel.PUBLIC and settings.show_details
        return ViewPermission(allowed=True, detail_visible=detail_visible)


__all__ = [
    "Clock",
    "EventSource",
    "FixedClock",
    "InMemoryEventSource",
    "PermissionOracle",
    "SharingLevel",
    "SharingPolicyOracle",
    "SharingSettings",
    "SystemClock",
    "ViewPermission",
]
