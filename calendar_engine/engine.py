"""
Tool: Scheduling Engine
Purpose: Async facade over the pure availability and scheduling core

Each call reads what it needs from the collaborators once (events per
participant, fanned out with asyncio.gather under a semaphore), then runs
the synchronous core on those snapshots. ``now`` always comes from the
injected Clock.

Usage:
    from calendar_engine import SchedulingEngine
    from calendar_engine.collaborators import InMemoryEventSource, SharingPolicyOracle, SystemClock

    engine = SchedulingEngine(InMemoryEventSource(events), SharingPolicyOracle(), SystemClock())
    result = await engine.find_optimal_times(["a", "b", "c"], 30, window, 5, requester_id="a")
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Optional

from calendar_engine.availability.busy_time import compute_busy_intervals
from calendar_engine.availability.conflicts import check_conflict_with_constraints
from calendar_engine.availability.multi_party import analyze_availability, unique_ids, validate_participants
from calendar_engine.collaborators import Clock, EventSource, PermissionOracle, SystemClock
from calendar_engine.config_models import EngineConfig, load_and_validate
from calendar_engine.errors import PermissionDeniedError, require
from calendar_engine.logging_config import get_logger, operation_context
from calendar_engine.models import (
    AvailabilitySummary,
    BookingCheck,
    BookingPage,
    BookingSlots,
    BusyInterval,
    BusyTimeResult,
    CandidateSlot,
    ConflictResult,
    EventDefinition,
    RankedResult,
    SchedulingConstraints,
    TimeWindow,
)
from calendar_engine.recurrence import ExpansionResult, RecurrenceExpander
from calendar_engine.scheduling import booking_slots, optimizer
from calendar_engine.scheduling.optimizer import SearchBudget
from calendar_engine.scheduling.working_hours import WorkingHoursPolicy

logger = get_logger(__name__)


class SchedulingEngine:
    """Library surface of the calendar engine."""

    def __init__(
        self,
        event_source: EventSource,
        permission_oracle: PermissionOracle,
        clock: Optional[Clock] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.event_source = event_source
        self.permission_oracle = permission_oracle
        self.clock = clock or SystemClock()
        self.config = config or load_and_validate("engine")

        self.expander = RecurrenceExpander.from_config(self.config.recurrence)
        self.policy = WorkingHoursPolicy.from_config(self.config.scheduling.working_hours)

    # =========================================================================
    # Pure operations
    # =========================================================================

    def expand_recurrence(
        self,
        event: EventDefinition,
        window: TimeWindow,
        exceptions: Iterable[EventDefinition] = (),
    ) -> ExpansionResult:
        return self.expander.expand(event, window, exceptions)

    def check_conflict(
        self,
        candidate: TimeWindow,
        constraints: SchedulingConstraints,
        busy_intervals: Iterable[BusyInterval],
        exclude_source_id: Optional[str] = None,
    ) -> ConflictResult:
        return check_conflict_with_constraints(candidate, constraints, busy_intervals, exclude_source_id)

    def default_constraints(self) -> SchedulingConstraints:
        return SchedulingConstraints.from_config(self.config.booking)

    def generate_booking_slots(
        self,
        page: BookingPage,
        duration_minutes: int,
        constraints: Optional[SchedulingConstraints],
        owner_events: Iterable[EventDefinition],
        window: TimeWindow,
        now: Optional[datetime] = None,
    ) -> BookingSlots:
        """Booking slots over caller-supplied events; ``now`` defaults to the clock."""
        return booking_slots.generate_booking_slots(
            page,
            duration_minutes,
            constraints or self.default_constraints(),
            owner_events,
            window,
            now if now is not None else self.clock.now(),
            expander=self.expander,
        )

    # =========================================================================
    # Operations that read collaborators
    # =========================================================================

    async def compute_busy_intervals(
        self, owner_id: str, window: TimeWindow, viewer_id: str
    ) -> BusyTimeResult:
        """
        Busy intervals of ``owner_id`` as ``viewer_id`` may see them.

        Raises:
            PermissionDeniedError: viewer may not see the owner's free/busy
        """
        with operation_context("compute_busy_intervals", owner_id=owner_id, viewer_id=viewer_id):
            permission = await self.permission_oracle.can_view(owner_id, viewer_id)
            if not permission.allowed:
                raise PermissionDeniedError(owner_id, viewer_id)
            events = await self.event_source.get_events(owner_id, window)
            return compute_busy_intervals(
                owner_id,
                window,
                viewer_id,
                events,
                detail_visible=permission.detail_visible,
                expander=self.expander,
            )

    async def booking_slots_for_owner(
        self,
        page: BookingPage,
        duration_minutes: int,
        window: TimeWindow,
        constraints: Optional[SchedulingConstraints] = None,
    ) -> BookingSlots:
        """Booking slots for ``page`` reading the owner's events from the event source."""
        constraints = constraints or self.default_constraints()
        with operation_context("booking_slots", page_id=page.page_id, owner_id=page.owner_id):
            events = await self._owner_events(page.owner_id, window, constraints)
            slots = self.generate_booking_slots(page, duration_minutes, constraints, events, window)
            logger.info("booking_slots_ready", slots=len(slots), events=len(events), truncated=slots.truncated)
            return slots

    async def check_booking_slot(
        self,
        page: BookingPage,
        start: datetime,
        duration_minutes: int,
        constraints: Optional[SchedulingConstraints] = None,
    ) -> BookingCheck:
        constraints = constraints or self.default_constraints()
        with operation_context("check_booking_slot", page_id=page.page_id, owner_id=page.owner_id):
            candidate = TimeWindow(start, TimeWindow(start).start + timedelta(minutes=duration_minutes))
            # The whole local day, for the daily booking cap
            day_window = candidate.expanded(timedelta(days=1), timedelta(days=1))
            events = await self._owner_events(page.owner_id, day_window, constraints)
            return booking_slots.check_booking_slot(
                page,
                start,
                duration_minutes,
                constraints,
                events,
                self.clock.now(),
                expander=self.expander,
            )

    async def analyze_availability(
        self,
        participant_ids: Sequence[str],
        window: TimeWindow,
        requester_id: str,
        unknown_policy: Optional[str] = None,
    ) -> AvailabilitySummary:
        unknown_policy = unknown_policy or self.config.multi_party.unknown_policy
        validate_participants(unique_ids(participant_ids), unknown_policy)
        require(window.end is not None, "candidate window needs an end", "window.end")
        require(window.start < window.end, "window start must be before end", "window.start")
        with operation_context("analyze_availability", requester_id=requester_id):
            busy, unknown = await self._fetch_busy(participant_ids, window, requester_id)
            return analyze_availability(
                busy,
                window,
                participant_ids=participant_ids,
                unknown_ids=unknown,
                unknown_policy=unknown_policy,
            )

    async def find_optimal_times(
        self,
        attendee_ids: Sequence[str],
        duration_minutes: int,
        window: TimeWindow,
        max_suggestions: Optional[int] = None,
        *,
        requester_id: str,
        budget: Optional[SearchBudget] = None,
    ) -> RankedResult:
        """
        Ranked meeting times for ``attendee_ids`` inside ``window``.

        Attendees the requester may not view are handled by the configured
        unknown-participant policy. Budget defaults come from config.
        """
        settings = self.config.scheduling
        if max_suggestions is None:
            max_suggestions = settings.default_max_suggestions
        optimizer.validate_search(
            unique_ids(attendee_ids),
            duration_minutes,
            window,
            settings.step_minutes,
            self.config.multi_party.unknown_policy,
            max_suggestions,
        )
        with operation_context("find_optimal_times", requester_id=requester_id):
            busy, unknown = await self._fetch_busy(attendee_ids, window, requester_id)
            result = optimizer.find_optimal_times(
                busy,
                attendee_ids,
                duration_minutes,
                window,
                max_suggestions=max_suggestions,
                policy=self.policy,
                step_minutes=settings.step_minutes,
                unknown_ids=unknown,
                unknown_policy=self.config.multi_party.unknown_policy,
                budget=budget or SearchBudget(settings.max_candidates, settings.max_seconds),
            )
            logger.info(
                "optimal_times_found",
                attendees=len(attendee_ids),
                unknown=len(unknown),
                suggestions=len(result),
                candidates_evaluated=result.candidates_evaluated,
                truncated=result.truncated,
            )
            return result

    async def find_next_available_slot(
        self,
        attendee_ids: Sequence[str],
        duration_minutes: int,
        *,
        requester_id: str,
        search_from: Optional[datetime] = None,
    ) -> Optional[CandidateSlot]:
        settings = self.config.scheduling
        search_from = TimeWindow(search_from if search_from is not None else self.clock.now()).start
        window = TimeWindow(search_from, search_from + timedelta(days=settings.next_available_horizon_days))
        optimizer.validate_search(
            unique_ids(attendee_ids),
            duration_minutes,
            window,
            settings.step_minutes,
            self.config.multi_party.unknown_policy,
        )
        with operation_context("find_next_available_slot", requester_id=requester_id):
            busy, unknown = await self._fetch_busy(attendee_ids, window, requester_id)
            return optimizer.find_next_available_slot(
                busy,
                attendee_ids,
                duration_minutes,
                search_from,
                policy=self.policy,
                horizon_days=settings.next_available_horizon_days,
                step_minutes=settings.step_minutes,
                unknown_ids=unknown,
                unknown_policy=self.config.multi_party.unknown_policy,
            )

    async def suggest_alternative_times(
        self,
        event: EventDefinition,
        attendee_ids: Sequence[str],
        *,
        requester_id: str,
        max_suggestions: Optional[int] = None,
    ) -> RankedResult:
        """Other slots in the same week for an existing event, ignoring the event's own busy time."""
        settings = self.config.scheduling
        if max_suggestions is None:
            max_suggestions = settings.alternative_suggestions
        validate_participants(unique_ids(attendee_ids), self.config.multi_party.unknown_policy)
        require(event.start < event.end, "event start must be before end", "event_start")
        require(max_suggestions >= 1, "must be at least 1", "max_suggestions")
        window = optimizer.alternatives_window(event.start)
        with operation_context("suggest_alternative_times", requester_id=requester_id, event_id=event.id):
            busy, unknown = await self._fetch_busy(attendee_ids, window, requester_id)
            return optimizer.suggest_alternative_times(
                busy,
                attendee_ids,
                event.id,
                event.start,
                event.end,
                max_suggestions=max_suggestions,
                policy=self.policy,
                step_minutes=settings.step_minutes,
                unknown_ids=unknown,
                unknown_policy=self.config.multi_party.unknown_policy,
            )

    async def availability_grid(
        self,
        participant_ids: Sequence[str],
        window: TimeWindow,
        *,
        requester_id: str,
        slot_minutes: Optional[int] = None,
    ) -> list[AvailabilitySummary]:
        if slot_minutes is None:
            slot_minutes = self.config.scheduling.step_minutes
        optimizer.validate_search(
            unique_ids(participant_ids), slot_minutes, window, slot_minutes, self.config.multi_party.unknown_policy
        )
        with operation_context("availability_grid", requester_id=requester_id):
            busy, unknown = await self._fetch_busy(participant_ids, window, requester_id)
            return optimizer.availability_grid(
                busy,
                participant_ids,
                window,
                slot_minutes=slot_minutes,
                policy=self.policy,
                unknown_ids=unknown,
                unknown_policy=self.config.multi_party.unknown_policy,
            )

    # =========================================================================
    # Snapshot fetching
    # =========================================================================

    async def _owner_events(
        self, owner_id: str, window: TimeWindow, constraints: SchedulingConstraints
    ) -> list[EventDefinition]:
        query = window.expanded(
            timedelta(minutes=constraints.buffer_before_minutes),
            timedelta(minutes=constraints.buffer_after_minutes),
        )
        return await self.event_source.get_events(owner_id, query)

    async def _fetch_busy(
        self, participant_ids: Sequence[str], window: TimeWindow, requester_id: str
    ) -> tuple[dict[str, BusyTimeResult], list[str]]:
        """
        Fetch busy time for every participant the requester may view.

        Returns:
            (busy intervals per viewable participant, ids that could not be viewed)
        """
        semaphore = asyncio.Semaphore(self.config.multi_party.fetch_concurrency)

        async def fetch(participant_id: str) -> tuple[str, Optional[BusyTimeResult]]:
            async with semaphore:
                permission = await self.permission_oracle.can_view(participant_id, requester_id)
                if not permission.allowed:
                    return participant_id, None
                events = await self.event_source.get_events(participant_id, window)
            busy = compute_busy_intervals(
                participant_id,
                window,
                requester_id,
                events,
                detail_visible=permission.detail_visible,
                expander=self.expander,
            )
            return participant_id, busy

        results = await asyncio.gather(*(fetch(p) for p in unique_ids(participant_ids)))

        busy_by_participant = {pid: busy for pid, busy in results if busy is not None}
        unknown = [pid for pid, busy in results if busy is None]
        if unknown:
            logger.info("participants_not_viewable", unknown=unknown)
        return busy_by_participant, unknown
