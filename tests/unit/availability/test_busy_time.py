"""Tests for calendar_engine/availability/busy_time.py"""

from datetime import datetime, timedelta, timezone

import pytest

from calendar_engine.availability import BusyTimeExtractor, any_truncated, compute_busy_intervals
from calendar_engine.errors import ValidationError
from calendar_engine.models import BUSY_LABEL, BusyTimeResult, Count, DailyRule, TimeWindow
from calendar_engine.recurrence import RecurrenceExpander
from tests.conftest import at

UTC = timezone.utc


@pytest.fixture
def day_window(tuesday):
    return TimeWindow(at(tuesday, 0), at(tuesday, 0) + timedelta(days=1))


class TestComputeBusyIntervals:
    """Tests for one owner's busy time."""

    def test_owner_sees_details(self, make_event, tuesday, day_window):
        """The owner sees titles and locations of their own events."""
        events = [make_event("e1", at(tuesday, 10), at(tuesday, 11), title="1:1", location="Room 4")]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert len(busy) == 1
        assert busy[0].detail == "1:1"
        assert busy[0].location == "Room 4"
        assert busy[0].redacted is False

    def test_private_event_redacted_for_others(self, make_event, tuesday, day_window):
        """Another viewer sees a private event only as a generic block."""
        events = [
            make_event("e1", at(tuesday, 10), at(tuesday, 11), title="Doctor", location="Clinic", is_private=True)
        ]

        busy = compute_busy_intervals("alice", day_window, "bob", events)

        assert busy[0].detail == BUSY_LABEL
        assert busy[0].location is None
        assert busy[0].redacted is True
        assert busy[0].is_private is True
        assert (busy[0].start, busy[0].end) == (at(tuesday, 10), at(tuesday, 11))

    def test_no_detail_permission_redacts_everything(self, make_event, tuesday, day_window):
        """Without detail permission every block is redacted but still busy."""
        events = [
            make_event("e1", at(tuesday, 10), at(tuesday, 11), title="Planning"),
            make_event("e2", at(tuesday, 13), at(tuesday, 14), title="Review"),
        ]

        busy = compute_busy_intervals("alice", day_window, "bob", events, detail_visible=False)

        assert len(busy) == 2
        assert all(b.detail == BUSY_LABEL and b.redacted for b in busy)

    def test_owner_never_redacted(self, make_event, tuesday, day_window):
        """detail_visible does not hide the owner's own calendar."""
        events = [make_event("e1", at(tuesday, 10), at(tuesday, 11), title="Doctor", is_private=True)]

        busy = compute_busy_intervals("alice", day_window, "alice", events, detail_visible=False)

        assert busy[0].detail == "Doctor"

    def test_overlapping_events_not_merged(self, make_event, tuesday, day_window):
        """Overlapping events stay separate so each can be attributed."""
        events = [
            make_event("e1", at(tuesday, 10), at(tuesday, 11)),
            make_event("e2", at(tuesday, 10, 30), at(tuesday, 12)),
        ]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert [b.source_id for b in busy] == ["e1", "e2"]

    def test_cancelled_and_transparent_events_skipped(self, make_event, tuesday, day_window):
        """Cancelled events and events shown as free do not block time."""
        events = [
            make_event("e1", at(tuesday, 10), at(tuesday, 11), cancelled=True),
            make_event("e2", at(tuesday, 12), at(tuesday, 13), transparent=True),
            make_event("e3", at(tuesday, 14), at(tuesday, 15)),
        ]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert [b.source_id for b in busy] == ["e3"]

    def test_other_owners_ignored(self, make_event, tuesday, day_window):
        events = [
            make_event("e1", at(tuesday, 10), at(tuesday, 11)),
            make_event("e2", at(tuesday, 12), at(tuesday, 13), owner_id="bob"),
        ]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert [b.owner_id for b in busy] == ["alice"]

    def test_sorted_by_start(self, make_event, tuesday, day_window):
        events = [
            make_event("late", at(tuesday, 15), at(tuesday, 16)),
            make_event("early", at(tuesday, 8), at(tuesday, 9)),
        ]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert [b.source_id for b in busy] == ["early", "late"]

    def test_unbounded_window_rejected(self, make_event, tuesday):
        events = [make_event("e1", at(tuesday, 10), at(tuesday, 11))]
        with pytest.raises(ValidationError):
            compute_busy_intervals("alice", TimeWindow(at(tuesday, 0)), "alice", events)


class TestRecurringBusyTime:
    """Tests for series and their exceptions."""

    def test_series_expanded_within_window(self, make_event, monday):
        """Each occurrence in the window becomes one interval attributed to the series."""
        events = [make_event("standup", at(monday, 9), at(monday, 9, 15), recurrence=DailyRule())]
        window = TimeWindow(at(monday, 0), at(monday, 0) + timedelta(days=3))

        busy = compute_busy_intervals("alice", window, "alice", events)

        assert len(busy) == 3
        assert {b.source_id for b in busy} == {"standup"}

    def test_exception_attributed_to_itself(self, make_event, monday, tuesday):
        """A moved occurrence is reported under the exception's own id."""
        events = [
            make_event("standup", at(monday, 9), at(monday, 9, 15), recurrence=DailyRule(end=Count(3))),
            make_event(
                "standup-tue",
                at(tuesday, 11),
                at(tuesday, 11, 15),
                parent_event_id="standup",
                is_exception=True,
                exception_date=tuesday,
            ),
        ]
        window = TimeWindow(at(monday, 0), at(monday, 0) + timedelta(days=7))

        busy = compute_busy_intervals("alice", window, "alice", events)

        assert [(b.start, b.source_id) for b in busy] == [
            (datetime(2026, 10, 5, 9, tzinfo=UTC), "standup"),
            (datetime(2026, 10, 6, 11, tzinfo=UTC), "standup-tue"),
            (datetime(2026, 10, 7, 9, tzinfo=UTC), "standup"),
        ]

    def test_orphan_exception_treated_as_plain_event(self, make_event, tuesday, day_window):
        """An exception whose series is absent still blocks its own time."""
        events = [
            make_event(
                "x1",
                at(tuesday, 11),
                at(tuesday, 12),
                parent_event_id="missing",
                is_exception=True,
                exception_date=tuesday,
            )
        ]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert [b.source_id for b in busy] == ["x1"]

    def test_extractor_uses_configured_expander(self, make_event, monday):
        """BusyTimeExtractor passes its expander limits through."""
        events = [make_event("standup", at(monday, 9), at(monday, 9, 15), recurrence=DailyRule())]
        window = TimeWindow(at(monday, 0), at(monday, 0) + timedelta(days=30))

        busy = BusyTimeExtractor(RecurrenceExpander(max_instances=4)).extract("alice", window, "alice", events)

        assert len(busy) == 4
        assert busy.truncated is True

    def test_naive_timestamps_flagged(self, make_event, tuesday, day_window):
        events = [make_event("e1", datetime(2026, 10, 6, 10), datetime(2026, 10, 6, 11))]

        busy = compute_busy_intervals("alice", day_window, "alice", events)

        assert busy[0].assumed_utc is True
        assert busy[0].start.tzinfo is not None

    def test_capped_series_marks_result_truncated(self, make_event, monday):
        """A daily series across 1200 days stops at the instance cap, well before the window end."""
        events = [
            make_event("standup", at(monday, 9), at(monday, 9, 15), recurrence=DailyRule()),
            make_event("offsite", at(monday, 13), at(monday, 17)),
        ]
        window = TimeWindow(at(monday, 0), at(monday, 0) + timedelta(days=1200))

        busy = compute_busy_intervals("alice", window, "alice", events)

        assert busy.truncated is True
        assert len([b for b in busy if b.source_id == "standup"]) == 1000
        assert [b.source_id for b in busy].count("offsite") == 1

    def test_short_window_not_truncated(self, make_event, tuesday, day_window):
        events = [make_event("standup", at(tuesday, 9), at(tuesday, 9, 15), recurrence=DailyRule())]

        assert compute_busy_intervals("alice", day_window, "alice", events).truncated is False


class TestAnyTruncated:
    """Tests for any_truncated."""

    def test_flags_any_participant(self):
        busy_by = {"a": BusyTimeResult(), "b": BusyTimeResult(truncated=True)}

        assert any_truncated(busy_by) is True

    def test_plain_lists_are_complete(self):
        assert any_truncated({"a": [], "b": BusyTimeResult()}) is False
