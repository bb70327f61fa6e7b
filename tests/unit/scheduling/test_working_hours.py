"""Tests for calendar_engine/scheduling/working_hours.py"""

from datetime import datetime, time, timedelta, timezone

import pytest

from calendar_engine.config_models import WorkingHoursConfig
from calendar_engine.errors import ValidationError
from calendar_engine.models import TimeWindow, Weekday
from calendar_engine.scheduling import WorkingHoursPolicy
from tests.conftest import at

UTC = timezone.utc


@pytest.fixture
def policy():
    return WorkingHoursPolicy()


class TestNextWorkingInstant:
    """Tests for next_working_instant."""

    def test_before_hours_moves_to_start(self, policy, tuesday):
        assert policy.next_working_instant(at(tuesday, 7, 30)) == at(tuesday, 9)

    def test_inside_hours_unchanged(self, policy, tuesday):
        assert policy.next_working_instant(at(tuesday, 10, 17)) == at(tuesday, 10, 17)

    def test_after_hours_moves_to_next_day(self, policy, tuesday):
        assert policy.next_working_instant(at(tuesday, 17)) == at(tuesday + timedelta(days=1), 9)

    def test_weekend_moves_to_monday(self, policy):
        saturday = datetime(2026, 10, 10, 12, tzinfo=UTC)
        assert policy.next_working_instant(saturday) == datetime(2026, 10, 12, 9, tzinfo=UTC)

    def test_friday_evening_moves_to_monday(self, policy):
        friday = datetime(2026, 10, 9, 18, tzinfo=UTC)
        assert policy.next_working_instant(friday) == datetime(2026, 10, 12, 9, tzinfo=UTC)


class TestContains:
    """Tests for contains."""

    def test_last_slot_of_day(self, policy, tuesday):
        assert policy.contains(at(tuesday, 16, 30), at(tuesday, 17)) is True

    def test_running_past_end(self, policy, tuesday):
        assert policy.contains(at(tuesday, 16, 45), at(tuesday, 17, 15)) is False

    def test_weekend(self, policy):
        saturday = datetime(2026, 10, 10, 10, tzinfo=UTC)
        assert policy.contains(saturday, saturday + timedelta(minutes=30)) is False

    def test_spanning_midnight(self):
        policy = WorkingHoursPolicy(start=time(0, 0), end=time(23, 59))
        start = datetime(2026, 10, 6, 23, 45, tzinfo=UTC)
        assert policy.contains(start, start + timedelta(minutes=30)) is False


class TestCandidates:
    """Tests for candidate generation."""

    def test_half_hour_steps_through_day(self, policy, tuesday):
        window = TimeWindow(at(tuesday, 0), at(tuesday, 0) + timedelta(days=1))

        candidates = list(policy.candidates(window, timedelta(minutes=30), timedelta(minutes=30)))

        assert len(candidates) == 16
        assert candidates[0].start == at(tuesday, 9)
        assert candidates[-1].start == at(tuesday, 16, 30)

    def test_hour_meetings_fit_before_end(self, policy, tuesday):
        window = TimeWindow(at(tuesday, 0), at(tuesday, 0) + timedelta(days=1))

        candidates = list(policy.candidates(window, timedelta(hours=1), timedelta(minutes=30)))

        assert len(candidates) == 15
        assert candidates[-1].end == at(tuesday, 17)

    def test_skips_weekend(self, policy):
        friday = datetime(2026, 10, 9, tzinfo=UTC)
        window = TimeWindow(friday, friday + timedelta(days=4))

        days = {c.start.date() for c in policy.candidates(window, timedelta(minutes=30), timedelta(minutes=30))}

        assert sorted(d.day for d in days) == [9, 12]

    def test_local_timezone(self, tuesday):
        """Working hours follow the policy timezone (Berlin is UTC+2 in early October)."""
        policy = WorkingHoursPolicy(timezone="Europe/Berlin")
        window = TimeWindow(at(tuesday, 0), at(tuesday, 0) + timedelta(days=1))

        candidates = list(policy.candidates(window, timedelta(minutes=30), timedelta(minutes=30)))

        assert candidates[0].start == at(tuesday, 7)
        assert candidates[-1].end == at(tuesday, 15)

    def test_candidates_stay_inside_window(self, policy, tuesday):
        window = TimeWindow(at(tuesday, 10), at(tuesday, 11))

        candidates = list(policy.candidates(window, timedelta(minutes=30), timedelta(minutes=15)))

        assert [c.start for c in candidates] == [at(tuesday, 10), at(tuesday, 10, 15), at(tuesday, 10, 30)]

    def test_duration_longer_than_day_yields_nothing(self, policy, tuesday):
        window = TimeWindow(at(tuesday, 0), at(tuesday, 0) + timedelta(days=7))

        assert list(policy.candidates(window, timedelta(hours=9), timedelta(minutes=30))) == []


class TestPolicyConstruction:
    def test_from_config(self):
        config = WorkingHoursConfig(start="08:00", end="16:00", days=[0, 1, 2, 3], timezone="Asia/Tokyo")

        policy = WorkingHoursPolicy.from_config(config)

        assert policy.start == time(8, 0)
        assert Weekday.FRIDAY not in policy.days
        assert policy.timezone == "Asia/Tokyo"

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            WorkingHoursPolicy(start=time(17), end=time(9))

    def test_no_days_rejected(self):
        with pytest.raises(ValidationError):
            WorkingHoursPolicy(days=frozenset())

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="timezone"):
            WorkingHoursPolicy(timezone="Mars/Olympus")
