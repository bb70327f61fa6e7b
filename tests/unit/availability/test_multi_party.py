"""Tests for calendar_engine/availability/multi_party.py"""

import pytest

from calendar_engine.availability import (
    UNKNOWN_ASSUME_AVAILABLE,
    analyze_availability,
    is_time_available_for_all,
)
from calendar_engine.errors import ValidationError
from calendar_engine.models import BusyInterval, TimeWindow
from tests.conftest import at


def busy(owner_id, start, end, source_id="e1"):
    return BusyInterval(start=start, end=end, owner_id=owner_id, source_id=source_id)


@pytest.fixture
def slot(tuesday):
    """Tuesday 10:00-10:30."""
    return TimeWindow(at(tuesday, 10), at(tuesday, 10, 30))


class TestAnalyzeAvailability:
    """Tests for analyze_availability."""

    def test_two_of_three_available(self, tuesday, slot):
        """b busy 10:15-10:45 makes availability 2/3 and the slot not all-available."""
        busy_by = {
            "a": [],
            "b": [busy("b", at(tuesday, 10, 15), at(tuesday, 10, 45), "b-sync")],
            "c": [],
        }

        summary = analyze_availability(busy_by, slot, participant_ids=["a", "b", "c"])

        assert summary.available_ids == ["a", "c"]
        assert summary.busy_ids == ["b"]
        assert (summary.available, summary.busy, summary.total) == (2, 1, 3)
        assert summary.availability_percentage == pytest.approx(200 / 3)
        assert summary.all_available is False
        assert summary.conflicting_source_ids == ["b-sync"]

    def test_touching_busy_time_is_free(self, tuesday, slot):
        busy_by = {"a": [busy("a", at(tuesday, 9), at(tuesday, 10))]}

        assert analyze_availability(busy_by, slot).all_available is True

    def test_participants_default_to_mapping_keys(self, slot):
        summary = analyze_availability({"a": [], "b": []}, slot)

        assert summary.available_ids == ["a", "b"]

    def test_missing_participant_has_no_busy_time(self, slot):
        """A participant with no entry in the mapping is simply free."""
        summary = analyze_availability({}, slot, participant_ids=["a"])

        assert summary.available_ids == ["a"]

    def test_duplicate_ids_counted_once(self, slot):
        summary = analyze_availability({"a": []}, slot, participant_ids=["a", "a"])

        assert summary.total == 1

    def test_excluded_source_ignored(self, tuesday, slot):
        busy_by = {"a": [busy("a", at(tuesday, 10), at(tuesday, 11), "meeting")]}

        summary = analyze_availability(busy_by, slot, exclude_source_id="meeting")

        assert summary.all_available is True

    def test_empty_participants_rejected(self, slot):
        with pytest.raises(ValidationError):
            analyze_availability({}, slot, participant_ids=[])

    def test_unknown_policy_validated(self, slot):
        with pytest.raises(ValidationError, match="unknown_policy"):
            analyze_availability({"a": []}, slot, unknown_policy="guess")


class TestUnknownParticipants:
    """Tests for participants whose calendars cannot be viewed."""

    def test_excluded_by_default(self, slot):
        """Unknown participants are listed but left out of totals."""
        summary = analyze_availability({"a": [], "b": []}, slot, participant_ids=["a", "b", "x"], unknown_ids={"x"})

        assert summary.unknown_ids == ["x"]
        assert summary.total == 2
        assert summary.availability_percentage == 100.0
        assert summary.all_available is True

    def test_quality_score_penalizes_unknowns(self, slot):
        summary = analyze_availability({"a": [], "b": []}, slot, participant_ids=["a", "b", "x"], unknown_ids={"x"})

        assert summary.quality_score == pytest.approx(100 - 20 / 3)

    def test_assume_available(self, slot):
        """With assume_available, unknowns count as free and are flagged."""
        summary = analyze_availability(
            {"a": []},
            slot,
            participant_ids=["a", "x"],
            unknown_ids={"x"},
            unknown_policy=UNKNOWN_ASSUME_AVAILABLE,
        )

        assert summary.available_ids == ["a", "x"]
        assert summary.assumed_available_ids == ["x"]
        assert summary.unknown_ids == []
        assert summary.total == 2

    def test_only_unknowns_is_not_all_available(self, slot):
        summary = analyze_availability({}, slot, participant_ids=["x"], unknown_ids={"x"})

        assert summary.total == 0
        assert summary.all_available is False
        assert summary.availability_percentage == 0.0


class TestIsTimeAvailableForAll:
    def test_true_when_everyone_free(self, slot):
        assert is_time_available_for_all({"a": [], "b": []}, slot) is True

    def test_false_when_anyone_busy(self, tuesday, slot):
        busy_by = {"a": [], "b": [busy("b", at(tuesday, 10), at(tuesday, 10, 5))]}
        assert is_time_available_for_all(busy_by, slot) is False
