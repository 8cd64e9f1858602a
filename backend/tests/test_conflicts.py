"""
Tests for conflicts.py - overlap detection and free-time reports.
"""
import pytest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conflicts import find_conflicts, find_free_slots, tasks_overlap, time_to_minutes
from models import LooseTask
from normalizer import normalize


def make_task(start_time, end_time, start_date="2025-01-24", end_date=None, **extra):
    return LooseTask(
        title=extra.pop("title", "Task"),
        start_date=start_date,
        end_date=end_date or start_date,
        start_time=start_time,
        end_time=end_time,
        **extra,
    )


class TestTimeToMinutes:

    def test_converts_hours_and_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("09:30") == 570
        assert time_to_minutes("23:59") == 1439

    def test_ignores_seconds(self):
        assert time_to_minutes("10:15:00") == 615


class TestFindConflicts:

    def test_partial_overlap_is_a_conflict(self):
        """09:00-10:00 against an existing 09:30-10:30 on the same day."""
        candidate = make_task("09:00", "10:00")
        existing = make_task("09:30", "10:30", id="existing-1", title="Standup")

        conflicts = find_conflicts(candidate, [existing])

        assert len(conflicts) == 1
        assert conflicts[0].id == "existing-1"
        assert conflicts[0].title == "Standup"
        assert conflicts[0].start_time == "09:30"
        assert conflicts[0].end_time == "10:30"
        assert conflicts[0].date == "2025-01-24"

    def test_back_to_back_tasks_do_not_conflict(self):
        earlier = make_task("09:00", "10:00", id="a")
        later = make_task("10:00", "11:00", id="b")

        assert find_conflicts(earlier, [later]) == []
        assert find_conflicts(later, [earlier]) == []

    def test_containment_is_a_conflict(self):
        candidate = make_task("10:00", "10:30")
        existing = make_task("09:00", "12:00", id="block")
        assert [c.id for c in find_conflicts(candidate, [existing])] == ["block"]

    def test_different_dates_do_not_conflict(self):
        candidate = make_task("09:00", "10:00", start_date="2025-01-24")
        existing = make_task("09:00", "10:00", start_date="2025-01-25", id="x")
        assert find_conflicts(candidate, [existing]) == []

    def test_multi_day_task_shares_dates(self):
        candidate = make_task("14:00", "15:00", start_date="2025-01-25")
        existing = make_task("13:00", "16:00", start_date="2025-01-24", end_date="2025-01-26", id="offsite")
        assert [c.id for c in find_conflicts(candidate, [existing])] == ["offsite"]

    def test_completed_tasks_are_ignored(self):
        candidate = make_task("09:00", "10:00")
        done = make_task("09:00", "10:00", id="done", completed=True)
        assert find_conflicts(candidate, [done]) == []

    def test_tasks_without_times_are_ignored(self):
        candidate = make_task("09:00", "10:00")
        untimed = LooseTask(id="u", title="Someday", start_date="2025-01-24")
        assert find_conflicts(candidate, [untimed]) == []

    def test_unreadable_existing_task_is_skipped(self):
        candidate = make_task("09:00", "10:00")
        broken = make_task("nine", "ten", id="broken")
        ok = make_task("09:15", "09:45", id="ok")
        assert [c.id for c in find_conflicts(candidate, [broken, ok])] == ["ok"]

    def test_returns_every_match(self):
        candidate = make_task("09:00", "12:00")
        existing = [
            make_task("09:00", "09:30", id="a"),
            make_task("11:30", "12:30", id="b"),
            make_task("12:00", "13:00", id="c"),
        ]
        assert sorted(c.id for c in find_conflicts(candidate, existing)) == ["a", "b"]

    def test_task_does_not_conflict_with_itself(self):
        task = make_task("09:00", "10:00", id="same")
        assert find_conflicts(task, [task]) == []

    def test_empty_task_list(self):
        assert find_conflicts(make_task("09:00", "10:00"), []) == []

    @pytest.mark.parametrize("a, b", [
        (("09:00", "10:00"), ("09:30", "10:30")),
        (("09:00", "10:00"), ("10:00", "11:00")),
        (("08:00", "18:00"), ("12:00", "12:15")),
        (("13:00", "14:00"), ("09:00", "10:00")),
    ])
    def test_overlap_is_symmetric(self, a, b):
        task_a = make_task(*a, id="a")
        task_b = make_task(*b, id="b")
        assert bool(find_conflicts(task_a, [task_b])) == bool(find_conflicts(task_b, [task_a]))
        assert tasks_overlap(task_a, task_b) == tasks_overlap(task_b, task_a)

    def test_is_idempotent(self):
        candidate = make_task("09:00", "10:00")
        existing = [make_task("09:30", "10:30", id="x")]
        assert find_conflicts(candidate, existing) == find_conflicts(candidate, existing)


class TestPastMidnight:
    """A task from 23:00 to 01:00 the next day holds the end of one day and the start of the next."""

    @pytest.fixture
    def late_task(self):
        return make_task("23:00", "01:00", start_date="2025-01-24", end_date="2025-01-25", id="late")

    def test_overlaps_later_task_on_start_date(self, late_task):
        existing = make_task("23:15", "23:45", id="night")
        assert [c.id for c in find_conflicts(late_task, [existing])] == ["night"]

    def test_overlaps_early_task_on_end_date(self, late_task):
        existing = make_task("00:30", "01:30", start_date="2025-01-25", id="early")
        assert [c.id for c in find_conflicts(late_task, [existing])] == ["early"]

    def test_free_after_end(self, late_task):
        existing = make_task("01:00", "02:00", start_date="2025-01-25", id="after")
        assert find_conflicts(late_task, [existing]) == []

    def test_morning_of_start_date_is_free(self, late_task):
        existing = make_task("00:30", "01:30", start_date="2025-01-24", id="before")
        assert find_conflicts(late_task, [existing]) == []

    def test_normalized_late_task(self):
        task = normalize(
            {"title": "Late deploy", "startDate": "2025-01-24", "startTime": "23:00"},
            now=datetime(2025, 1, 24, 8, 0),
        )
        existing = make_task("23:15", "23:45", id="night")

        assert (task.end_date, task.end_time) == ("2025-01-25", "01:00")
        assert [c.id for c in find_conflicts(task, [existing])] == ["night"]
        assert find_conflicts(existing, [task.model_copy(update={"id": "late"})])

    def test_free_slots_count_the_spill_over(self, late_task):
        late_task = late_task.model_copy(update={"start_time": "17:00", "end_time": "10:00"})
        assert find_free_slots([late_task], "2025-01-25").free_slots == ["10:00-18:00"]


class TestFreeSlots:

    def test_empty_day_is_one_block(self):
        report = find_free_slots([], "2025-01-24")
        assert report.free_slots == ["09:00-18:00"]
        assert report.total_free_hours == 9.0
        assert "9.0 hours" in report.insights[0]

    def test_gaps_between_tasks(self):
        tasks = [
            make_task("10:00", "11:00"),
            make_task("11:15", "12:00"),  # 15 minute gap is too short to list
            make_task("14:00", "17:40"),
        ]
        report = find_free_slots(tasks, "2025-01-24")
        assert report.free_slots == ["09:00-10:00", "12:00-14:00"]
        assert report.total_free_hours == 3.0
        assert "Longest available block is 2.0 hours (12:00-14:00)" in report.insights

    def test_other_days_and_completed_tasks_ignored(self):
        tasks = [
            make_task("09:00", "18:00", start_date="2025-01-25"),
            make_task("09:00", "18:00", completed=True),
        ]
        assert find_free_slots(tasks, "2025-01-24").free_slots == ["09:00-18:00"]

    def test_fully_booked(self):
        report = find_free_slots([make_task("08:00", "19:00")], "2025-01-24")
        assert report.free_slots == []
        assert report.total_free_hours == 0
        assert "fully booked" in report.insights[0]
