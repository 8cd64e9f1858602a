"""
Tests for normalizer.py - validation and smart defaults for parsed tasks.
"""
import pytest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import SchedulingDefaults
from errors import InvalidFieldValue, MissingRequiredField
from normalizer import default_start, normalize, parse_time

# Friday morning
NOW = datetime(2025, 1, 24, 8, 20)


class TestRequiredFields:

    def test_missing_title(self):
        with pytest.raises(MissingRequiredField) as exc:
            normalize({"startDate": "2025-01-24"}, now=NOW)
        assert exc.value.field == "title"

    def test_blank_title(self):
        with pytest.raises(MissingRequiredField):
            normalize({"title": "   "}, now=NOW)


class TestDefaults:

    def test_minimal_task_gets_defaults(self):
        task = normalize({"title": "Write report"}, now=NOW)

        assert task.id is None
        assert task.start_date == "2025-01-24"
        assert task.end_date == "2025-01-24"
        assert task.start_time == "09:00"  # next whole hour, clamped to opening
        assert task.end_time == "11:00"  # two hours for non-meetings
        assert task.estimated_hours == 2.0
        assert task.priority == "medium"
        assert task.category == "personal"
        assert task.completed is False
        assert task.links == []
        assert task.is_recurring is False
        assert task.recurrence is None

    def test_meeting_lasts_one_hour(self):
        task = normalize({"title": "Sync", "category": "meeting", "startTime": "10:00"}, now=NOW)
        assert task.end_time == "11:00"
        assert task.estimated_hours == 1.0

    def test_estimated_hours_sets_duration(self):
        task = normalize({"title": "Deep work", "startTime": "13:00", "estimatedHours": 3}, now=NOW)
        assert task.end_time == "16:00"
        assert task.estimated_hours == 3.0

    def test_estimated_hours_from_interval(self):
        task = normalize({"title": "Review", "startTime": "09:00", "endTime": "10:30"}, now=NOW)
        assert task.estimated_hours == 1.5

    def test_explicit_estimated_hours_kept(self):
        task = normalize(
            {"title": "Review", "startTime": "09:00", "endTime": "10:30", "estimatedHours": 1},
            now=NOW,
        )
        assert task.estimated_hours == 1.0

    def test_next_whole_hour_during_business_hours(self):
        task = normalize({"title": "Call mum"}, now=datetime(2025, 1, 24, 13, 5))
        assert task.start_time == "14:00"

    def test_after_hours_rolls_to_next_day(self):
        task = normalize({"title": "Plan week"}, now=datetime(2025, 1, 24, 17, 30))
        assert task.start_date == "2025-01-25"
        assert task.end_date == "2025-01-25"
        assert task.start_time == "09:00"

    def test_future_day_starts_at_opening(self):
        task = normalize({"title": "Offsite prep", "startDate": "2025-02-03"}, now=NOW)
        assert task.start_time == "09:00"

    def test_duration_past_midnight_moves_end_date(self):
        task = normalize(
            {"title": "Night deploy", "category": "operational", "startDate": "2025-01-24", "startTime": "23:00"},
            now=NOW,
        )
        assert task.end_date == "2025-01-25"
        assert task.end_time == "01:00"

    def test_business_hours_come_from_config(self):
        defaults = SchedulingDefaults(business_start_hour=8)
        task = normalize({"title": "Early start"}, now=datetime(2025, 1, 24, 6, 0), defaults=defaults)
        assert task.start_time == "08:00"


class TestCleaning:

    def test_single_digit_hours_and_seconds(self):
        task = normalize({"title": "Gym", "startTime": "7:05", "endTime": "08:00:00"}, now=NOW)
        assert task.start_time == "07:05"
        assert task.end_time == "08:00"

    def test_case_insensitive_enums(self):
        task = normalize({"title": "Board deck", "category": "Strategic", "priority": "HIGH"}, now=NOW)
        assert task.category == "strategic"
        assert task.priority == "high"

    def test_participants_become_stakeholders(self):
        task = normalize({"title": "1:1", "participants": ["Jose", " Ana ", "Jose", ""]}, now=NOW)
        assert task.stakeholders == ["Jose", "Ana"]
        assert task.participants == ["Jose", "Ana"]

    def test_single_participant_string(self):
        task = normalize({"title": "1:1", "participants": "Jose"}, now=NOW)
        assert task.stakeholders == ["Jose"]

    def test_description_becomes_notes(self):
        task = normalize({"title": "Dentist", "description": " bring forms "}, now=NOW)
        assert task.notes == "bring forms"


class TestInvalidValues:

    @pytest.mark.parametrize("fields, field", [
        ({"startDate": "24/01/2025"}, "startDate"),
        ({"startTime": "25:00"}, "startTime"),
        ({"startTime": "noon"}, "startTime"),
        ({"priority": "urgent"}, "priority"),
        ({"category": "exercise"}, "category"),
        ({"estimatedHours": -1}, "estimatedHours"),
        ({"startDate": "2025-01-24", "endDate": "2025-01-23"}, "endDate"),
        ({"startTime": "10:00", "endTime": "09:00"}, "endTime"),
        ({"startTime": "10:00", "endTime": "10:00"}, "endTime"),
    ])
    def test_rejected(self, fields, field):
        with pytest.raises(InvalidFieldValue) as exc:
            normalize({"title": "Task", **fields}, now=NOW)
        assert exc.value.field == field

    def test_zero_hours_without_end_time(self):
        with pytest.raises(InvalidFieldValue) as exc:
            normalize({"title": "Quick", "startTime": "10:00", "estimatedHours": 0}, now=NOW)
        assert exc.value.field == "estimatedHours"

    def test_zero_hours_with_end_time_is_kept(self):
        task = normalize(
            {"title": "Quick", "startTime": "10:00", "endTime": "10:15", "estimatedHours": 0},
            now=NOW,
        )
        assert (task.end_time, task.estimated_hours) == ("10:15", 0.0)

    def test_wrong_type(self):
        with pytest.raises(InvalidFieldValue):
            normalize({"title": "Task", "estimatedHours": "a while"}, now=NOW)

    def test_overnight_with_end_date(self):
        task = normalize(
            {"title": "Red-eye", "startDate": "2025-01-24", "endDate": "2025-01-25",
             "startTime": "22:00", "endTime": "06:00"},
            now=NOW,
        )
        assert task.end_date == "2025-01-25"
        assert task.estimated_hours == 2.0  # multi-day falls back to the category default


class TestIdempotence:

    @pytest.mark.parametrize("raw", [
        {"title": "Write report"},
        {"title": "Sync", "category": "meeting", "startTime": "10:00", "participants": ["Jose"]},
        {"title": "Night deploy", "startDate": "2025-01-24", "startTime": "23:00", "priority": "critical"},
        {"title": "Weekly review", "category": "review", "startTime": "16:00", "endTime": "17:00",
         "isRecurring": True, "recurrence": {"type": "weekly", "interval": 1},
         "links": [{"url": "https://example.com/notes", "title": "Notes"}]},
    ])
    def test_normalize_twice_is_same(self, raw):
        once = normalize(raw, now=NOW)
        twice = normalize(once.model_dump(by_alias=True), now=NOW)
        assert twice == once

    def test_snake_case_dump_round_trips(self):
        once = normalize({"title": "Plan", "startTime": "11:00"}, now=NOW)
        assert normalize(once.model_dump(), now=NOW) == once


class TestHelpers:

    def test_parse_time(self):
        assert parse_time("9:30", "startTime").strftime("%H:%M") == "09:30"

    def test_default_start_before_opening(self):
        start = default_start(datetime(2025, 1, 24, 6, 45), NOW.date(), SchedulingDefaults())
        assert start == datetime(2025, 1, 24, 9, 0)
