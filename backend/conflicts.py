"""Time-overlap checks between tasks, and free-time reports for a single day."""
import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from config import DEFAULTS, SchedulingDefaults
from models import ConflictRecord, FreeTimeReport

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight."""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def _date_span(task) -> Optional[tuple[date, date]]:
    if not task.start_date:
        return None
    start = date.fromisoformat(task.start_date)
    end = date.fromisoformat(task.end_date) if task.end_date else start
    return start, max(start, end)


def _time_span(task) -> Optional[tuple[int, int]]:
    if not task.start_time or not task.end_time:
        return None
    return time_to_minutes(task.start_time), time_to_minutes(task.end_time)


def _span_on(task, day: date) -> Optional[tuple[int, int]]:
    """Minutes of `day` taken by `task`.

    A task whose end time is not after its start time runs past midnight: it
    holds the rest of its first day, whole days in between and the start of
    its last day. Other multi-day tasks hold the same hours on every day.
    """
    dates, times = _date_span(task), _time_span(task)
    if not (dates and times) or not dates[0] <= day <= dates[1]:
        return None
    start, end = times
    if start < end:
        return start, end
    if dates[0] == dates[1]:
        return None
    return (start if day == dates[0] else 0), (end if day == dates[1] else MINUTES_PER_DAY)


def tasks_overlap(a, b) -> bool:
    """True when a and b share a calendar date and their times of day overlap.

    Intervals are half-open, so a task ending at 10:00 does not overlap one
    starting at 10:00.
    """
    dates_a, dates_b = _date_span(a), _date_span(b)
    if not (dates_a and dates_b and _time_span(a) and _time_span(b)):
        return False
    first, last = max(dates_a[0], dates_b[0]), min(dates_a[1], dates_b[1])
    day = first
    while day <= last:
        span_a, span_b = _span_on(a, day), _span_on(b, day)
        if span_a and span_b and span_a[0] < span_b[1] and span_a[1] > span_b[0]:
            return True
        day += timedelta(days=1)
    return False


def find_conflicts(candidate, existing_tasks: Iterable) -> list[ConflictRecord]:
    """Return every uncompleted existing task that overlaps the candidate."""
    conflicts = []
    for task in existing_tasks:
        if task.completed:
            continue
        if candidate.id is not None and task.id == candidate.id:
            continue
        try:
            overlapping = tasks_overlap(candidate, task)
        except ValueError:
            logger.debug("Skipping task %r with unreadable date or time", task.id)
            continue
        if overlapping:
            conflicts.append(ConflictRecord(
                id=task.id,
                title=task.title or "",
                start_time=task.start_time,
                end_time=task.end_time,
                date=task.start_date,
            ))
    return conflicts


def find_free_slots(tasks: Iterable, day: str, defaults: SchedulingDefaults = DEFAULTS) -> FreeTimeReport:
    """Find gaps in the working day of `day` that are long enough to book."""
    target = date.fromisoformat(day)
    busy = []
    for task in tasks:
        if task.completed:
            continue
        try:
            span = _span_on(task, target)
        except ValueError:
            logger.debug("Skipping task %r with unreadable date or time", task.id)
            continue
        if span:
            busy.append(span)
    busy.sort()

    day_start = defaults.business_start_hour * 60
    day_end = defaults.workday_end_hour * 60
    slots: list[tuple[int, int]] = []

    cursor = day_start
    for start, end in busy:
        gap_end = min(start, day_end)
        if gap_end - cursor >= defaults.min_free_slot_minutes:
            slots.append((cursor, gap_end))
        cursor = max(cursor, end)
        if cursor >= day_end:
            break
    if day_end - cursor >= defaults.min_free_slot_minutes:
        slots.append((cursor, day_end))

    total_free = sum(end - start for start, end in slots)
    insights = []
    if total_free > 0:
        insights.append(f"You have {total_free / 60:.1f} hours of free time on {day}")
        longest = max(slots, key=lambda slot: slot[1] - slot[0])
        insights.append(
            f"Longest available block is {(longest[1] - longest[0]) / 60:.1f} hours "
            f"({minutes_to_time(longest[0])}-{minutes_to_time(longest[1])})"
        )
    else:
        insights.append(f"Your schedule is fully booked on {day}")
        insights.append("Consider rescheduling some tasks to create breathing room")

    return FreeTimeReport(
        date=day,
        free_slots=[f"{minutes_to_time(start)}-{minutes_to_time(end)}" for start, end in slots],
        total_free_hours=round(total_free / 60, 2),
        insights=insights,
    )
