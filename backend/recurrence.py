"""Expansion of recurring tasks into dated instances."""
from datetime import date, timedelta
from typing import Optional

from models import Task

DEFAULT_HORIZON_DAYS = 365
DEFAULT_MAX_OCCURRENCES = 100


def js_weekday(day: date) -> int:
    """Weekday number as stored on recurrence rules: 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def next_occurrence(rule, current: date, last_day: date) -> Optional[date]:
    if rule.type == "daily":
        return current + timedelta(days=rule.interval)
    if rule.type == "weekly":
        return current + timedelta(weeks=rule.interval)
    if rule.type == "custom" and rule.days_of_week:
        next_day = current + timedelta(days=1)
        while js_weekday(next_day) not in rule.days_of_week and next_day <= last_day:
            next_day += timedelta(days=1)
        return next_day
    return None


def generate_occurrences(task: Task, today: Optional[date] = None) -> list[Task]:
    """Instances following `task` in its series, not including `task` itself.

    The series stops at the rule's end date (one year from today by default)
    or its maximum number of occurrences (100 by default), counting the head.
    """
    rule = task.recurrence
    if not task.is_recurring or rule is None:
        return []

    today = today or date.today()
    first_day = date.fromisoformat(task.start_date)
    span = date.fromisoformat(task.end_date) - first_day
    last_day = date.fromisoformat(rule.end_date) if rule.end_date else today + timedelta(days=DEFAULT_HORIZON_DAYS)
    max_count = rule.max_occurrences or DEFAULT_MAX_OCCURRENCES

    instances = []
    current = first_day
    count = 1
    while count < max_count:
        next_day = next_occurrence(rule, current, last_day)
        if next_day is None or next_day > last_day:
            break
        instances.append(task.model_copy(update={
            "id": None,
            "start_date": next_day.isoformat(),
            "end_date": (next_day + span).isoformat(),
            "completed": False,
            "completed_at": None,
            "is_recurring": False,
            "recurrence": None,
            "parent_task_id": task.id,
            "created_at": None,
        }))
        current = next_day
        count += 1
    return instances
