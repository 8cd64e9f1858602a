"""Turn a loosely-typed task record into a canonical `Task`.

Relative phrases ("tomorrow", "next Monday") are resolved by the model before
they get here; this module only checks ISO dates and fills in what is missing.
"""
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from config import DEFAULTS, SchedulingDefaults
from errors import InvalidFieldValue, MissingRequiredField
from models import CATEGORIES, PRIORITIES, LooseTask, Task

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time(value: str, field: str) -> time:
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidFieldValue(field, f"{field} must look like HH:MM, got {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidFieldValue(field, f"{field} is not a valid time of day: {value!r}")
    return time(hours, minutes)


def parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidFieldValue(field, f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}") from None


def default_start(now: datetime, day: date, defaults: SchedulingDefaults) -> datetime:
    """Next whole hour inside business hours, starting from `day`.

    Future days start at opening time. Past closing time rolls over to the
    next day's opening.
    """
    opening = datetime.combine(day, time(defaults.business_start_hour))
    if day != now.date():
        return opening

    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    if next_hour < opening:
        return opening
    if next_hour.hour >= defaults.business_end_hour or next_hour.date() != day:
        return opening + timedelta(days=1)
    return next_hour


def _clean_names(names: Optional[list[str]]) -> list[str]:
    seen = []
    for name in names or []:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def normalize(
    raw: Union[Mapping[str, Any], LooseTask],
    *,
    defaults: SchedulingDefaults = DEFAULTS,
    now: Optional[datetime] = None,
) -> Task:
    """Validate `raw` and apply smart defaults.

    Raises MissingRequiredField when there is no title and InvalidFieldValue
    for anything that cannot be turned into a valid task.
    """
    now = now or datetime.now()
    if isinstance(raw, LooseTask):
        fields = raw
    else:
        try:
            fields = LooseTask.model_validate(dict(raw))
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "task"
            raise InvalidFieldValue(field, f"{field}: {error['msg']}") from None

    title = (fields.title or "").strip()
    if not title:
        raise MissingRequiredField("title")

    category = (fields.category or "personal").strip().lower()
    if category not in CATEGORIES:
        raise InvalidFieldValue("category", f"Unknown category {fields.category!r}")
    priority = (fields.priority or "medium").strip().lower()
    if priority not in PRIORITIES:
        raise InvalidFieldValue("priority", f"Unknown priority {fields.priority!r}")
    if fields.estimated_hours is not None and fields.estimated_hours < 0:
        raise InvalidFieldValue("estimatedHours", "estimatedHours cannot be negative")

    start_day = parse_date(fields.start_date, "startDate") if fields.start_date else now.date()
    end_day = parse_date(fields.end_date, "endDate") if fields.end_date else None
    if end_day is not None and end_day < start_day:
        raise InvalidFieldValue("endDate", "endDate cannot be before startDate")

    if fields.start_time:
        start = datetime.combine(start_day, parse_time(fields.start_time, "startTime"))
    else:
        start = default_start(now, start_day, defaults)
        if start.date() != start_day:
            # Rolled over to the next business day; carry the end date along
            if end_day is not None:
                end_day += start.date() - start_day
            start_day = start.date()

    if fields.end_time:
        end = datetime.combine(end_day or start_day, parse_time(fields.end_time, "endTime"))
    else:
        if fields.estimated_hours == 0:
            raise InvalidFieldValue("estimatedHours", "estimatedHours must be positive when there is no endTime")
        hours = fields.estimated_hours if fields.estimated_hours is not None else defaults.duration_for(category)
        end = start + timedelta(hours=hours)
        if end_day is not None and end_day > end.date():
            end = datetime.combine(end_day, end.time())

    if end.date() < start.date():
        raise InvalidFieldValue("endDate", "endDate cannot be before startDate")
    if end <= start:
        raise InvalidFieldValue("endTime", "endTime must be after startTime")

    estimated_hours = fields.estimated_hours
    if estimated_hours is None:
        if start.date() == end.date():
            estimated_hours = round((end - start).total_seconds() / 3600, 2)
        else:
            estimated_hours = defaults.duration_for(category)

    return Task(
        id=fields.id,
        title=title,
        notes=(fields.notes or "").strip(),
        category=category,
        custom_category_id=fields.custom_category_id,
        stakeholders=_clean_names(fields.stakeholders),
        estimated_hours=estimated_hours,
        start_date=start.date().isoformat(),
        start_time=start.strftime("%H:%M"),
        end_date=end.date().isoformat(),
        end_time=end.strftime("%H:%M"),
        priority=priority,
        completed=bool(fields.completed),
        completed_at=fields.completed_at,
        links=fields.links or [],
        is_recurring=bool(fields.is_recurring) and fields.recurrence is not None,
        recurrence=fields.recurrence if fields.is_recurring else None,
        parent_task_id=fields.parent_task_id,
        created_at=fields.created_at,
    )
