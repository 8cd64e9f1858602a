"""Productivity reports over a task list for a day, a week or a month.

Pure aggregation; the caller supplies the tasks. Weeks run Sunday to Saturday
unless a report is built from an explicit start date.
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from models import CATEGORIES, PRIORITIES, DailyReport, MonthlyReport, WeeklyReport
from recurrence import js_weekday

PRIORITY_WEIGHTS = {"critical": 4, "high": 3, "medium": 2, "low": 1}
STRATEGIC_BONUS = 5
OVERDUE_PENALTY = 10
TREND_MARGIN = 5


def _day_of(timestamp: Optional[str]) -> Optional[str]:
    if not timestamp:
        return None
    try:
        return datetime.fromisoformat(timestamp).date().isoformat()
    except ValueError:
        return None


def _average(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0


def completed_on(task, day: str) -> bool:
    """A completed task without a completion time counts on its end date."""
    if not task.completed:
        return False
    finished = _day_of(task.completed_at)
    if finished is None:
        return task.end_date == day
    return finished == day


def _relevant(task, day: str) -> bool:
    return (
        task.start_date <= day <= task.end_date
        or _day_of(task.created_at) == day
        or _day_of(task.completed_at) == day
    )


def productivity_insight(score: int) -> str:
    if score >= 90:
        return "Exceptional productivity! You're crushing your goals."
    if score >= 75:
        return "Great work! You're maintaining high productivity."
    if score >= 60:
        return "Good progress. Consider optimizing your workflow."
    if score >= 40:
        return "Room for improvement. Focus on priority tasks."
    return "Let's get back on track. Start with small wins."


def daily_report(tasks: Iterable, day: str) -> DailyReport:
    day_tasks = [t for t in tasks if t.start_date and t.end_date and _relevant(t, day)]
    completed = [t for t in day_tasks if completed_on(t, day)]
    active = [t for t in day_tasks if t.start_date <= day <= t.end_date]
    overdue = [t for t in day_tasks if not t.completed and t.end_date < day]

    completion_rate = min(100, round(len(completed) / len(active) * 100)) if active else 0
    priority_breakdown = {p: sum(1 for t in completed if t.priority == p) for p in PRIORITIES}
    category_breakdown = {c: sum(1 for t in completed if t.category == c) for c in CATEGORIES}

    score = (
        completion_rate
        + sum(PRIORITY_WEIGHTS[p] * n for p, n in priority_breakdown.items())
        + category_breakdown["strategic"] * STRATEGIC_BONUS
        - len(overdue) * OVERDUE_PENALTY
    )
    score = max(0, min(100, score))

    return DailyReport(
        date=day,
        tasks_completed=len(completed),
        tasks_scheduled=len(active),
        tasks_overdue=len(overdue),
        completion_rate=completion_rate,
        priority_breakdown=priority_breakdown,
        category_breakdown=category_breakdown,
        productivity_score=score,
        insight=productivity_insight(score),
    )


def week_start_for(day: date) -> date:
    """The Sunday on or before `day`."""
    return day - timedelta(days=js_weekday(day))


def weekly_report(tasks: Iterable, week_start: date) -> WeeklyReport:
    tasks = list(tasks)
    days = [daily_report(tasks, (week_start + timedelta(days=i)).isoformat()) for i in range(7)]

    # Days with nothing scheduled or completed don't compete for best and worst
    busy_days = [d for d in days if d.tasks_completed or d.tasks_scheduled]
    if busy_days:
        best_day = max(busy_days, key=lambda d: d.productivity_score).date
        worst_day = min(busy_days, key=lambda d: d.productivity_score).date
    else:
        best_day, worst_day = days[0].date, days[-1].date

    early = _average([d.productivity_score for d in days[:3]])
    late = _average([d.productivity_score for d in days[4:]])
    if late > early + TREND_MARGIN:
        trend = "up"
    elif late < early - TREND_MARGIN:
        trend = "down"
    else:
        trend = "stable"

    score = round(_average([d.productivity_score for d in days]))
    return WeeklyReport(
        week_start=days[0].date,
        week_end=days[-1].date,
        total_tasks_completed=sum(d.tasks_completed for d in days),
        total_tasks_scheduled=sum(d.tasks_scheduled for d in days),
        average_completion_rate=round(_average([d.completion_rate for d in days])),
        best_day=best_day,
        worst_day=worst_day,
        trend=trend,
        weekly_productivity_score=score,
        daily_breakdown=days,
        insight=productivity_insight(score),
    )


def monthly_report(tasks: Iterable, year: int, month: int) -> MonthlyReport:
    """Weeks are counted from the first of the month in steps of seven days."""
    tasks = list(tasks)
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    weeks = []
    start = first
    while start <= last:
        weeks.append(weekly_report(tasks, start))
        start += timedelta(days=7)

    busy_weeks = [w for w in weeks if w.total_tasks_completed or w.total_tasks_scheduled]
    if busy_weeks:
        best_week = max(busy_weeks, key=lambda w: w.weekly_productivity_score).week_start
        worst_week = min(busy_weeks, key=lambda w: w.weekly_productivity_score).week_start
    else:
        best_week, worst_week = weeks[0].week_start, weeks[-1].week_start

    half = len(weeks) // 2
    early = _average([w.weekly_productivity_score for w in weeks[:half]])
    late = _average([w.weekly_productivity_score for w in weeks[half:]])
    if late > early + TREND_MARGIN:
        trend = "improving"
    elif late < early - TREND_MARGIN:
        trend = "declining"
    else:
        trend = "stable"

    days = [d for w in weeks for d in w.daily_breakdown]
    busy_days = [d for d in days if d.tasks_completed or d.tasks_scheduled]
    most_productive_day = (
        max(busy_days, key=lambda d: d.productivity_score).date if busy_days else days[0].date
    )

    total_completed = sum(w.total_tasks_completed for w in weeks)
    score = round(_average([w.weekly_productivity_score for w in weeks]))
    return MonthlyReport(
        month=first.strftime("%B"),
        year=year,
        total_tasks_completed=total_completed,
        total_tasks_scheduled=sum(w.total_tasks_scheduled for w in weeks),
        average_completion_rate=round(_average([w.average_completion_rate for w in weeks])),
        best_week=best_week,
        worst_week=worst_week,
        trend=trend,
        monthly_productivity_score=score,
        weekly_breakdown=weeks,
        most_productive_day=most_productive_day,
        average_tasks_per_day=round(total_completed / len(days)),
        insight=productivity_insight(score),
    )
