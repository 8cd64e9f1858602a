from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

Priority = Literal["low", "medium", "high", "critical"]
Category = Literal["work", "personal", "meeting", "strategic", "operational", "review", "custom"]
PRIORITIES = get_args(Priority)
CATEGORIES = get_args(Category)


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskLink(CamelModel):
    id: Optional[str] = None
    url: str
    title: str = ""


class Recurrence(CamelModel):
    type: Literal["daily", "weekly", "custom"]
    interval: int = Field(1, ge=1)  # every N days / weeks
    days_of_week: Optional[list[Annotated[int, Field(ge=0, le=6)]]] = None  # 0=Sunday .. 6=Saturday
    end_date: Optional[str] = None  # YYYY-MM-DD
    max_occurrences: Optional[int] = Field(None, ge=1)


class LooseTask(CamelModel):
    """A loosely-typed task record, as sent by clients or extracted by the model.

    Every field is optional; the normalizer decides what is acceptable.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = Field(None, validation_alias=AliasChoices("notes", "description"))
    category: Optional[str] = None
    custom_category_id: Optional[str] = None
    stakeholders: Optional[list[str]] = Field(
        None, validation_alias=AliasChoices("stakeholders", "participants")
    )
    estimated_hours: Optional[float] = None
    start_date: Optional[str] = None  # YYYY-MM-DD
    start_time: Optional[str] = None  # HH:MM
    end_date: Optional[str] = None
    end_time: Optional[str] = None
    priority: Optional[str] = None
    completed: Optional[bool] = None
    completed_at: Optional[str] = None
    links: Optional[list[TaskLink]] = None
    is_recurring: Optional[bool] = None
    recurrence: Optional[Recurrence] = None
    parent_task_id: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("stakeholders", mode="before")
    @classmethod
    def _single_name_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class Task(CamelModel):
    """A canonical task. `id` and `created_at` stay None until the task is stored."""

    id: Optional[str] = None
    title: str = Field(min_length=1)
    notes: str = Field("", validation_alias=AliasChoices("notes", "description"))
    category: Category = "personal"
    custom_category_id: Optional[str] = None
    stakeholders: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("stakeholders", "participants")
    )
    estimated_hours: float = Field(ge=0)
    start_date: str
    start_time: str
    end_date: str
    end_time: str
    priority: Priority = "medium"
    completed: bool = False
    completed_at: Optional[str] = None
    links: list[TaskLink] = Field(default_factory=list)
    is_recurring: bool = False
    recurrence: Optional[Recurrence] = None
    parent_task_id: Optional[str] = None
    created_at: Optional[str] = None

    @computed_field
    @property
    def participants(self) -> list[str]:
        return list(self.stakeholders)


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[Category] = None
    custom_category_id: Optional[str] = None
    stakeholders: Optional[list[str]] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    start_date: Optional[str] = None
    start_time: Optional[str] = None
    end_date: Optional[str] = None
    end_time: Optional[str] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None
    links: Optional[list[TaskLink]] = None


class ConflictRecord(CamelModel):
    id: Optional[str] = None
    title: str
    start_time: str
    end_time: str
    date: str


# Parser outcomes, tagged by `status`
class NeedMoreInfoResponse(CamelModel):
    status: Literal["need_more_info"] = "need_more_info"
    question: str
    task: Optional[dict[str, Any]] = None  # the partial draft, as extracted


class ConflictResponse(CamelModel):
    status: Literal["conflict"] = "conflict"
    message: str
    conflicts: list[ConflictRecord]
    task: Task


class ParsedResponse(CamelModel):
    status: Literal["parsed"] = "parsed"
    message: str
    task: Task


class ErrorResponse(CamelModel):
    status: Literal["error"] = "error"
    message: str


ParsedTaskResponse = Annotated[
    Union[NeedMoreInfoResponse, ConflictResponse, ParsedResponse, ErrorResponse],
    Field(discriminator="status"),
]


class NlpTaskRequest(CamelModel):
    input_text: str
    existing_tasks: Optional[list[LooseTask]] = None
    user_id: Optional[str] = None
    conversation_context: Optional[str] = None


class SummaryRequest(CamelModel):
    tasks: Optional[list[LooseTask]] = None
    date: str = ""
    period: str = "daily"


class SummaryResponse(CamelModel):
    summary: str


class ConversationMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class ConversationTurn(CamelModel):
    text: str
    existing_tasks: Optional[list[LooseTask]] = None  # falls back to the stored tasks


class ConversationView(CamelModel):
    id: str
    state: str
    history: list[ConversationMessage]
    pending_task: Optional[Union[Task, dict[str, Any]]] = None
    context_summary: str = ""


class CustomCategoryCreate(CamelModel):
    name: str = Field(min_length=1)
    color: str = "#6B7280"


class CustomCategory(CamelModel):
    id: str
    name: str
    color: str
    created_at: str


class FreeTimeReport(CamelModel):
    date: str
    free_slots: list[str]  # "HH:MM-HH:MM"
    total_free_hours: float
    insights: list[str]


# Productivity reports
class DailyReport(CamelModel):
    date: str
    tasks_completed: int
    tasks_scheduled: int  # tasks active on the day
    tasks_overdue: int
    completion_rate: int  # percent
    priority_breakdown: dict[str, int]  # completed tasks per priority
    category_breakdown: dict[str, int]  # completed tasks per category
    productivity_score: int  # 0-100
    insight: str


class WeeklyReport(CamelModel):
    week_start: str
    week_end: str
    total_tasks_completed: int
    total_tasks_scheduled: int
    average_completion_rate: int
    best_day: str
    worst_day: str
    trend: Literal["up", "down", "stable"]
    weekly_productivity_score: int
    daily_breakdown: list[DailyReport]
    insight: str


class MonthlyReport(CamelModel):
    month: str
    year: int
    total_tasks_completed: int
    total_tasks_scheduled: int
    average_completion_rate: int
    best_week: str
    worst_week: str
    trend: Literal["improving", "declining", "stable"]
    monthly_productivity_score: int
    weekly_breakdown: list[WeeklyReport]
    most_productive_day: str
    average_tasks_per_day: int
    insight: str
