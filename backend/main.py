from contextlib import asynccontextmanager
from datetime import date
import logging
from typing import Literal, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import database
from config import DEFAULTS, SchedulingDefaults
from conflicts import find_free_slots
from conversation import ConversationRegistry, SchedulingConversation
from database import (
    SQLiteTaskStore,
    create_category_db,
    create_task_series,
    delete_category_db,
    delete_task_db,
    get_all_tasks,
    get_categories_db,
    get_task_db,
    update_task_db,
)
from errors import ConversationBusy, InvalidTransition, TaskValidationError, UpstreamError
from llm import AnthropicModel, LanguageModel
from logging_config import configure_logging
from models import (
    ConversationTurn,
    ConversationView,
    CustomCategory,
    CustomCategoryCreate,
    DailyReport,
    FreeTimeReport,
    LooseTask,
    MonthlyReport,
    NlpTaskRequest,
    ParsedTaskResponse,
    SummaryRequest,
    SummaryResponse,
    Task,
    TaskUpdate,
    WeeklyReport,
)
from normalizer import normalize
from reports import daily_report, monthly_report, week_start_for, weekly_report
from scheduling import parse_scheduling_request
from summary import build_summary

logger = logging.getLogger(__name__)

NLP_PATH = "/api/nlp-task-create"
SUMMARY_PATH = "/api/ai-summary"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    configure_logging(config.LOG_LEVEL)
    database.init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(title="SimplyTasked", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_language_model = AnthropicModel()
_task_store = SQLiteTaskStore()
conversations = ConversationRegistry()


def get_language_model() -> LanguageModel:
    return _language_model


def get_task_store() -> SQLiteTaskStore:
    return _task_store


def get_defaults() -> SchedulingDefaults:
    return DEFAULTS


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are a 400, in the error shape of the endpoint."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body') or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    logger.info("Rejected malformed request to %s: %s", request.url.path, problems)
    message = f"Malformed request: {problems}"
    if request.url.path == SUMMARY_PATH:
        return JSONResponse(status_code=400, content={"error": message})
    return JSONResponse(status_code=400, content={"status": "error", "message": message})


# Tasks
@app.get("/tasks")
def get_tasks(
    filter_type: Optional[Literal["all", "today", "upcoming", "overdue", "completed"]] = Query(None, alias="filter"),
) -> list[Task]:
    return get_all_tasks(filter_type)


@app.post("/tasks")
def create_task(task_data: LooseTask) -> Task:
    """Create a task; a recurring task also gets its future instances."""
    try:
        task = normalize(task_data)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return create_task_series(task)[0]


@app.get("/tasks/{task_id}")
def get_task(task_id: str) -> Task:
    task = get_task_db(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> Task:
    existing = get_task_db(task_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Task not found")

    updates = task_data.model_dump(exclude_unset=True)
    try:
        merged = normalize({**existing.model_dump(), **updates})
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = update_task_db(task_id, **{field: getattr(merged, field) for field in updates})
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


# Custom categories
@app.get("/categories")
def get_categories() -> list[CustomCategory]:
    return get_categories_db()


@app.post("/categories")
def create_category(category_data: CustomCategoryCreate) -> CustomCategory:
    if not category_data.name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    return create_category_db(category_data.name, category_data.color)


@app.delete("/categories/{category_id}")
def delete_category(category_id: str) -> dict:
    if not delete_category_db(category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"status": "deleted"}


@app.get("/schedule/free-time")
def get_free_time(day: Optional[str] = Query(None, alias="date")) -> FreeTimeReport:
    day = day or date.today().isoformat()
    try:
        date.fromisoformat(day)
    except ValueError:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
    return find_free_slots(get_all_tasks(), day)


@app.get("/reports/{period}")
def get_report(
    period: Literal["daily", "weekly", "monthly"],
    day: Optional[str] = Query(None, alias="date"),
) -> Union[DailyReport, WeeklyReport, MonthlyReport]:
    """Productivity report for the day, week or month containing `date` (default today)."""
    try:
        target = date.fromisoformat(day) if day else date.today()
    except ValueError:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")

    tasks = get_all_tasks()
    if period == "daily":
        return daily_report(tasks, target.isoformat())
    if period == "weekly":
        return weekly_report(tasks, week_start_for(target))
    return monthly_report(tasks, target.year, target.month)


# Language-model endpoints
@app.options(NLP_PATH)
@app.options(SUMMARY_PATH)
def preflight() -> Response:
    return Response(status_code=200)


@app.post(NLP_PATH, response_model=ParsedTaskResponse)
async def nlp_task_create(
    request: NlpTaskRequest,
    model: LanguageModel = Depends(get_language_model),
    defaults: SchedulingDefaults = Depends(get_defaults),
):
    """Classify a free-text scheduling request. Every recognised outcome is a 200."""
    logger.info(
        "Scheduling request: %d existing task(s), context=%s",
        len(request.existing_tasks or []),
        "yes" if request.conversation_context else "none",
    )
    return await parse_scheduling_request(
        request.input_text,
        request.existing_tasks or [],
        request.conversation_context,
        model=model,
        defaults=defaults,
    )


@app.post(SUMMARY_PATH, response_model=SummaryResponse)
async def ai_summary(
    request: SummaryRequest,
    model: LanguageModel = Depends(get_language_model),
    defaults: SchedulingDefaults = Depends(get_defaults),
):
    try:
        summary = await build_summary(
            request.tasks or [], request.period, request.date, model=model, defaults=defaults
        )
    except UpstreamError as e:
        logger.error("Summary generation failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return SummaryResponse(summary=summary)


# Scheduling conversations
def _get_conversation(conversation_id: str) -> SchedulingConversation:
    conversation = conversations.get(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@app.post("/conversations")
async def start_conversation(
    model: LanguageModel = Depends(get_language_model),
    store: SQLiteTaskStore = Depends(get_task_store),
    defaults: SchedulingDefaults = Depends(get_defaults),
) -> ConversationView:
    return conversations.create(model, store, defaults).view()


@app.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str) -> ConversationView:
    return _get_conversation(conversation_id).view()


@app.post("/conversations/{conversation_id}/messages")
async def send_message(conversation_id: str, turn: ConversationTurn) -> ConversationView:
    conversation = _get_conversation(conversation_id)
    try:
        await conversation.submit(turn.text, turn.existing_tasks)
    except ConversationBusy as e:
        raise HTTPException(status_code=409, detail=str(e))
    return conversation.view()


@app.post("/conversations/{conversation_id}/force-create")
async def force_create(conversation_id: str) -> ConversationView:
    conversation = _get_conversation(conversation_id)
    try:
        await conversation.force_create()
    except (ConversationBusy, InvalidTransition) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return conversation.view()


@app.delete("/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str) -> dict:
    if not conversations.discard(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"status": "deleted"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
