"""Parse a free-text scheduling request into a task decision.

The result is one of four outcomes: ask a follow-up question, report
conflicts, hand back a creation-ready task, or report an error. Nothing is
written to storage here.
"""
import json
import logging
from datetime import datetime
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from config import DEFAULTS, SchedulingDefaults
from conflicts import find_conflicts
from errors import MalformedModelOutput, MissingRequiredField, TaskValidationError, UpstreamError
from llm import LanguageModel, strip_code_fence
from models import (
    CamelModel,
    ConflictResponse,
    ErrorResponse,
    NeedMoreInfoResponse,
    ParsedResponse,
    ParsedTaskResponse,
)
from normalizer import normalize
from prompts import SCHEDULING_PROMPT

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = "empty input"
GENERIC_QUESTION = (
    "I need a bit more information to schedule this task. Could you please specify "
    "the title, date, start time, and end time?"
)
TROUBLE_MESSAGE = "I had trouble understanding your request. Could you try rephrasing?"
UPSTREAM_MESSAGE = "Sorry, I couldn't reach the scheduling assistant. Please try again in a moment."
PARSED_MESSAGE = "Perfect! I've got all the details to create your task."


class SchedulingReply(CamelModel):
    conversation_type: Literal["scheduling"]
    confidence: float = Field(ge=0, le=1)
    needs_follow_up: bool = False
    follow_up_question: Optional[str] = None
    task: dict[str, Any] = Field(default_factory=dict)
    assistant_message: Optional[str] = None


class ClarificationReply(CamelModel):
    conversation_type: Literal["clarification"]
    question: Optional[str] = None
    task: dict[str, Any] = Field(default_factory=dict)


ModelReply = Annotated[
    Union[SchedulingReply, ClarificationReply],
    Field(discriminator="conversation_type"),
]
_reply_adapter = TypeAdapter(ModelReply)


def parse_model_reply(text: str) -> Union[SchedulingReply, ClarificationReply]:
    """Decode the model's answer. Anything that isn't a known reply shape is rejected."""
    try:
        payload = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise MalformedModelOutput(f"Reply is not valid JSON: {e}", text) from None
    if not isinstance(payload, dict):
        raise MalformedModelOutput("Reply is not a JSON object", text)
    try:
        return _reply_adapter.validate_python(payload)
    except ValidationError as e:
        raise MalformedModelOutput(f"Unrecognised reply shape: {e.error_count()} error(s)", text) from None


def format_existing_tasks(existing_tasks: Iterable) -> str:
    lines = []
    for task in existing_tasks:
        if task.completed:
            continue
        lines.append(f"- {task.title}: {task.start_date} {task.start_time}-{task.end_time}")
    return "\n".join(lines) or "(none)"


def build_scheduling_prompt(existing_tasks: Iterable, defaults: SchedulingDefaults, now: datetime) -> str:
    return SCHEDULING_PROMPT.format(
        today=now.strftime("%Y-%m-%d"),
        now=now.strftime("%H:%M"),
        weekday=now.strftime("%A"),
        business_start=f"{defaults.business_start_hour:02d}",
        business_end=f"{defaults.business_end_hour:02d}",
        threshold=defaults.confidence_threshold,
        existing_tasks=format_existing_tasks(existing_tasks),
    )


def build_user_message(input_text: str, conversation_context: Optional[str] = None) -> str:
    if conversation_context and conversation_context.strip():
        return f"Previous context: {conversation_context.strip()}\n\nUser's new message: {input_text}"
    return input_text


async def parse_scheduling_request(
    input_text: str,
    existing_tasks: Iterable,
    conversation_context: Optional[str] = None,
    *,
    model: LanguageModel,
    defaults: SchedulingDefaults = DEFAULTS,
    now: Optional[datetime] = None,
) -> ParsedTaskResponse:
    if not input_text or not input_text.strip():
        return ErrorResponse(message=EMPTY_INPUT_MESSAGE)

    now = now or datetime.now()
    existing_tasks = list(existing_tasks or [])

    try:
        text = await model.complete(
            build_user_message(input_text.strip(), conversation_context),
            system=build_scheduling_prompt(existing_tasks, defaults, now),
            max_tokens=defaults.parser_max_tokens,
            temperature=defaults.parser_temperature,
        )
        reply = parse_model_reply(text)
    except UpstreamError as e:
        logger.error("Scheduling request failed upstream: %s", e)
        return ErrorResponse(message=UPSTREAM_MESSAGE)
    except MalformedModelOutput as e:
        logger.warning("Malformed model output (%s): %r", e, e.raw_text)
        return ErrorResponse(message=TROUBLE_MESSAGE)

    if isinstance(reply, ClarificationReply):
        return NeedMoreInfoResponse(question=reply.question or GENERIC_QUESTION, task=reply.task)

    if reply.needs_follow_up or reply.confidence < defaults.confidence_threshold:
        logger.info("Asking for clarification (confidence=%.2f)", reply.confidence)
        return NeedMoreInfoResponse(question=reply.follow_up_question or GENERIC_QUESTION, task=reply.task)

    try:
        task = normalize(reply.task, defaults=defaults, now=now)
    except MissingRequiredField:
        return NeedMoreInfoResponse(question=reply.follow_up_question or GENERIC_QUESTION, task=reply.task)
    except TaskValidationError as e:
        return NeedMoreInfoResponse(question=f"Something didn't add up: {e}. Could you clarify?", task=reply.task)

    conflicts = find_conflicts(task, existing_tasks)
    if conflicts:
        logger.info("Draft %r conflicts with %d task(s)", task.title, len(conflicts))
        return ConflictResponse(
            message=f"You have {len(conflicts)} conflicting task(s) during this time. Would you like to reschedule?",
            conflicts=conflicts,
            task=task,
        )

    return ParsedResponse(task=task, message=reply.assistant_message or PARSED_MESSAGE)
