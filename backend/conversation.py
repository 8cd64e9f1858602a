"""Multi-turn scheduling dialogue.

A `SchedulingConversation` holds one user's in-flight scheduling exchange:
the message history, the accumulated context fed back to the parser, and at
most one pending draft. Nothing here is persisted; a task only reaches
storage when the conversation commits it.

    IDLE -> AWAITING_MODEL_RESPONSE -> NEEDS_CLARIFICATION | CONFLICT_PENDING | COMMITTED | IDLE
    CONFLICT_PENDING --force_create--> COMMITTED
    COMMITTED --(after a short delay)--> IDLE
"""
import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol, Union

from config import DEFAULTS, SchedulingDefaults
from errors import ConversationBusy, InvalidTransition, UpstreamError
from llm import LanguageModel
from models import (
    ConflictResponse,
    ConversationMessage,
    ConversationView,
    ErrorResponse,
    NeedMoreInfoResponse,
    ParsedResponse,
    ParsedTaskResponse,
    Task,
)
from scheduling import EMPTY_INPUT_MESSAGE, parse_scheduling_request

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hi! I'm Donna, your personal scheduling assistant. Just tell me what you'd like to "
    "schedule, and I'll take care of the rest!"
)


class TaskStore(Protocol):
    async def create_task(self, task: Task) -> Task: ...

    async def list_tasks(self) -> list[Task]: ...


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    NEEDS_CLARIFICATION = "needs_clarification"
    CONFLICT_PENDING = "conflict_pending"
    COMMITTED = "committed"
    ABORTED = "aborted"


def _friendly_date(value: str) -> str:
    return date.fromisoformat(value).strftime("%A, %b %d")


def _friendly_time(value: str) -> str:
    return datetime.strptime(value, "%H:%M").strftime("%I:%M %p").lstrip("0")


class SchedulingConversation:
    def __init__(
        self,
        model: LanguageModel,
        store: TaskStore,
        defaults: SchedulingDefaults = DEFAULTS,
        clock: Callable[[], datetime] = datetime.now,
        conversation_id: Optional[str] = None,
    ):
        self.id = conversation_id or str(uuid.uuid4())
        self.model = model
        self.store = store
        self.defaults = defaults
        self.clock = clock
        self.state = ConversationState.IDLE
        self.history: list[ConversationMessage] = []
        self.context_summary = ""
        self.pending_task: Optional[Union[Task, dict[str, Any]]] = None
        self.reset_task: Optional[asyncio.Task] = None
        self._in_flight = False
        self.last_active = clock()

    @property
    def busy(self) -> bool:
        return self._in_flight

    def _append(self, role: str, content: str) -> None:
        self.last_active = self.clock()
        self.history.append(ConversationMessage(role=role, content=content, timestamp=self.last_active))

    def start(self) -> None:
        """Greet the user if nothing has been said yet."""
        if not self.history:
            self._append("assistant", WELCOME_MESSAGE)

    def _cancel_scheduled_reset(self) -> None:
        if self.reset_task is not None and not self.reset_task.done():
            self.reset_task.cancel()
        self.reset_task = None

    def reset(self) -> None:
        self._cancel_scheduled_reset()
        self.history = []
        self.context_summary = ""
        self.pending_task = None
        self.state = ConversationState.IDLE

    def abandon(self) -> None:
        """Drop the exchange without writing anything."""
        self.reset()
        self.state = ConversationState.ABORTED
        logger.info("Conversation %s abandoned", self.id)

    async def _reset_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.reset_task = None
        self.reset()

    async def submit(self, text: str, existing_tasks: Optional[Iterable] = None) -> ParsedTaskResponse:
        """Handle one user message and advance the conversation."""
        if self._in_flight:
            raise ConversationBusy("A request is already being processed for this conversation")
        text = (text or "").strip()
        if not text:
            return ErrorResponse(message=EMPTY_INPUT_MESSAGE)

        if self.state in (ConversationState.COMMITTED, ConversationState.ABORTED):
            # Finished exchanges start over before the new request
            self.reset()

        self._in_flight = True
        self.state = ConversationState.AWAITING_MODEL_RESPONSE
        self._append("user", text)
        try:
            if existing_tasks is None:
                existing_tasks = await self.store.list_tasks()
            result = await parse_scheduling_request(
                text,
                existing_tasks,
                self.context_summary,
                model=self.model,
                defaults=self.defaults,
                now=self.clock(),
            )
            await self._apply(text, result)
        except UpstreamError as e:
            logger.error("Conversation %s: task store unavailable: %s", self.id, e)
            self._append("assistant", "❌ Sorry, I encountered an error. Please try again.")
            self.pending_task = None
            self.state = ConversationState.IDLE
            result = ErrorResponse(message=str(e))
        finally:
            self._in_flight = False
        return result

    async def _apply(self, text: str, result: ParsedTaskResponse) -> None:
        if isinstance(result, NeedMoreInfoResponse):
            self._append("assistant", result.question)
            self.context_summary = f"{self.context_summary}\nUser: {text}\nAssistant: {result.question}".lstrip("\n")
            self.pending_task = result.task
            self.state = ConversationState.NEEDS_CLARIFICATION

        elif isinstance(result, ConflictResponse):
            self._append("assistant", result.message)
            details = "\n".join(f"• {c.title} ({c.start_time} - {c.end_time})" for c in result.conflicts)
            self._append(
                "assistant",
                f"Conflicting tasks:\n{details}\n\nWould you like to reschedule or continue anyway?",
            )
            self.pending_task = result.task
            self.state = ConversationState.CONFLICT_PENDING

        elif isinstance(result, ParsedResponse):
            self._append("assistant", result.message)
            task = result.task
            created = await self._commit(task)
            if created is None:
                self.pending_task = None
                self.state = ConversationState.IDLE
                return
            self._append(
                "assistant",
                f'✅ All set! "{created.title}" is now in your calendar for '
                f"{_friendly_date(created.start_date)} at {_friendly_time(created.start_time)}.",
            )
            self._finish(self.defaults.reset_delay_seconds)

        elif isinstance(result, ErrorResponse):
            self._append("assistant", f"❌ {result.message}")
            self.pending_task = None
            self.state = ConversationState.IDLE

        else:
            raise TypeError(f"Unhandled parser result: {result!r}")

    async def _commit(self, task: Task) -> Optional[Task]:
        try:
            return await self.store.create_task(task)
        except UpstreamError as e:
            logger.error("Conversation %s: failed to create %r: %s", self.id, task.title, e)
            self._append("assistant", "❌ Failed to create task. Please try again.")
            return None

    def _finish(self, delay: float) -> None:
        self.pending_task = None
        self.state = ConversationState.COMMITTED
        self.reset_task = asyncio.get_running_loop().create_task(self._reset_later(delay))

    async def force_create(self) -> Optional[Task]:
        """Create the pending draft despite its known conflicts.

        Returns None when the store fails; the draft stays pending so the
        user can try again.
        """
        if self._in_flight:
            raise ConversationBusy("A request is already being processed for this conversation")
        if self.state != ConversationState.CONFLICT_PENDING or not isinstance(self.pending_task, Task):
            raise InvalidTransition(f"Nothing to force-create in state {self.state.value}")

        self._in_flight = True
        try:
            created = await self._commit(self.pending_task)
        finally:
            self._in_flight = False
        if created is None:
            return None

        self._append("assistant", f'✅ Task "{created.title}" has been created despite conflicts.')
        self._finish(self.defaults.force_create_reset_delay_seconds)
        return created

    def view(self) -> ConversationView:
        return ConversationView(
            id=self.id,
            state=self.state.value,
            history=list(self.history),
            pending_task=self.pending_task,
            context_summary=self.context_summary,
        )


class ConversationRegistry:
    """In-memory conversations keyed by id. Sessions are never persisted.

    Sessions idle for longer than `ttl_seconds` are dropped the next time the
    registry is used.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULTS.session_ttl_seconds,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._conversations: dict[str, SchedulingConversation] = {}

    def expire_idle(self) -> int:
        cutoff = self.clock() - timedelta(seconds=self.ttl_seconds)
        expired = [
            conversation_id
            for conversation_id, conversation in self._conversations.items()
            if not conversation.busy and conversation.last_active < cutoff
        ]
        for conversation_id in expired:
            self._conversations.pop(conversation_id).abandon()
        if expired:
            logger.info("Expired %d idle conversation(s)", len(expired))
        return len(expired)

    def create(self, model: LanguageModel, store: TaskStore, defaults: SchedulingDefaults = DEFAULTS) -> SchedulingConversation:
        self.expire_idle()
        conversation = SchedulingConversation(model, store, defaults, clock=self.clock)
        conversation.start()
        self._conversations[conversation.id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Optional[SchedulingConversation]:
        self.expire_idle()
        return self._conversations.get(conversation_id)

    def discard(self, conversation_id: str) -> bool:
        conversation = self._conversations.pop(conversation_id, None)
        if conversation is None:
            return False
        conversation.abandon()
        return True

    def __len__(self) -> int:
        return len(self._conversations)
