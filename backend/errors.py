"""Error types raised by the scheduling core.

A detected conflict is not an error; it is one of the parser's normal outcomes.
"""


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""


class TaskValidationError(SchedulingError):
    """A task field is missing or unusable."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class MissingRequiredField(TaskValidationError):
    def __init__(self, field: str):
        super().__init__(field, f"{field} is required")


class InvalidFieldValue(TaskValidationError):
    pass


class UpstreamError(SchedulingError):
    """The language model or the task store could not complete a call."""


class MalformedModelOutput(SchedulingError):
    """The language model answered with something that is not a usable reply."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class ConversationBusy(SchedulingError):
    """A request is already in flight for this conversation."""


class InvalidTransition(SchedulingError):
    """The requested action is not allowed in the conversation's current state."""
