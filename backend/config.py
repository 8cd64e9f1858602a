import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]


class SchedulingDefaults(BaseModel):
    """Tunable constants shared by the parser, normalizer and conversation flow."""

    model_config = ConfigDict(frozen=True)

    business_start_hour: int = Field(9, ge=0, le=23)
    business_end_hour: int = Field(17, ge=1, le=24)
    # Free-time reports look at a slightly longer working day
    workday_end_hour: int = Field(18, ge=1, le=24)
    min_free_slot_minutes: int = 30

    meeting_duration_hours: float = 1.0
    default_duration_hours: float = 2.0

    confidence_threshold: float = 0.6

    parser_max_tokens: int = 500
    parser_temperature: float = 0.2
    summary_max_tokens: int = 180
    summary_temperature: float = 0.3

    # Seconds the confirmation stays visible before the conversation resets
    reset_delay_seconds: float = 4.0
    force_create_reset_delay_seconds: float = 2.0
    # Idle sessions are dropped from the registry after this long
    session_ttl_seconds: float = 30 * 60

    def duration_for(self, category: str) -> float:
        if category == "meeting":
            return self.meeting_duration_hours
        return self.default_duration_hours


DEFAULTS = SchedulingDefaults()
