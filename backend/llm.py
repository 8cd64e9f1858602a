import logging
from typing import Optional, Protocol

import anthropic

from config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL, LLM_TIMEOUT_SECONDS
from errors import UpstreamError

logger = logging.getLogger(__name__)


class LanguageModel(Protocol):
    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int,
        temperature: float,
    ) -> str: ...


def strip_code_fence(text: str) -> str:
    """Remove a markdown code block wrapped around the model's answer, if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


class AnthropicModel:
    """LanguageModel backed by the Anthropic Messages API.

    Retries are disabled: a failed call surfaces immediately and the user
    retries by sending another message.
    """

    def __init__(
        self,
        api_key: Optional[str] = ANTHROPIC_API_KEY,
        model: str = ANTHROPIC_MODEL,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._client) or bool(self.api_key and self.api_key != "your-api-key-here")

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int,
        temperature: float,
    ) -> str:
        if not self.configured:
            raise UpstreamError("API key not configured")

        kwargs = {}
        if system:
            kwargs["system"] = system
        try:
            response = await self._get_client().messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except anthropic.APIError as e:
            logger.error("Language model call failed: %s", e)
            raise UpstreamError(f"API error: {e}") from e

        if not response.content or not getattr(response.content[0], "text", ""):
            raise UpstreamError("No response from language model")
        text = response.content[0].text
        logger.debug("Language model response: %s", text)
        return text
