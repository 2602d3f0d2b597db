"""Summarizer capability backed by the Anthropic Messages API."""

import logging
from typing import Protocol

from anthropic import AsyncAnthropic

from castdigest.config.settings import get_settings

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    """Anything that turns a prompt into a text completion."""

    async def complete(self, prompt: str, max_tokens: int) -> str:
        ...


class AnthropicSummarizer:
    """Summarizer using Claude via the anthropic SDK.

    The SDK retries rate limits and transient server errors itself.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None):
        settings = get_settings()
        self.model = model or settings.summary_model
        self.client = AsyncAnthropic(
            api_key=api_key or settings.anthropic_api_key or None,
            timeout=settings.summary_timeout,
        )

    async def complete(self, prompt: str, max_tokens: int) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            raise ValueError("Unexpected response type from summarizer")

        logger.debug(
            f"Summarizer used {message.usage.input_tokens} input / "
            f"{message.usage.output_tokens} output tokens"
        )
        return "".join(text_blocks)
