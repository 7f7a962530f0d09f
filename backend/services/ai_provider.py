"""AI provider abstraction: Anthropic for text, OpenAI for images."""

import asyncio
import base64
import logging
import time
from typing import Any

import anthropic
import openai

from backend.config import settings

logger = logging.getLogger(__name__)

# Transient error types that warrant a retry
_RETRYABLE_ANTHROPIC = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)
_RETRYABLE_OPENAI = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class AIProvider:
    """Unified interface for the text and image capabilities."""

    def __init__(self) -> None:
        """Initialize AI clients with API keys from settings."""
        self.anthropic_client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
        self.openai_client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    async def call_claude(
        self,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        max_tokens: int = 4096,
        temperature: float = 1.0,
        max_retries: int = 1,
    ) -> dict[str, Any]:
        """
        Call Claude API with streaming and timing telemetry.

        Args:
            model: Model name (e.g., "claude-3-5-haiku-20241022", "claude-sonnet-4-20250514")
            system: System prompt
            messages: List of message dicts with "role" and "content"
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            max_retries: Number of retries on transient failures (default 1)

        Returns:
            Dict with:
            - content: Generated text
            - usage: Token counts (input_tokens, output_tokens)
            - timing: Timing telemetry (ttft_ms, total_ms)

        Raises:
            anthropic.APIError: If all retries exhausted
        """
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                request_sent_at = time.perf_counter()
                first_token_at: float | None = None
                content_text = ""
                input_tokens = 0
                output_tokens = 0

                async with self.anthropic_client.messages.stream(
                    model=model,
                    system=system,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ) as stream:
                    async for event in stream:
                        if event.type == "content_block_delta":
                            if first_token_at is None:
                                first_token_at = time.perf_counter()
                            if hasattr(event.delta, "text"):
                                content_text += event.delta.text
                        elif event.type == "message_delta":
                            if hasattr(event.usage, "output_tokens"):
                                output_tokens = event.usage.output_tokens
                        elif event.type == "message_start":
                            if hasattr(event.message, "usage"):
                                input_tokens = event.message.usage.input_tokens

                last_token_at = time.perf_counter()

                total_ms = int((last_token_at - request_sent_at) * 1000)
                ttft_ms = int((first_token_at - request_sent_at) * 1000) if first_token_at else total_ms

                logger.info(
                    "claude %s: %d in / %d out tokens, ttft=%dms total=%dms",
                    model,
                    input_tokens,
                    output_tokens,
                    ttft_ms,
                    total_ms,
                )

                return {
                    "content": content_text,
                    "usage": {
                        "input_tokens": input_tokens,
                        "output_tokens": output_tokens,
                    },
                    "timing": {
                        "ttft_ms": ttft_ms,
                        "total_ms": total_ms,
                    },
                }
            except _RETRYABLE_ANTHROPIC as e:
                last_error = e
                if attempt < max_retries:
                    wait_time = 2**attempt  # Exponential backoff: 1s, 2s, 4s...
                    logger.warning("Claude API error (attempt %d), retrying in %ds: %s", attempt + 1, wait_time, e)
                    await asyncio.sleep(wait_time)
                else:
                    logger.error("Claude API error, retries exhausted: %s", e)

        # All retries failed
        raise last_error  # type: ignore[misc]

    async def generate_image(self, prompt: str, max_retries: int = 1) -> tuple[bytes, str]:
        """
        Synthesize one image from a text prompt.

        Args:
            prompt: Image description
            max_retries: Number of retries on transient failures (default 1)

        Returns:
            (image bytes, mime type)

        Raises:
            openai.OpenAIError: If the request fails or retries are exhausted
            ValueError: If the response carries no image data
        """
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                response = await self.openai_client.images.generate(
                    model=settings.IMAGE_MODEL,
                    prompt=prompt,
                    size=settings.IMAGE_SIZE,
                    n=1,
                )
                data = response.data[0].b64_json if response.data else None
                if not data:
                    raise ValueError("No image data found in response")
                return base64.b64decode(data), "image/png"
            except _RETRYABLE_OPENAI as e:
                last_error = e
                if attempt < max_retries:
                    wait_time = 2**attempt
                    logger.warning("OpenAI image error (attempt %d), retrying in %ds: %s", attempt + 1, wait_time, e)
                    await asyncio.sleep(wait_time)
                else:
                    logger.error("OpenAI image error, retries exhausted: %s", e)

        raise last_error  # type: ignore[misc]


# Singleton instance
ai_provider = AIProvider()
