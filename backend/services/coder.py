"""Coding stage: instruction and plan in, annotated Document out."""

from __future__ import annotations

import logging

import anthropic

from backend.config import settings
from backend.services.ai_provider import AIProvider, ai_provider
from backend.services.prompt_builder import build_coder_messages, build_coder_system
from engine.kernel.boxes import annotate, strip_code_fences
from engine.kernel.errors import CapabilityError
from engine.kernel.types import Document, Instruction

logger = logging.getLogger(__name__)


class Coder:
    """Generates the full page markup for a turn."""

    def __init__(self, provider: AIProvider | None = None) -> None:
        self.provider = provider or ai_provider

    async def code(self, instruction: Instruction, plan: str) -> Document:
        """
        Generate, unfence, and box-number the page.

        Raises:
            CapabilityError: If the model call fails or returns no markup
        """
        try:
            result = await self.provider.call_claude(
                model=settings.CODER_MODEL,
                system=build_coder_system(instruction, plan),
                messages=build_coder_messages(),
                max_tokens=settings.CODER_MAX_TOKENS,
                temperature=settings.CODER_TEMPERATURE,
            )
        except anthropic.APIError as e:
            raise CapabilityError("coding", str(e)) from e

        html = strip_code_fences(result.get("content") or "")
        if not html:
            raise CapabilityError("coding", "model returned no markup")

        document = annotate(html)
        logger.info("coder: %d chars", len(document.html))
        return document
