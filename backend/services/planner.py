"""Planning stage: instruction in, free-form plan text out."""

from __future__ import annotations

import logging

import anthropic

from backend.config import settings
from backend.services.ai_provider import AIProvider, ai_provider
from backend.services.prompt_builder import build_planner_system, build_planner_user_text
from engine.kernel.errors import CapabilityError
from engine.kernel.types import Instruction

logger = logging.getLogger(__name__)


class Planner:
    """Turns an instruction into a plan for the coder."""

    def __init__(self, provider: AIProvider | None = None) -> None:
        self.provider = provider or ai_provider

    async def plan(self, instruction: Instruction) -> str:
        """
        Ask the planning model for a plan.

        An empty reply is returned as-is; the turn state machine substitutes
        a fallback plan, so an empty plan never fails a turn.

        Raises:
            CapabilityError: If the model call fails
        """
        try:
            result = await self.provider.call_claude(
                model=settings.PLANNER_MODEL,
                system=build_planner_system(),
                messages=[{"role": "user", "content": build_planner_user_text(instruction)}],
                max_tokens=settings.PLANNER_MAX_TOKENS,
            )
        except anthropic.APIError as e:
            raise CapabilityError("planning", str(e)) from e

        plan = (result.get("content") or "").strip()
        logger.info("planner: %d chars", len(plan))
        return plan
