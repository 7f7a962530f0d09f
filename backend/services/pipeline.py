"""
Generation pipeline: Planner → Coder → Asset Filler.

Drives the pure turn state machine in engine.kernel.turn. The runner never
raises for a stage failure; it returns a TurnState in "error" instead, and the
caller decides what to tell the user. The only exception that escapes is
ConfigurationError, raised before any stage runs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from backend.config import settings
from backend.services.asset_filler import AssetFiller, build_asset_filler
from backend.services.coder import Coder
from backend.services.planner import Planner
from engine.kernel import turn
from engine.kernel.errors import CapabilityError, ConfigurationError
from engine.kernel.types import Instruction, TurnState

logger = logging.getLogger(__name__)

StatusSink = Callable[[str], Awaitable[None]]


async def _noop_status(_: str) -> None:
    return None


def _advisory(on_status: StatusSink | None) -> StatusSink:
    """Wrap a progress sink so a failing listener cannot fail the turn."""
    if on_status is None:
        return _noop_status

    async def emit(text: str) -> None:
        try:
            await on_status(text)
        except Exception as e:
            logger.warning("pipeline: status sink failed on %r: %s", text, e)

    return emit


class GenerationPipeline:
    """One instance serves every session; each run() is independent."""

    def __init__(
        self,
        planner: Planner | None = None,
        coder: Coder | None = None,
        asset_filler: AssetFiller | None = None,
    ) -> None:
        self.planner = planner or Planner()
        self.coder = coder or Coder()
        self.asset_filler = asset_filler or build_asset_filler()

    def ensure_configured(self) -> None:
        """
        Raises:
            ConfigurationError: If the planning/coding credential is missing
        """
        if not settings.ANTHROPIC_API_KEY:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set; cannot generate websites")

    async def run(self, instruction: Instruction, on_status: StatusSink | None = None) -> TurnState:
        """
        Run one turn.

        Args:
            instruction: Text, prior document, and selected box
            on_status: Async sink for advisory progress text

        Returns:
            TurnState in "done" (with a document) or "error" (without one)

        Raises:
            ConfigurationError: Before any stage, if the credential is missing
        """
        self.ensure_configured()
        emit = _advisory(on_status)

        state = turn.begin(instruction)
        try:
            await emit("Planning...")
            plan = await self.planner.plan(instruction)
            state = turn.planned(state, plan)
            logger.info("pipeline: planned (%d chars)", len(state.plan or ""))

            await emit("Writing HTML...")
            document = await self.coder.code(instruction, state.plan or turn.FALLBACK_PLAN)
            state = turn.coded(state, document)
            logger.info("pipeline: coded (%d chars)", len(document.html))

            document = await self.asset_filler.fill(document, on_status=emit)
            await emit("Finalizing...")
            state = turn.filled(state, document)
            logger.info("pipeline: done")
            return state
        except CapabilityError as e:
            logger.warning("pipeline: %s", e)
            return turn.failed(state, "capability", str(e))
        except Exception as e:
            logger.exception("pipeline: unexpected failure in stage %s", state.stage)
            return turn.failed(state, "internal", str(e) or type(e).__name__)


# Singleton instance
generation_pipeline = GenerationPipeline()
