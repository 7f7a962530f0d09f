"""
VibeBuilder Kernel — Turn state machine

Pure transitions for one generation turn:

    idle → planning → coding → filling_assets → done
                 \\         \\              \\
                  └─────────┴──────────────┴──→ error

Each function takes a TurnState and returns a new one. Illegal moves raise
ValueError, so a runner cannot skip a stage or leave a terminal state.
"""

from __future__ import annotations

from dataclasses import replace

from engine.kernel.types import TRANSITIONS, Document, ErrorKind, Instruction, Stage, TurnError, TurnState

FALLBACK_PLAN = "Update the website based on the user request."


def _move(state: TurnState, stage: Stage, **changes) -> TurnState:
    if stage not in TRANSITIONS[state.stage]:
        raise ValueError(f"Illegal turn transition: {state.stage} -> {stage}")
    return replace(state, stage=stage, **changes)


def begin(instruction: Instruction) -> TurnState:
    """Start a turn. The new state is already in planning."""
    return _move(TurnState(stage="idle", instruction=instruction), "planning")


def planned(state: TurnState, plan: str | None) -> TurnState:
    """Record the plan and move to coding. An empty plan is replaced, never rejected."""
    text = (plan or "").strip() or FALLBACK_PLAN
    return _move(state, "coding", plan=text)


def coded(state: TurnState, document: Document) -> TurnState:
    """Record the annotated document and move to asset filling."""
    return _move(state, "filling_assets", document=document)


def filled(state: TurnState, document: Document) -> TurnState:
    """Record the document with resolved assets and finish."""
    return _move(state, "done", document=document)


def failed(state: TurnState, kind: ErrorKind, message: str) -> TurnState:
    """End the turn in error. Any partial document is dropped."""
    return _move(state, "error", document=None, error=TurnError(kind=kind, message=message))
