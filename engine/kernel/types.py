"""
VibeBuilder Kernel — Shared Types

Value types passed between the annotator, the pipeline state machine, and the
sandbox. Everything here is immutable: each edit produces a new Document and
each stage transition produces a new TurnState.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# ---------------------------------------------------------------------------
# Markup attributes
# ---------------------------------------------------------------------------

BOX_ATTR = "data-vibe-box"
PROMPT_ATTR = "data-image-prompt"

# Elements that always get a box, whether or not the coder tagged them.
# Grouping containers (div, span) only keep a box when the coder asked for one.
BOX_TAGS: frozenset[str] = frozenset(
    {
        "header",
        "footer",
        "nav",
        "main",
        "section",
        "article",
        "aside",
        "form",
        "figure",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "p",
        "img",
        # Interactive controls
        "a",
        "button",
        "input",
        "select",
        "textarea",
    }
)


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

Stage = Literal["idle", "planning", "coding", "filling_assets", "done", "error"]

TERMINAL_STAGES: frozenset[str] = frozenset({"done", "error"})

# stage -> stages it may move to
TRANSITIONS: dict[str, frozenset[str]] = {
    "idle": frozenset({"planning", "error"}),
    "planning": frozenset({"coding", "error"}),
    "coding": frozenset({"filling_assets", "error"}),
    "filling_assets": frozenset({"done", "error"}),
    "done": frozenset(),
    "error": frozenset(),
}

ErrorKind = Literal["capability", "internal"]


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Document:
    """The full page markup produced by one pipeline run."""

    html: str


@dataclass(frozen=True)
class AddressableBox:
    """A numbered, user-selectable region of a Document."""

    id: int
    tag: str


@dataclass(frozen=True)
class AssetPlaceholder:
    """An image slot awaiting synthesis. position is its index among placeholders."""

    prompt: str
    position: int


@dataclass(frozen=True)
class Instruction:
    """One user turn."""

    text: str
    prior_document: Document | None = None
    selected_box_id: int | None = None


@dataclass(frozen=True)
class TurnError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class TurnState:
    """
    Where a single pipeline run stands.

    plan is set once planning finishes, document once coding finishes.
    A state in "error" never carries a document.
    """

    stage: Stage
    instruction: Instruction
    plan: str | None = None
    document: Document | None = None
    error: TurnError | None = None

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def ok(self) -> bool:
        return self.stage == "done"


@dataclass(frozen=True)
class BoxSelection:
    """A validated selection envelope from the sandbox."""

    box_id: int
