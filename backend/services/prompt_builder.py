"""
Prompt builder for the planner and coder.

Directives live in backend/prompts/*.md. The coder directive is a mustache
template filled with the previous page, the request, and the plan.
"""

from __future__ import annotations

import re
from pathlib import Path

import chevron

from engine.kernel.types import Instruction

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

CODER_USER_TEXT = "Generate the website HTML now."

_BOX_REF_RE = re.compile(r"\bbox\s*#?\s*(\d+)\b", re.IGNORECASE)

# Cache loaded prompts in memory (they don't change at runtime)
_cache: dict[str, str] = {}


def _load(name: str) -> str:
    """Load and cache a prompt file."""
    if name not in _cache:
        path = PROMPTS_DIR / f"{name}.md"
        _cache[name] = path.read_text()
    return _cache[name]


def referenced_boxes(instruction: Instruction) -> list[int]:
    """
    Box ids the instruction points at: the selected box first, then any
    "Box N" mentioned in the text. Duplicates are dropped.
    """
    ids: list[int] = []
    if instruction.selected_box_id is not None:
        ids.append(instruction.selected_box_id)
    for match in _BOX_REF_RE.finditer(instruction.text):
        box_id = int(match.group(1))
        if box_id > 0 and box_id not in ids:
            ids.append(box_id)
    return ids


def context_hint(instruction: Instruction) -> str:
    return "Editing existing site" if instruction.prior_document is not None else "New site"


def build_planner_system() -> str:
    return _load("planner")


def build_planner_user_text(instruction: Instruction) -> str:
    """
    Build the planner's user turn.

    Args:
        instruction: The user's instruction with its page context

    Returns:
        "User request: ... Current context: ..." plus targeted boxes, if any
    """
    text = f"User request: {instruction.text}. Current context: {context_hint(instruction)}"
    boxes = referenced_boxes(instruction)
    if boxes:
        text += f". Targeted boxes: {', '.join(str(b) for b in boxes)}"
    return text


def build_coder_system(instruction: Instruction, plan: str) -> str:
    """
    Render the coder directive for one turn.

    Args:
        instruction: The user's instruction with its page context
        plan: Planner output (never empty by the time coding starts)

    Returns:
        System prompt text
    """
    previous_html = instruction.prior_document.html if instruction.prior_document is not None else "None"
    return chevron.render(
        _load("coder"),
        {
            "previous_html": previous_html,
            "user_request": instruction.text,
            "plan": plan,
            "selected_box": instruction.selected_box_id,
        },
    )


def build_coder_messages() -> list[dict[str, str]]:
    return [{"role": "user", "content": CODER_USER_TEXT}]
