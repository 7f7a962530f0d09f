"""Tests for planner and coder prompt assembly."""

from __future__ import annotations

from backend.services.prompt_builder import (
    CODER_USER_TEXT,
    build_coder_messages,
    build_coder_system,
    build_planner_system,
    build_planner_user_text,
    context_hint,
    referenced_boxes,
)
from engine.kernel.types import Document, Instruction

PRIOR = Document(html='<html><body><h1 data-vibe-box="1">Tom & Jerry</h1></body></html>')


class TestReferencedBoxes:
    def test_selected_box_comes_first(self):
        instruction = Instruction(text="Swap box 4 and Box #2", selected_box_id=2)
        assert referenced_boxes(instruction) == [2, 4]

    def test_mentions_in_text(self):
        assert referenced_boxes(Instruction(text="make BOX 3 red, then box#7 bigger")) == [3, 7]

    def test_no_references(self):
        assert referenced_boxes(Instruction(text="a mailbox 5 times bigger")) == []
        assert referenced_boxes(Instruction(text="box 0 is not a box")) == []


class TestPlanner:
    def test_system_prompt_asks_for_json(self):
        system = build_planner_system()
        assert "JSON" in system

    def test_user_text_for_new_site(self):
        text = build_planner_user_text(Instruction(text="A bakery site"))
        assert text == "User request: A bakery site. Current context: New site"

    def test_user_text_for_edit_with_targets(self):
        instruction = Instruction(text="Make box 3 blue", prior_document=PRIOR, selected_box_id=1)
        text = build_planner_user_text(instruction)
        assert "Current context: Editing existing site" in text
        assert text.endswith("Targeted boxes: 1, 3")

    def test_context_hint(self):
        assert context_hint(Instruction(text="x")) == "New site"
        assert context_hint(Instruction(text="x", prior_document=PRIOR)) == "Editing existing site"


class TestCoder:
    def test_new_site_has_no_previous_markup(self):
        system = build_coder_system(Instruction(text="A bakery site"), plan="hero, menu, contact")
        assert "data-vibe-box" in system
        assert "data-image-prompt" in system
        assert "hero, menu, contact" in system
        assert "A bakery site" in system
        assert "Selected box" not in system

    def test_previous_markup_is_not_escaped(self):
        instruction = Instruction(text="Use <b>bold</b> & italics", prior_document=PRIOR, selected_box_id=1)
        system = build_coder_system(instruction, plan="keep layout")

        assert PRIOR.html in system
        assert "Use <b>bold</b> & italics" in system
        assert "Selected box: 1" in system

    def test_messages(self):
        assert build_coder_messages() == [{"role": "user", "content": CODER_USER_TEXT}]
