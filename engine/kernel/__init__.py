"""
VibeBuilder Kernel — the pure engine.

Four pieces, none of which touch the network or the database:
  boxes   : parse generated markup, number addressable boxes, find image placeholders
  turn    : (state, stage result) → state  (pure, per-turn state machine)
  sandbox : isolated preview page + validation of the selection envelope
  errors  : the error taxonomy shared with the backend
"""

from engine.kernel.boxes import annotate, list_boxes, list_placeholders, strip_code_fences
from engine.kernel.sandbox import build_frame, parse_selection, render_host_page
from engine.kernel.turn import begin, coded, failed, filled, planned

__all__ = [
    "annotate",
    "list_boxes",
    "list_placeholders",
    "strip_code_fences",
    "build_frame",
    "parse_selection",
    "render_host_page",
    "begin",
    "planned",
    "coded",
    "filled",
    "failed",
]
