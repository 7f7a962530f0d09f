"""
VibeBuilder Kernel — Rendering sandbox

Builds the page that displays a generated Document inside an isolated iframe,
and validates the one message the iframe is allowed to send back.

The iframe is sandboxed with scripts only (no same-origin), so generated
markup cannot touch the editor's cookies, storage, or DOM. The two sides talk
through postMessage with a single envelope:

    {"type": "BOX_SELECTED", "id": <positive int>}

The annotator script is injected only in edit mode, so outside edit mode no
selection event can be produced at all. Every render builds a fresh srcdoc;
nothing from a previous Document survives into the next.
"""

from __future__ import annotations

import json
from typing import Any

import chevron

from engine.kernel.boxes import parse_markup, serialize
from engine.kernel.errors import ProtocolViolation
from engine.kernel.types import BOX_ATTR, BoxSelection, Document

SELECTION_TYPE = "BOX_SELECTED"

EMPTY_FRAME = (
    "<!DOCTYPE html><html><body style=\"display:flex;justify-content:center;align-items:center;"
    'height:100vh;margin:0;font-family:sans-serif;color:#64748b;">Generating preview...</body></html>'
)

ANNOTATOR_STYLE = f"""
[{BOX_ATTR}] {{ position: relative; cursor: pointer; transition: outline-color 0.2s; }}
[{BOX_ATTR}]:hover {{ outline: 2px solid #3b82f6; outline-offset: -2px; }}
[{BOX_ATTR}]:hover::after {{
  content: attr({BOX_ATTR});
  position: absolute; top: 0; left: 0; z-index: 2147483647;
  background: #3b82f6; color: #fff; font: 12px/1.4 sans-serif;
  padding: 2px 6px; border-bottom-right-radius: 4px; pointer-events: none;
}}
"""

# Capture-phase handler on the document: one click yields at most one event,
# even when boxes are nested, and links/buttons/forms never activate.
ANNOTATOR_SCRIPT = f"""
(function () {{
  document.addEventListener("click", function (event) {{
    var node = event.target;
    var box = node && node.closest ? node.closest("[{BOX_ATTR}]") : null;
    if (!box) return;
    event.preventDefault();
    event.stopPropagation();
    var id = parseInt(box.getAttribute("{BOX_ATTR}"), 10);
    if (!(id > 0)) return;
    window.parent.postMessage({{ type: "{SELECTION_TYPE}", id: id }}, "*");
  }}, true);
}})();
"""

HOST_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{title}}</title>
<style>
html, body { margin: 0; height: 100%; background: #0f172a; }
.vibe-bar { font: 12px sans-serif; color: #94a3b8; padding: 6px 12px; }
iframe { border: 0; width: 100%; height: calc(100% - 28px); background: #fff; }
</style>
</head>
<body>
<div class="vibe-bar">{{#edit_mode}}EDIT MODE: Click a box to change it{{/edit_mode}}{{^edit_mode}}PREVIEW MODE{{/edit_mode}}</div>
<iframe id="vibe-frame" title="Website Preview" sandbox="allow-scripts" srcdoc="{{frame}}"></iframe>
<script>
(function () {
  var frame = document.getElementById("vibe-frame");
  var endpoint = {{{endpoint}}};
  window.addEventListener("message", function (event) {
    if (event.source !== frame.contentWindow) return;
    var data = event.data;
    if (!data || typeof data !== "object") return;
    if (Object.keys(data).length !== 2) return;
    if (data.type !== "BOX_SELECTED" || !Number.isInteger(data.id) || data.id < 1) return;
    var envelope = { type: "BOX_SELECTED", id: data.id };
    if (window.parent !== window) window.parent.postMessage(envelope, window.location.origin);
    if (endpoint) {
      fetch(endpoint, {
        method: "POST",
        credentials: "same-origin",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify(envelope)
      });
    }
  });
})();
</script>
</body>
</html>
"""


def build_frame(document: Document | None, edit_mode: bool) -> str:
    """
    Build the markup that goes inside the sandboxed iframe.

    In edit mode the annotator style and click handler are injected; otherwise
    the document is returned untouched.
    """
    if document is None or not document.html.strip():
        return EMPTY_FRAME
    if not edit_mode:
        return document.html

    soup = parse_markup(document.html)

    style = soup.new_tag("style")
    style["data-vibe-annotator"] = ""
    style.string = ANNOTATOR_STYLE
    script = soup.new_tag("script")
    script["data-vibe-annotator"] = ""
    script.string = ANNOTATOR_SCRIPT

    if soup.head is not None:
        soup.head.append(style)
    elif soup.body is not None:
        soup.body.insert(0, style)
    else:
        soup.insert(0, style)

    if soup.body is not None:
        soup.body.append(script)
    else:
        soup.append(script)

    return serialize(soup)


def render_host_page(
    document: Document | None,
    edit_mode: bool,
    title: str = "Website Preview",
    selection_endpoint: str | None = None,
) -> str:
    """
    Render the host page that embeds the sandboxed iframe.

    Args:
        document: Document to display (None shows a waiting page)
        edit_mode: Inject the box annotator into the frame
        title: Page title
        selection_endpoint: URL the host POSTs validated selections to

    Returns:
        Complete HTML string
    """
    return chevron.render(
        HOST_TEMPLATE,
        {
            "title": title,
            "edit_mode": edit_mode,
            "frame": build_frame(document, edit_mode),
            "endpoint": json.dumps(selection_endpoint) if edit_mode and selection_endpoint else "null",
        },
    )


def parse_selection(payload: Any) -> BoxSelection:
    """
    Validate a selection envelope coming out of the sandbox.

    Raises:
        ProtocolViolation: If payload is not exactly {"type": "BOX_SELECTED", "id": <int >= 1>}
    """
    if not isinstance(payload, dict):
        raise ProtocolViolation(f"expected an object, got {type(payload).__name__}")
    if set(payload) != {"type", "id"}:
        raise ProtocolViolation(f"unexpected keys: {sorted(map(str, payload))}")
    if payload["type"] != SELECTION_TYPE:
        raise ProtocolViolation(f"unexpected message type: {payload['type']!r}")
    box_id = payload["id"]
    # bool is an int subclass; True must not select box 1
    if isinstance(box_id, bool) or not isinstance(box_id, int) or box_id < 1:
        raise ProtocolViolation(f"invalid box id: {box_id!r}")
    return BoxSelection(box_id=box_id)
