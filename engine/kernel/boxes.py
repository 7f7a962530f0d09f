"""
VibeBuilder Kernel — Box annotator

Parses generated markup, numbers its addressable boxes, and finds the image
placeholders the asset filler has to resolve.

Box numbering is a single document-order walk starting at 1. Whatever ids the
coder wrote are discarded, so every Document coming out of the pipeline has a
gapless 1..N range regardless of what the model emitted.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Doctype, Tag

from engine.kernel.types import BOX_ATTR, BOX_TAGS, PROMPT_ATTR, AddressableBox, AssetPlaceholder, Document

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\n?(.*?)```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code-fence wrapping from model output.

    If the text contains a fenced block, the first block's body is returned.
    An unterminated opening fence is dropped along with its language tag.
    """
    stripped = text.strip()
    match = _FENCE_RE.search(stripped)
    if match:
        return match.group(1).strip()
    if stripped.startswith("```"):
        _, _, rest = stripped.partition("\n")
        return rest.strip()
    return stripped


def parse_markup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def serialize(soup: BeautifulSoup) -> str:
    """Serialize a parsed page, making sure it starts with a doctype."""
    has_doctype = any(isinstance(node, Doctype) for node in soup.contents)
    markup = str(soup)
    if has_doctype:
        return markup
    return "<!DOCTYPE html>\n" + markup


def _in_head(tag: Tag) -> bool:
    return tag.find_parent("head") is not None


def annotate_boxes(soup: BeautifulSoup) -> int:
    """
    Number every addressable element in document order. Mutates soup.

    Returns:
        Number of boxes assigned
    """
    count = 0
    for tag in soup.find_all(True):
        if tag.name in ("html", "head", "body") or _in_head(tag):
            if tag.has_attr(BOX_ATTR):
                del tag[BOX_ATTR]
            continue
        if tag.name in BOX_TAGS or tag.has_attr(BOX_ATTR):
            count += 1
            tag[BOX_ATTR] = str(count)
    return count


def annotate(html: str) -> Document:
    """Parse, renumber, and serialize a page into a Document."""
    soup = parse_markup(html)
    annotate_boxes(soup)
    return Document(html=serialize(soup))


def list_boxes(document: Document) -> list[AddressableBox]:
    """Return the boxes of a document in document order. Malformed ids are skipped."""
    boxes = []
    for tag in parse_markup(document.html).find_all(attrs={BOX_ATTR: True}):
        raw = tag.get(BOX_ATTR, "")
        if isinstance(raw, str) and raw.isdigit() and int(raw) > 0:
            boxes.append(AddressableBox(id=int(raw), tag=tag.name))
    return boxes


def box_ids(document: Document) -> list[int]:
    return [box.id for box in list_boxes(document)]


def find_placeholder_tags(soup: BeautifulSoup) -> list[Tag]:
    """Image elements that carry a non-empty generation prompt, in document order."""
    tags = []
    for tag in soup.find_all("img", attrs={PROMPT_ATTR: True}):
        prompt = tag.get(PROMPT_ATTR)
        if isinstance(prompt, str) and prompt.strip():
            tags.append(tag)
    return tags


def list_placeholders(document: Document) -> list[AssetPlaceholder]:
    tags = find_placeholder_tags(parse_markup(document.html))
    return [AssetPlaceholder(prompt=tag[PROMPT_ATTR].strip(), position=i) for i, tag in enumerate(tags)]
