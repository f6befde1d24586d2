# === FILE: site_mapper/parser/exact_order.py ===
"""Top-to-bottom content capture in exact document order.

The heading-partitioned view in :mod:`site_mapper.parser.strategies` groups
text under headings; this mode instead emits one block per list, heading,
paragraph, image, table or text-bearing div, in the order they are met.
Text already emitted (compared by a normalised prefix) is not emitted again,
so a wrapper and its child never both show up.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.crawler.models import PageSection, SectionType
from site_mapper.parser.page_info import HEADING_TAGS, clean_text, heading_level, image_token, own_text

__all__ = [
    "ContentBlock",
    "extract_exact_order",
    "blocks_to_sections",
    "complete_text",
    "MIN_DIV_CHARS",
]

MIN_DIV_CHARS = 20
FINGERPRINT_CHARS = 80

_SKIP_TAGS = frozenset({"script", "style", "noscript", "template", "svg", "iframe", "head"})
_STRUCTURAL = ["div", "section", "article", "main", "p", "ul", "ol", "table", "img", "form", *HEADING_TAGS]


@dataclass(frozen=True, slots=True)
class ContentBlock:
    kind: str  # list | heading | paragraph | image | table | form | text
    text: str
    level: Optional[int] = None


def _fingerprint(text: str) -> str:
    return clean_text(text).lower()[:FINGERPRINT_CHARS]


def _children(tag: Tag) -> List[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def _list_block(tag: Tag) -> Optional[ContentBlock]:
    items = [clean_text(li.get_text(" ")) for li in tag.find_all("li", recursive=False)]
    if not items:
        items = [clean_text(li.get_text(" ")) for li in tag.find_all("li")]
    items = [item for item in items if item]
    if not items:
        return None
    if tag.name == "ol":
        lines = [f"{n}. {item}" for n, item in enumerate(items, start=1)]
    else:
        lines = [f"• {item}" for item in items]
    return ContentBlock("list", "\n".join(lines))


def _table_block(tag: Tag) -> Optional[ContentBlock]:
    rows = []
    for tr in tag.find_all("tr"):
        cells = [clean_text(cell.get_text(" ")) for cell in tr.find_all(["th", "td"])]
        cells = [cell for cell in cells if cell]
        if cells:
            rows.append(" | ".join(cells))
    return ContentBlock("table", "\n".join(rows)) if rows else None


def _form_block(tag: Tag) -> Optional[ContentBlock]:
    fields = []
    for field in tag.find_all(["input", "select", "textarea"]):
        if field.get("type") in ("hidden", "submit", "button"):
            continue
        label = field.get("placeholder") or field.get("name") or field.get("id")
        if isinstance(label, str) and label.strip() and label.strip() not in fields:
            fields.append(label.strip())
    if not fields:
        return None
    return ContentBlock("form", "Form fields: " + ", ".join(fields))


def _visit(tag: Tag, base_url: str) -> Tuple[Optional[ContentBlock], bool]:
    """Block for *tag* (if any) and whether to descend into its children."""
    name = tag.name
    level = heading_level(tag)
    if level is not None:
        text = clean_text(tag.get_text(" "))
        return (ContentBlock("heading", text, level) if text else None), False
    if name in ("ul", "ol"):
        return _list_block(tag), False
    if name == "table":
        return _table_block(tag), False
    if name == "form":
        return _form_block(tag), False
    if name == "img":
        token = image_token(tag, base_url)
        return (ContentBlock("image", token) if token else None), False
    if name == "p":
        text = clean_text(tag.get_text(" "))
        # descend only to pick up inline images
        return (ContentBlock("paragraph", text) if text else None), True
    if name == "div":
        if tag.find(_STRUCTURAL) is None:
            text = clean_text(tag.get_text(" "))
            return (ContentBlock("text", text) if len(text) >= MIN_DIV_CHARS else None), False
        own = own_text(tag)
        return (ContentBlock("text", own) if len(own) >= MIN_DIV_CHARS else None), True
    return None, True


def _accept(block: ContentBlock, seen: Set[str]) -> bool:
    key = block.text if block.kind == "image" else _fingerprint(block.text)
    if not key or key in seen:
        return False
    seen.add(key)
    return True


def extract_exact_order(soup: BeautifulSoup, base_url: str) -> List[ContentBlock]:
    """Walk ``<body>`` depth-first and return content blocks in encounter order."""
    root = soup.body or soup
    blocks: List[ContentBlock] = []
    seen: Set[str] = set()
    stack: List[Tag] = list(reversed(_children(root)))

    while stack:
        tag = stack.pop()
        if tag.name in _SKIP_TAGS:
            continue
        block, descend = _visit(tag, base_url)
        if block is not None and _accept(block, seen):
            blocks.append(block)
        if descend:
            stack.extend(reversed(_children(tag)))
    return blocks


_SECTION_TYPES = {
    "list": (SectionType.LIST, "List"),
    "heading": (SectionType.HEADING, ""),
    "paragraph": (SectionType.CONTENT, "Paragraph"),
    "image": (SectionType.CONTENT, "Image"),
    "table": (SectionType.TABLE, "Table"),
    "text": (SectionType.CONTENT, "Content"),
    "form": (SectionType.FORM, "Form"),
}


def blocks_to_sections(blocks: List[ContentBlock]) -> List[PageSection]:
    """One PageSection per block, positions in block order."""
    sections: List[PageSection] = []
    for position, block in enumerate(blocks):
        section_type, label = _SECTION_TYPES[block.kind]
        sections.append(
            PageSection(
                section_type,
                block.text if block.kind == "heading" else label,
                block.text,
                position=position,
                level=block.level,
            )
        )
    return sections


def complete_text(blocks: List[ContentBlock]) -> str:
    return "\n\n".join(block.text for block in blocks)
