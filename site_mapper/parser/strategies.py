# === FILE: site_mapper/parser/strategies.py ===
"""Main-content extraction strategies.

Three variants share one shape: walk the page's headings (or content blocks)
in document order and turn each into a :class:`PageSection`. They differ in
*where* the text belonging to a heading lives:

* ``generic``      – direct following siblings of the heading;
* ``page_builder`` – widget containers next to the heading's widget wrapper
  (Elementor nests real content away from the heading);
* ``ecommerce``    – whole store content blocks, not heading-partitioned.

:func:`extract_main_content` is the single entry point; the variant is picked
from :data:`STRATEGIES`, so a new platform means one new function and one
table entry.
"""
from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.crawler.models import NO_CONTENT_MARKER, PageSection, SectionType
from site_mapper.parser.page_info import HEADING_TAGS, clean_text, heading_level, image_token
from site_mapper.parser.platform import ExtractionVariant

__all__ = [
    "MAX_SECTION_CHARS",
    "STRATEGIES",
    "extract_main_content",
    "extract_generic",
    "extract_page_builder",
    "extract_ecommerce",
]

MAX_SECTION_CHARS = 3000
MIN_STANDALONE_CHARS = 50
MIN_ECOMMERCE_CHARS = 30
PAGE_BUILDER_SIBLING_LIMIT = 5

GENERIC_CONTAINERS: Tuple[str, ...] = (
    "main#main",
    "main.site-main",
    'main[role="main"]',
    "main",
    ".main-content",
    "#main-content",
    ".entry-content",
    ".post-content",
    "article .content",
)
PAGE_BUILDER_CONTAINERS: Tuple[str, ...] = (
    "main",
    ".entry-content",
    ".elementor",
    ".site-content",
    "article",
    "#content",
)
ECOMMERCE_BLOCKS: Tuple[str, ...] = (
    ".main-content",
    ".product-content",
    ".page-content",
    ".rte",
    ".product-description",
    ".product-info",
    "main",
    "article",
    ".content",
)

_SKIP_TAGS = frozenset({"script", "style", "noscript", "template", "svg"})
_WIDGET_RE = re.compile(r"^elementor-widget$")

Strategy = Callable[[BeautifulSoup, str, Sequence[Tag]], List[PageSection]]


# --------------------------------------------------------------------------- #
# Shared helpers                                                              #
# --------------------------------------------------------------------------- #


def _find_container(soup: BeautifulSoup, selectors: Iterable[str]) -> Tag:
    for selector in selectors:
        found = soup.select_one(selector)
        if found is not None:
            return found
    return soup.body or soup


def _inside(tag: Tag, excluded: Sequence[Tag]) -> bool:
    if not excluded:
        return False
    for parent in [tag, *tag.parents]:
        if any(parent is ex for ex in excluded):
            return True
    return False


def _headings(container: Tag, excluded: Sequence[Tag]) -> Iterator[Tuple[Tag, int, str]]:
    for tag in container.find_all(list(HEADING_TAGS)):
        if _inside(tag, excluded):
            continue
        text = clean_text(tag.get_text(" "))
        if text:
            yield tag, int(tag.name[1]), text


def _is_boundary(tag: Tag, level: int) -> bool:
    """True if *tag* is, or contains, a heading of equal or higher rank."""
    own = heading_level(tag)
    if own is not None:
        return own <= level
    return any(int(h.name[1]) <= level for h in tag.find_all(list(HEADING_TAGS)))


def _block_text(tag: Tag) -> str:
    if tag.name in _SKIP_TAGS:
        return ""
    if tag.name in ("ul", "ol"):
        items = [clean_text(li.get_text(" ")) for li in tag.find_all("li")]
        return "\n".join(f"• {item}" for item in items if item)
    return clean_text(tag.get_text(" "))


def _images_in(tag: Tag, base_url: str) -> List[str]:
    imgs = [tag] if tag.name == "img" else tag.find_all("img")
    tokens = []
    for img in imgs:
        token = image_token(img, base_url)
        if token:
            tokens.append(token)
    return tokens


def _compose(texts: List[str], images: List[str], sep: str = "\n\n") -> str:
    body = sep.join(t for t in texts if t).strip()
    if len(body) > MAX_SECTION_CHARS:
        body = body[:MAX_SECTION_CHARS].rstrip() + "..."
    if images:
        unique = list(dict.fromkeys(images))
        body = f"{body}\n" + "\n".join(unique) if body else "\n".join(unique)
    return body or NO_CONTENT_MARKER


def _heading_anchor(heading: Tag, container: Tag) -> Tag:
    """Climb out of wrappers that hold nothing but the heading."""
    anchor = heading
    while (
        anchor.find_next_sibling() is None
        and anchor.parent is not None
        and anchor.parent is not container
        and isinstance(anchor.parent, Tag)
        and len(anchor.parent.find_all(list(HEADING_TAGS))) == 1
    ):
        anchor = anchor.parent
    return anchor


def _sibling_span(anchor: Tag, level: int, limit: Optional[int] = None) -> Iterator[Tag]:
    for count, sibling in enumerate(anchor.find_next_siblings()):
        if limit is not None and count >= limit:
            return
        if _is_boundary(sibling, level):
            return
        yield sibling


def _heading_section(level: int, title: str, content: str) -> PageSection:
    return PageSection(SectionType.HEADING, title, content, position=0, level=level)


def _numbered(sections: List[PageSection]) -> List[PageSection]:
    for index, section in enumerate(sections):
        section.position = index
    return sections


# --------------------------------------------------------------------------- #
# Strategies                                                                  #
# --------------------------------------------------------------------------- #


def extract_generic(soup: BeautifulSoup, base_url: str, excluded: Sequence[Tag] = ()) -> List[PageSection]:
    """Heading-driven walk over direct siblings, plus standalone paragraphs."""
    container = _find_container(soup, GENERIC_CONTAINERS)
    sections: List[PageSection] = []
    consumed: set[int] = set()
    standalone = {
        id(child)
        for child in container.find_all(["p", "div"], recursive=False)
        if child.name == "p" or {"content", "text-content"} & set(child.get("class") or [])
    }

    # one document-order pass keeps positions in traversal order
    for tag in container.find_all(True):
        if _inside(tag, excluded):
            continue
        level = heading_level(tag)
        if level is not None:
            title = clean_text(tag.get_text(" "))
            if not title:
                continue
            texts: List[str] = []
            images: List[str] = []
            size = 0
            for sibling in _sibling_span(_heading_anchor(tag, container), level):
                consumed.add(id(sibling))
                images.extend(_images_in(sibling, base_url))
                if size > MAX_SECTION_CHARS:
                    continue
                text = _block_text(sibling)
                if text:
                    texts.append(text)
                    size += len(text)
            sections.append(_heading_section(level, title, _compose(texts, images)))
        elif id(tag) in standalone and id(tag) not in consumed:
            text = clean_text(tag.get_text(" "))
            if len(text) >= MIN_STANDALONE_CHARS:
                sections.append(
                    PageSection(
                        SectionType.CONTENT,
                        "Content Section",
                        _compose([text], _images_in(tag, base_url)),
                        position=0,
                    )
                )
    return _numbered(sections)


def _widget_blocks(sibling: Tag) -> List[Tag]:
    blocks = sibling.select(".elementor-widget-container")
    if sibling.name == "div" and "elementor-widget-container" in (sibling.get("class") or []):
        blocks.insert(0, sibling)
    return blocks or [sibling]


def extract_page_builder(soup: BeautifulSoup, base_url: str, excluded: Sequence[Tag] = ()) -> List[PageSection]:
    """Heading walk that reads content from neighbouring widget containers."""
    container = _find_container(soup, PAGE_BUILDER_CONTAINERS)
    sections: List[PageSection] = []

    for heading, level, title in _headings(container, excluded):
        list_items: List[str] = []
        paragraphs: List[str] = []
        images: List[str] = []

        widget = heading.find_parent(class_=_WIDGET_RE)
        anchor = widget if widget is not None else _heading_anchor(heading, container)
        candidates: List[Tag] = []
        if anchor is not heading:
            # content placed in the same widget, after the heading
            candidates.extend(_sibling_span(heading, level))
        candidates.extend(_sibling_span(anchor, level, limit=PAGE_BUILDER_SIBLING_LIMIT))

        size = 0
        for candidate in candidates:
            for block in _widget_blocks(candidate):
                images.extend(_images_in(block, base_url))
                if size > MAX_SECTION_CHARS:
                    continue
                items = [clean_text(li.get_text(" ")) for li in block.find_all("li")]
                paras = [clean_text(p.get_text(" ")) for p in block.find_all("p")]
                if block.name == "p":
                    paras.insert(0, clean_text(block.get_text(" ")))
                if block.name == "li":
                    items.insert(0, clean_text(block.get_text(" ")))
                if not items and not paras:
                    fallback = _block_text(block)
                    if fallback:
                        paras.append(fallback)
                for item in items:
                    if item and f"• {item}" not in list_items:
                        list_items.append(f"• {item}")
                        size += len(item)
                for para in paras:
                    if para and para not in paragraphs:
                        paragraphs.append(para)
                        size += len(para)

        texts = ["\n".join(list_items)] if list_items else []
        texts.extend(paragraphs)
        sections.append(_heading_section(level, title, _compose(texts, images)))

    return _numbered(sections)


def extract_ecommerce(soup: BeautifulSoup, base_url: str, excluded: Sequence[Tag] = ()) -> List[PageSection]:
    """Whole-block text from store content containers."""
    sections: List[PageSection] = []
    emitted: List[Tag] = []
    seen: set[str] = set()

    for block in soup.select(", ".join(ECOMMERCE_BLOCKS)):
        if _inside(block, excluded) or _inside(block, emitted):
            continue
        text = clean_text(block.get_text(" "))
        if len(text) < MIN_ECOMMERCE_CHARS or text in seen:
            continue
        seen.add(text)
        emitted.append(block)
        first_heading = block.find(list(HEADING_TAGS))
        title = clean_text(first_heading.get_text(" ")) if first_heading else ""
        sections.append(
            PageSection(
                SectionType.CONTENT,
                title or "Content Section",
                _compose([text], _images_in(block, base_url)),
                position=0,
            )
        )
    return _numbered(sections)


STRATEGIES: Dict[ExtractionVariant, Strategy] = {
    ExtractionVariant.GENERIC: extract_generic,
    ExtractionVariant.PAGE_BUILDER: extract_page_builder,
    ExtractionVariant.ECOMMERCE: extract_ecommerce,
}


def extract_main_content(
    soup: BeautifulSoup,
    base_url: str,
    variant: ExtractionVariant = ExtractionVariant.GENERIC,
    excluded: Sequence[Tag] = (),
) -> List[PageSection]:
    """Run the strategy for *variant*; an empty result degrades to the generic walk."""
    sections = STRATEGIES[variant](soup, base_url, excluded)
    if not sections and variant is not ExtractionVariant.GENERIC:
        sections = extract_generic(soup, base_url, excluded)
    return sections
