# === FILE: site_mapper/parser/page_info.py ===
"""Auxiliary page extraction: title, meta description, headings, images, structure counts.

These run independently of section extraction and are cheap enough to run
on every successfully fetched page.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from site_mapper.crawler.models import Heading, PageImage
from site_mapper.utils import resolve_url

__all__: Sequence[str] = (
    "HEADING_TAGS",
    "clean_text",
    "own_text",
    "heading_level",
    "extract_title",
    "extract_meta_description",
    "extract_headings",
    "extract_images",
    "analyze_structure",
    "image_token",
)

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_WS_RE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip."""
    return _WS_RE.sub(" ", text or "").strip()


def own_text(tag: Tag) -> str:
    """Text written directly inside *tag*, without its child elements."""
    strings = (s for s in tag.children if isinstance(s, NavigableString) and not isinstance(s, Comment))
    return clean_text(" ".join(strings))


def heading_level(tag: Tag) -> Optional[int]:
    name = (tag.name or "").lower()
    if name in HEADING_TAGS:
        return int(name[1])
    return None


def extract_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    return clean_text(title_tag.get_text()) if title_tag else ""


def extract_meta_description(soup: BeautifulSoup) -> str:
    tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    if isinstance(tag, Tag):
        content = tag.get("content")
        if isinstance(content, str):
            return content.strip()
    return ""


def extract_headings(soup: BeautifulSoup) -> List[Heading]:
    """All non-empty h1–h6 in document order."""
    headings: List[Heading] = []
    for tag in soup.find_all(list(HEADING_TAGS)):
        text = clean_text(tag.get_text(" "))
        if text:
            headings.append(Heading(level=int(tag.name[1]), text=text))
    return headings


def _int_attr(tag: Tag, name: str) -> Optional[int]:
    raw = tag.get(name)
    if not isinstance(raw, str):
        return None
    match = re.match(r"\s*(\d+)", raw)
    if not match:
        return None
    value = int(match.group(1))
    return value or None


def extract_images(soup: BeautifulSoup, base_url: str) -> List[PageImage]:
    """All <img> with a resolvable src, positions in document order."""
    images: List[PageImage] = []
    for tag in soup.find_all("img"):
        src = resolve_url(tag.get("src") if isinstance(tag.get("src"), str) else None, base_url)
        if src is None:
            continue
        alt = tag.get("alt")
        title = tag.get("title")
        images.append(
            PageImage(
                src=src,
                position=len(images),
                alt=alt.strip() if isinstance(alt, str) else "",
                title=title.strip() if isinstance(title, str) else "",
                width=_int_attr(tag, "width"),
                height=_int_attr(tag, "height"),
            )
        )
    return images


def image_token(tag: Tag, base_url: str) -> Optional[str]:
    """``alt: url`` token used inside section bodies."""
    src = tag.get("src")
    url = resolve_url(src if isinstance(src, str) else None, base_url)
    if url is None:
        return None
    alt = tag.get("alt")
    alt_text = alt.strip() if isinstance(alt, str) and alt.strip() else "No description"
    return f"{alt_text}: {url}"


_STRUCTURE_COUNTS = (
    ("headings", HEADING_TAGS),
    ("paragraphs", ("p",)),
    ("images", ("img",)),
    ("links", ("a",)),
    ("forms", ("form",)),
    ("tables", ("table",)),
    ("lists", ("ul", "ol")),
)


def analyze_structure(soup: BeautifulSoup) -> str:
    """Short comma-joined element counts, e.g. ``"2 headings, 5 paragraphs"``."""
    parts: List[str] = []
    for label, tags in _STRUCTURE_COUNTS:
        count = len(soup.find_all(list(tags)))
        if count:
            parts.append(f"{count} {label}")
    return ", ".join(parts)
