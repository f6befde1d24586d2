# === FILE: site_mapper/parser/content_extractor.py ===
"""Structured page content: header block, main-content sections, footer block.

``extract_sections`` never talks to the network or to any AI service; given
the same markup and variant it always returns the same sections.
"""
from __future__ import annotations

import copy
import re
from collections.abc import Sequence
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.crawler.models import PageSection, SectionType
from site_mapper.parser.page_info import clean_text, own_text
from site_mapper.parser.platform import ExtractionVariant
from site_mapper.parser.strategies import extract_main_content

__all__: Sequence[str] = (
    "HEADER_SELECTOR",
    "FOOTER_SELECTOR",
    "extract_header",
    "extract_footer",
    "extract_sections",
    "truncate_text",
)

HEADER_SELECTOR = "header, .header, #header, #site-header, .site-header"
FOOTER_SELECTOR = "footer, .footer, #footer, .site-footer"

NAV_TEXT_MIN, NAV_TEXT_MAX = 2, 50
MIN_HEADER_TEXT = 10
MAX_FOOTER_CHARS = 600

_BLOCK_TAGS = ["p", "div", "li", "address", "section", "td", "h1", "h2", "h3", "h4", "h5", "h6"]
_PHONE_RE = re.compile(r"\+?\(?\d[\d\s().-]{5,}\d")


def truncate_text(text: str, max_length: int) -> str:
    if not text:
        return ""
    return text[:max_length] + "..." if len(text) > max_length else text


def extract_header(soup: BeautifulSoup) -> Optional[PageSection]:
    """Navigation links and remaining header text of the first header-like container."""
    header = soup.select_one(HEADER_SELECTOR)
    if header is None:
        return None

    nav_links: List[str] = []
    for link in header.select("a, .menu-item"):
        text = clean_text(link.get_text(" "))
        if NAV_TEXT_MIN <= len(text) <= NAV_TEXT_MAX and text not in nav_links:
            nav_links.append(text)

    stripped = copy.copy(header)
    for el in stripped.select("nav, .nav, .menu, a, script, style, noscript"):
        el.extract()
    header_text = clean_text(stripped.get_text(" "))
    if len(header_text) <= MIN_HEADER_TEXT:
        header_text = ""

    if not nav_links and not header_text:
        return None
    lines = []
    if header_text:
        lines.append(f"Header Text: {header_text}")
    if nav_links:
        lines.append(f"Navigation: {' | '.join(nav_links)}")
    return PageSection(SectionType.NAVIGATION, "HEADER SECTION", "\n".join(lines), position=0)


def _leaf_blocks(root: Tag) -> List[Tag]:
    return [tag for tag in root.find_all(_BLOCK_TAGS) if tag.find(_BLOCK_TAGS) is None]


def _carries_navigation(block: Tag) -> bool:
    for link in block.find_all("a", href=True):
        href = str(link.get("href", "")).strip().lower()
        if not href.startswith(("mailto:", "tel:")):
            return True
    return False


def _looks_like_contact(text: str) -> bool:
    lowered = text.lower()
    if "©" in text or "copyright" in lowered or "@" in text:
        return True
    match = _PHONE_RE.search(text)
    return bool(match and sum(ch.isdigit() for ch in match.group()) >= 7)


def extract_footer(soup: BeautifulSoup) -> Optional[PageSection]:
    """Copyright/contact lines of the footer; link blocks are left to the header."""
    footer = soup.select_one(FOOTER_SELECTOR)
    if footer is None:
        return None

    stripped = copy.copy(footer)
    for el in stripped.select("nav, .nav, .menu, script, style, noscript"):
        el.extract()

    leaves = {id(tag) for tag in _leaf_blocks(stripped)}
    if not leaves:
        # bare text directly inside the footer: keep it, minus the links
        for link in stripped.find_all("a"):
            if _carries_navigation(link):
                link.extract()
        leaves = {id(stripped)}

    lines: List[str] = []
    for block in [stripped, *stripped.find_all(_BLOCK_TAGS)]:
        if id(block) in leaves:
            if _carries_navigation(block):
                continue
            text = clean_text(block.get_text(" "))
        else:
            # wrappers count only for text written directly inside them
            text = own_text(block)
        if text and _looks_like_contact(text) and text not in lines:
            lines.append(text)

    if not lines:
        return None
    content = truncate_text(" | ".join(lines), MAX_FOOTER_CHARS)
    return PageSection(SectionType.NAVIGATION, "FOOTER SECTION", content, position=0)


def extract_sections(
    soup: BeautifulSoup,
    base_url: str,
    variant: ExtractionVariant = ExtractionVariant.GENERIC,
) -> List[PageSection]:
    """Header, main content and footer as one densely numbered section list."""
    sections: List[PageSection] = []
    header = extract_header(soup)
    if header is not None:
        sections.append(header)

    chrome = [el for el in (soup.select_one(HEADER_SELECTOR), soup.select_one(FOOTER_SELECTOR)) if el is not None]
    chrome.extend(soup.find_all("nav"))
    sections.extend(extract_main_content(soup, base_url, variant, chrome))

    footer = extract_footer(soup)
    if footer is not None:
        sections.append(footer)

    for position, section in enumerate(sections):
        section.position = position
    return sections
