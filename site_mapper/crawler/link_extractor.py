# site_mapper/crawler/link_extractor.py
"""
Link extraction for the fallback crawl.
"""
from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.utils import is_crawlable, resolve_url


def extract_links(soup: BeautifulSoup, page_url: str, site_origin: str) -> List[str]:
    """
    Crawlable same-origin links of a parsed page, in document order, without duplicates.

    Malformed hrefs are dropped silently; they never affect the other links.
    """
    seen: set[str] = set()
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        absolute = resolve_url(href_val, page_url)
        if absolute is None or absolute in seen:
            continue
        if is_crawlable(absolute, site_origin):
            seen.add(absolute)
            links.append(absolute)
    return links
