# site_mapper/crawler/robots.py
"""
robots.txt reading limited to what sitemap discovery needs.
"""
from __future__ import annotations

from typing import List

from site_mapper.utils import resolve_url


def sitemap_urls(text: str, base_url: str) -> List[str]:
    """Return the ``Sitemap:`` entries of a robots.txt body, resolved and in file order."""
    found: List[str] = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        key, _, val = line.partition(":")
        if key.strip().lower() != "sitemap":
            continue
        url = resolve_url(val.strip(), base_url)
        if url and url not in found:
            found.append(url)
    return found
