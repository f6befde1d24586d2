# File: site_mapper/parser/sitemap_parser.py
"""site_mapper.parser.sitemap_parser: sitemap.xml parsing and bounded sitemap-index expansion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from lxml import etree

from site_mapper.crawler.robots import sitemap_urls
from site_mapper.logger import logger
from site_mapper.utils import is_crawlable, normalize_url, resolve_url

__all__ = ["SitemapDocument", "SitemapResolver", "parse_sitemap", "CANDIDATE_PATHS"]

CANDIDATE_PATHS: Tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemaps.xml",
)


@dataclass(slots=True)
class SitemapDocument:
    """A parsed sitemap: either an index of other sitemaps or a urlset of pages."""

    is_index: bool
    locs: List[str]


class _TextFetcher(Protocol):
    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> Optional[str]: ...


def parse_sitemap(xml_content: str) -> Optional[SitemapDocument]:
    """Разбирает sitemap и возвращает его <loc> записи.

    Args:
        xml_content: содержимое sitemap.xml или sitemap-index.

    Returns:
        SitemapDocument, либо ``None`` если XML не разобран или <loc> нет.
    """
    if not xml_content or not xml_content.strip():
        return None
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_content.strip().encode("utf-8"), parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        logger.debug("Sitemap parse error: %s", exc)
        return None
    if root is None:
        return None

    index_locs = root.findall(".//{*}sitemap/{*}loc")
    if index_locs:
        return SitemapDocument(True, [loc.text.strip() for loc in index_locs if loc.text and loc.text.strip()])

    locs = root.findall(".//{*}url/{*}loc") or root.findall(".//{*}loc")
    values = [loc.text.strip() for loc in locs if loc.text and loc.text.strip()]
    if not values:
        return None
    return SitemapDocument(False, values)


class SitemapResolver:
    """Finds the site's sitemap and flattens it into a bounded list of page URLs.

    Index expansion runs over an explicit ``(url, depth)`` worklist; depth,
    fan-out and the leaf cap are all enforced at the single pop site.
    """

    def __init__(
        self,
        fetcher: _TextFetcher,
        origin: str,
        *,
        max_depth: int = 2,
        max_urls: int = 500,
        max_children: int = 5,
    ) -> None:
        self.fetcher = fetcher
        self.origin = origin.rstrip("/")
        self.max_depth = max_depth
        self.max_urls = max_urls
        self.max_children = max_children
        self.deepest_level = 0
        self.documents_parsed = 0

    async def resolve(self) -> List[str]:
        """Return crawlable page URLs from the first usable sitemap, or ``[]``."""
        self.deepest_level = 0
        self.documents_parsed = 0
        tried: set[str] = set()

        for path in CANDIDATE_PATHS:
            url = f"{self.origin}{path}"
            tried.add(url)
            found = await self._try_candidate(url)
            if found is not None:
                return found

        robots = await self.fetcher.fetch_text(f"{self.origin}/robots.txt")
        if robots:
            for url in sitemap_urls(robots, self.origin + "/"):
                if url in tried:
                    continue
                tried.add(url)
                found = await self._try_candidate(url)
                if found is not None:
                    return found

        logger.info("No valid sitemap found for %s, falling back to link crawling", self.origin)
        return []

    async def _try_candidate(self, url: str) -> Optional[List[str]]:
        logger.debug("Trying sitemap %s", url)
        text = await self.fetcher.fetch_text(url)
        if text is None:
            return None
        doc = parse_sitemap(text)
        if doc is None:
            logger.debug("%s is not a usable sitemap", url)
            return None
        kind = "sitemap index" if doc.is_index else "sitemap"
        logger.info("Found %s %s with %d entries", kind, url, len(doc.locs))
        return await self._expand(url, doc)

    async def _expand(self, root_url: str, root_doc: SitemapDocument) -> List[str]:
        leaves: List[str] = []
        seen_leaves: set[str] = set()
        scheduled: set[str] = {root_url}
        # LIFO with children pushed in reverse keeps document order
        stack: List[Tuple[str, int, Optional[SitemapDocument]]] = [(root_url, 0, root_doc)]

        while stack:
            if len(leaves) >= self.max_urls:
                logger.info("Reached sitemap page limit (%d), stopping", self.max_urls)
                break
            url, depth, doc = stack.pop()
            if doc is None:
                text = await self.fetcher.fetch_text(url)
                doc = parse_sitemap(text) if text is not None else None
                if doc is None:
                    logger.warning("Skipping unreadable sitemap %s", url)
                    continue
            self.documents_parsed += 1
            self.deepest_level = max(self.deepest_level, depth)

            if doc.is_index:
                if depth >= self.max_depth:
                    logger.info("Maximum sitemap depth reached (%d) at %s", self.max_depth, url)
                    continue
                children: List[str] = []
                for loc in doc.locs[: self.max_children]:
                    child = resolve_url(loc, url)
                    if child is None or child in scheduled:
                        continue
                    scheduled.add(child)
                    children.append(child)
                logger.debug("Index %s -> %d child sitemaps", url, len(children))
                stack.extend((child, depth + 1, None) for child in reversed(children))
                continue

            for loc in doc.locs:
                page = resolve_url(loc, url)
                if page is None or not is_crawlable(page, self.origin):
                    continue
                key = normalize_url(page)
                if key in seen_leaves:
                    continue
                seen_leaves.add(key)
                leaves.append(page)
                if len(leaves) >= self.max_urls:
                    break

        logger.info("Collected %d URLs from sitemap %s", len(leaves), root_url)
        return leaves
