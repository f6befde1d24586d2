# === FILE: site_mapper/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Any, Deque, List, Optional, Protocol, Set, Tuple

from aiohttp import ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from site_mapper.config import AnalysisConfig
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.crawler.link_extractor import extract_links
from site_mapper.crawler.models import CrawlStats, FetchedPage, FetchFailure, PageResult, StructureSummary
from site_mapper.logger import LOGGER_NAME
from site_mapper.parser.content_extractor import extract_sections
from site_mapper.parser.exact_order import blocks_to_sections, complete_text, extract_exact_order
from site_mapper.parser.page_info import (
    analyze_structure,
    extract_headings,
    extract_images,
    extract_meta_description,
    extract_title,
)
from site_mapper.parser.platform import Classification, Platform, classify, platform_from_guess, variant_for
from site_mapper.parser.sitemap_parser import SitemapResolver
from site_mapper.utils import determine_page_type, normalize_url, origin_of

__all__ = ("SiteCrawler", "Summarizer", "PageSink")


class Summarizer(Protocol):
    """Optional AI collaborator; absence is a normal mode of operation."""

    async def summarize_structure(self, url: str, title: str, html: str) -> StructureSummary: ...


class PageSink(Protocol):
    """Incremental persistence of results, called once per PageResult."""

    async def save(self, result: PageResult) -> None: ...

    async def update_progress(self, processed: int, total: int) -> None: ...


class SiteCrawler:
    """
    Последовательный обход сайта: sitemap, а если его нет, BFS по ссылкам.

    Каждая попытка загрузить URL даёт ровно один PageResult; ошибки страницы
    превращаются в деградированный результат и обход продолжается.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        summarizer: Optional[Summarizer] = None,
        sink: Optional[PageSink] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config
        self.summarizer = summarizer
        self.sink = sink
        self.session = session
        self._owns_session = session is None
        self.fetcher: Optional[Fetcher] = Fetcher(session, config) if session is not None else None
        self.stats = CrawlStats()
        self.visited: Set[str] = set()
        self.logger = logging.getLogger(LOGGER_NAME)

    async def __aenter__(self) -> SiteCrawler:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.effective_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
            self._owns_session = True
        self.fetcher = Fetcher(self.session, self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def crawl(self, cancel: Optional[asyncio.Event] = None) -> List[PageResult]:
        if self.fetcher is None:
            raise RuntimeError("Session not initialized")
        seed = self.config.seed_url
        origin = origin_of(seed)
        self.visited.clear()
        self.stats = CrawlStats()
        self.logger.info("Старт анализа: %s", seed)
        start = time.monotonic()

        resolver = SitemapResolver(
            self.fetcher,
            origin,
            max_depth=self.config.sitemap_max_depth,
            max_urls=self.config.sitemap_max_urls,
            max_children=self.config.sitemap_max_children,
        )
        urls = await resolver.resolve()
        if urls:
            self.stats.source = "sitemap"
            results = await self._crawl_sitemap(urls[: self.config.max_pages], origin, cancel)
        else:
            self.stats.source = "crawl"
            results = await self._crawl_links(seed, origin, cancel)

        duration = time.monotonic() - start
        self.logger.info(
            "Завершено: %d страниц (%d с ошибкой) за %.2f с, источник: %s",
            self.stats.processed,
            self.stats.degraded,
            duration,
            self.stats.source,
        )
        return results

    # ------------------------------------------------------------------ #
    # traversal modes                                                    #
    # ------------------------------------------------------------------ #

    async def _crawl_sitemap(
        self, targets: List[str], origin: str, cancel: Optional[asyncio.Event]
    ) -> List[PageResult]:
        results: List[PageResult] = []
        for url in targets:
            if self._cancelled(cancel):
                break
            key = normalize_url(url)
            if key in self.visited:
                continue
            self.visited.add(key)
            result, _ = await self._process(url, origin)
            await self._emit(result, results, len(targets))
        return results

    async def _crawl_links(
        self, seed: str, origin: str, cancel: Optional[asyncio.Event]
    ) -> List[PageResult]:
        results: List[PageResult] = []
        queue: Deque[str] = deque([seed])
        queued: Set[str] = {normalize_url(seed)}

        while queue and len(results) < self.config.max_pages:
            if self._cancelled(cancel):
                break
            url = queue.popleft()
            key = normalize_url(url)
            if key in self.visited:
                continue
            self.visited.add(key)

            result, links = await self._process(url, origin)
            for link in links:
                link_key = normalize_url(link)
                if link_key in queued or link_key in self.visited:
                    continue
                queued.add(link_key)
                queue.append(link)

            total = min(self.config.max_pages, len(results) + 1 + len(queue))
            await self._emit(result, results, total)
        return results

    def _cancelled(self, cancel: Optional[asyncio.Event]) -> bool:
        if cancel is not None and cancel.is_set():
            self.logger.warning("Анализ остановлен после %d страниц", self.stats.processed)
            self.stats.cancelled = True
            return True
        return False

    # ------------------------------------------------------------------ #
    # one page                                                           #
    # ------------------------------------------------------------------ #

    async def _process(self, url: str, origin: str) -> Tuple[PageResult, List[str]]:
        """Fetch and analyse *url*; links are returned only for successful pages."""
        assert self.fetcher is not None
        fetched = await self.fetcher.fetch(url)
        if isinstance(fetched, FetchFailure):
            return PageResult.failed(url, fetched.reason), []
        try:
            soup = BeautifulSoup(fetched.html, "html.parser")
            links = extract_links(soup, fetched.final_url, origin)
            result = await self._analyze(url, fetched, soup)
        except Exception as exc:
            self.logger.warning("Extraction failed for %s: %s", url, exc)
            return PageResult.failed(url, f"extraction error: {exc}"), []
        return result, links

    async def _analyze(self, url: str, page: FetchedPage, soup: BeautifulSoup) -> PageResult:
        cfg = self.config
        base = page.final_url
        title = extract_title(soup)

        classification = classify(page.html)
        summary = await self._summarize(url, title, page.html)
        if classification.platform is Platform.OTHER and summary is not None:
            guessed = platform_from_guess(summary.platform_guess)
            if guessed is not None:
                classification = Classification(guessed, classification.has_page_builder)
        variant = variant_for(classification)
        self.logger.debug("%s: platform=%s variant=%s", url, classification.platform.value, variant.value)

        result = PageResult(
            url=url,
            title=title,
            page_type=determine_page_type(url, title),
            status_code=page.status,
            platform=classification.platform.value,
        )
        if cfg.deep_analysis:
            if cfg.extraction_mode == "exact_order":
                blocks = extract_exact_order(soup, base)
                result.sections = blocks_to_sections(blocks)
                result.complete_content = complete_text(blocks)
            else:
                result.sections = extract_sections(soup, base, variant)
            result.headings = extract_headings(soup)
            result.meta_description = extract_meta_description(soup)
            result.page_structure = analyze_structure(soup)
        if cfg.include_images:
            result.images = extract_images(soup, base)

        if summary is not None and summary.summary_text:
            result.content_summary = summary.summary_text
        else:
            result.content_summary = result.page_structure or analyze_structure(soup)
        return result

    async def _summarize(self, url: str, title: str, html: str) -> Optional[StructureSummary]:
        if self.summarizer is None or not self.config.use_ai:
            return None
        try:
            return await asyncio.wait_for(
                self.summarizer.summarize_structure(url, title, html),
                timeout=self.config.analysis_timeout,
            )
        except asyncio.TimeoutError:
            self.logger.warning("Summarizer timed out for %s", url)
        except Exception as exc:
            self.logger.warning("Summarizer failed for %s: %s", url, exc)
        return None

    # ------------------------------------------------------------------ #
    # sink                                                               #
    # ------------------------------------------------------------------ #

    async def _emit(self, result: PageResult, results: List[PageResult], total: int) -> None:
        results.append(result)
        self.stats.processed += 1
        if result.degraded:
            self.stats.degraded += 1
        if self.sink is None:
            return
        await self._notify("save", result)
        await self._notify("update_progress", len(results), total)

    async def _notify(self, method: str, *args: Any) -> None:
        try:
            await asyncio.wait_for(getattr(self.sink, method)(*args), timeout=self.config.sink_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Sink %s timed out after %.1f s", method, self.config.sink_timeout)
        except Exception as exc:
            self.logger.warning("Sink %s failed: %s", method, exc)
