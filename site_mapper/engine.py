# File: site_mapper/engine.py
"""site_mapper.engine: Orchestration layer для запуска анализа и агрегации результатов."""

from __future__ import annotations

import asyncio
from typing import List, Optional

from site_mapper.aggregator import AnalysisReport, aggregate_results
from site_mapper.ai.glm import GLMSummarizer
from site_mapper.config import AnalysisConfig, load_config
from site_mapper.crawler.crawler import PageSink, SiteCrawler, Summarizer
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.crawler.models import FetchedPage
from site_mapper.logger import logger
from site_mapper.technology import Technology, detect_technologies

__all__ = ["Engine", "run_analysis"]


async def _detect_technologies(fetcher: Fetcher, url: str, timeout: float) -> List[Technology]:
    page = await fetcher.fetch(url, timeout=timeout, quiet=True)
    if not isinstance(page, FetchedPage):
        logger.warning("Technology detection skipped: %s", page.reason)
        return []
    technologies = detect_technologies(page.html, page.headers)
    logger.info("Detected technologies: %s", ", ".join(t.name for t in technologies) or "none")
    return technologies


async def run_analysis(
    config: AnalysisConfig,
    sink: Optional[PageSink] = None,
    summarizer: Optional[Summarizer] = None,
    cancel: Optional[asyncio.Event] = None,
) -> AnalysisReport:
    """Полный запуск: технологии главной страницы, обход сайта, итоговый отчёт."""
    owned: Optional[GLMSummarizer] = None
    if summarizer is None and config.use_ai:
        if config.ai_api_key:
            summarizer = owned = GLMSummarizer(config.ai_api_key)
        else:
            logger.warning("use_ai is set without ai_api_key; structure summaries will be used")

    try:
        async with SiteCrawler(config, summarizer=summarizer, sink=sink) as crawler:
            assert crawler.fetcher is not None
            technologies = await _detect_technologies(crawler.fetcher, config.seed_url, config.sitemap_timeout)
            pages = await crawler.crawl(cancel)
            stats = crawler.stats
    finally:
        if owned is not None:
            await owned.close()

    report = aggregate_results(config.seed_url, pages, technologies, stats)
    logger.info(report.outcome)
    return report


class Engine:
    """Фасад для CLI и тестов: загрузка конфига, запуск анализа, отчёт."""

    @staticmethod
    def load_config(path: Optional[str]) -> AnalysisConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(
        self,
        config: AnalysisConfig,
        sink: Optional[PageSink] = None,
        summarizer: Optional[Summarizer] = None,
    ) -> None:
        self.config = config
        self.sink = sink
        self.summarizer = summarizer

    def start_analysis(self, timeout: Optional[float] = None) -> AnalysisReport:
        """Запускает анализ в новом event loop; *timeout* ограничивает весь запуск."""
        logger.info("Starting analysis…")
        coro = run_analysis(self.config, sink=self.sink, summarizer=self.summarizer)
        try:
            if timeout:
                return asyncio.run(asyncio.wait_for(coro, timeout=timeout))
            return asyncio.run(coro)
        except asyncio.TimeoutError:
            logger.error("Analysis did not finish within %s seconds", timeout)
            raise
