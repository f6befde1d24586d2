# File: site_mapper/aggregator.py
"""site_mapper.aggregator: итоговый отчёт анализа сайта."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from site_mapper.crawler.models import CrawlStats, PageResult
from site_mapper.technology import Technology

__all__ = ["AnalysisReport", "aggregate_results"]


@dataclass(slots=True)
class AnalysisReport:
    """Результат одного запуска: технологии, страницы и статистика обхода."""

    site_url: str
    technologies: List[Technology] = field(default_factory=list)
    pages: List[PageResult] = field(default_factory=list)
    stats: CrawlStats = field(default_factory=CrawlStats)

    @property
    def degraded_count(self) -> int:
        return sum(1 for page in self.pages if page.degraded)

    @property
    def outcome(self) -> str:
        return (
            f"traversal completed with {len(self.pages)} pages, "
            f"{self.degraded_count} of which are degraded"
        )

    def page_types(self) -> Dict[str, int]:
        """Количество страниц по типу, в порядке первого появления."""
        counts: Dict[str, int] = {}
        for page in self.pages:
            counts[page.page_type] = counts.get(page.page_type, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "site_url": self.site_url,
            "outcome": self.outcome,
            "stats": self.stats.to_dict(),
            "technologies": [t.to_dict() for t in self.technologies],
            "pages": [p.to_dict() for p in self.pages],
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def aggregate_results(
    site_url: str,
    pages: List[PageResult],
    technologies: Optional[List[Technology]] = None,
    stats: Optional[CrawlStats] = None,
) -> AnalysisReport:
    """Собирает страницы, технологии и статистику в AnalysisReport."""
    if stats is None:
        stats = CrawlStats(
            processed=len(pages),
            degraded=sum(1 for p in pages if p.degraded),
        )
    return AnalysisReport(
        site_url=site_url,
        technologies=list(technologies or []),
        pages=list(pages),
        stats=stats,
    )
