# site_mapper/crawler/models.py
"""
Data models for the SiteMapper crawler and extractors.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

FAILED_TITLE = "Failed to load"
FAILED_SUMMARY = "Page could not be analyzed due to loading error"
NO_CONTENT_MARKER = "No content found for this section"


class SectionType(str, Enum):
    HEADING = "heading"
    CONTENT = "content"
    LIST = "list"
    TABLE = "table"
    FORM = "form"
    NAVIGATION = "navigation"


@dataclass(slots=True)
class FetchedPage:
    """Successful HTTP response; lives only while one page is processed."""

    url: str
    final_url: str
    status: int
    html: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class FetchFailure:
    """Failed fetch with the best-known status code (0 when unknown)."""

    url: str
    status: int
    reason: str


FetchResult = Union[FetchedPage, FetchFailure]


@dataclass(slots=True)
class PageSection:
    type: SectionType
    title: str
    content: str
    position: int
    level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "position": self.position,
        }
        if self.level is not None:
            data["level"] = self.level
        return data


@dataclass(slots=True)
class PageImage:
    src: str
    position: int
    alt: str = ""
    title: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(slots=True)
class Heading:
    level: int
    text: str


@dataclass(slots=True)
class PageResult:
    """The unit emitted for every attempted URL, degraded or not."""

    url: str
    title: str = ""
    page_type: str = "page"
    status_code: int = 0
    sections: List[PageSection] = field(default_factory=list)
    images: List[PageImage] = field(default_factory=list)
    headings: List[Heading] = field(default_factory=list)
    meta_description: str = ""
    page_structure: str = ""
    content_summary: Optional[str] = None
    complete_content: Optional[str] = None
    platform: Optional[str] = None
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, url: str, reason: str) -> PageResult:
        """Placeholder for a page that could not be fetched or extracted (status 0)."""
        return cls(
            url=url,
            title=FAILED_TITLE,
            status_code=0,
            content_summary=FAILED_SUMMARY,
            error=reason or "unknown error",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sections"] = [s.to_dict() for s in self.sections]
        data["degraded"] = self.degraded
        return data


@dataclass(slots=True)
class StructureSummary:
    """What the summarization collaborator returns for one page."""

    platform_guess: Optional[str]
    summary_text: str


@dataclass(slots=True)
class CrawlStats:
    processed: int = 0
    degraded: int = 0
    source: str = ""  # "sitemap" | "crawl"
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
