# File: site_mapper/sinks.py
"""site_mapper.sinks: ready-made persistence sinks for SiteCrawler.

Any object with ``save`` and ``update_progress`` coroutines works as a sink;
these two cover tests (in memory) and incremental export (JSON Lines).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

import aiofiles

from site_mapper.crawler.models import PageResult
from site_mapper.logger import logger

__all__ = ["MemorySink", "JsonLinesSink"]


@dataclass(slots=True)
class MemorySink:
    """Keeps every saved result and progress update in lists."""

    results: List[PageResult] = field(default_factory=list)
    progress: List[Tuple[int, int]] = field(default_factory=list)

    async def save(self, result: PageResult) -> None:
        self.results.append(result)

    async def update_progress(self, processed: int, total: int) -> None:
        self.progress.append((processed, total))


class JsonLinesSink:
    """Appends one JSON object per PageResult to *path*; the file is truncated on creation."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")
        self.saved = 0

    async def save(self, result: PageResult) -> None:
        line = json.dumps(result.to_dict(), ensure_ascii=False)
        async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
            await f.write(line + "\n")
        self.saved += 1

    async def update_progress(self, processed: int, total: int) -> None:
        logger.info("Progress: %d/%d pages", processed, total)
