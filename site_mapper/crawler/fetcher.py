# site_mapper/crawler/fetcher.py
"""
Fetcher module: bounded-timeout GET with redirect following and status validation.

Failures never raise; they come back as :class:`FetchFailure` values so that
one broken page cannot stop a traversal.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from aiohttp import ClientError, ClientResponseError, ClientSession, ClientTimeout

from site_mapper.config import AnalysisConfig
from site_mapper.crawler.models import FetchedPage, FetchFailure, FetchResult
from site_mapper.logger import logger

__all__ = ["Fetcher", "is_success_status"]


def is_success_status(status: int) -> bool:
    """Any 2xx/3xx terminal status counts as success."""
    return 200 <= status < 400


class Fetcher:
    """Handles HTTP fetching for one analysis run."""

    def __init__(self, session: ClientSession, config: AnalysisConfig) -> None:
        self.session = session
        self.config = config

    async def fetch(
        self, url: str, timeout: Optional[float] = None, *, quiet: bool = False
    ) -> FetchResult:
        """
        Fetch *url* and return FetchedPage on success, FetchFailure otherwise.

        *quiet* downgrades failure logging to DEBUG (probing optional documents).
        """
        log = logger.debug if quiet else logger.warning
        total = timeout if timeout is not None else self.config.effective_timeout
        try:
            async with self.session.get(
                url,
                timeout=ClientTimeout(total=total),
                allow_redirects=True,
                max_redirects=self.config.max_redirects,
                raise_for_status=False,
            ) as resp:
                status = resp.status
                if not is_success_status(status):
                    log("GET %s -> HTTP %s", url, status)
                    return FetchFailure(url, status, f"HTTP {status}")
                text = await resp.text(errors="replace")
                headers = {k.lower(): v for k, v in resp.headers.items()}
                return FetchedPage(url, str(resp.url), status, text, headers)
        except asyncio.TimeoutError:
            log("GET %s timed out after %.1f s", url, total)
            return FetchFailure(url, 0, f"timeout after {total:g}s")
        except ClientResponseError as exc:
            # TooManyRedirects carries the last status seen
            log("GET %s failed: %s", url, exc)
            return FetchFailure(url, exc.status or 0, str(exc) or type(exc).__name__)
        except (ClientError, ValueError) as exc:
            log("GET %s failed: %s", url, exc)
            return FetchFailure(url, 0, str(exc) or type(exc).__name__)

    async def fetch_text(self, url: str, timeout: Optional[float] = None) -> Optional[str]:
        """Body of a successful response or ``None``; used for sitemaps and robots.txt."""
        result = await self.fetch(
            url,
            timeout=timeout if timeout is not None else self.config.sitemap_timeout,
            quiet=True,
        )
        if isinstance(result, FetchedPage):
            return result.html
        return None
