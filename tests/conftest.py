# File: tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import pytest
import pytest_asyncio
from aiohttp import web

from site_mapper.config import AnalysisConfig

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]
PageEntry = Union[str, tuple, Handler]


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


class LocalSite:
    """
    Tiny aiohttp site on localhost.

    ``pages`` maps a path to a body (200), a ``(status, body)`` tuple or a
    handler coroutine. Paths not listed answer 404. Every handled request
    path is recorded in :attr:`hits`.
    """

    def __init__(self, port: int) -> None:
        self.port = port
        self.hits: List[str] = []
        self._runner: Optional[web.AppRunner] = None

    @property
    def base(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def url(self, path: str) -> str:
        return f"{self.base}{path}"

    def _handler(self, path: str, entry: PageEntry) -> Handler:
        async def handle(request: web.Request) -> web.StreamResponse:
            self.hits.append(request.path_qs)
            if callable(entry):
                return await entry(request)
            status, body = entry if isinstance(entry, tuple) else (200, entry)
            if path.endswith(".xml"):
                ctype = "application/xml"
            elif path.endswith(".txt"):
                ctype = "text/plain"
            else:
                ctype = "text/html"
            return web.Response(status=status, text=body, content_type=ctype)

        return handle

    async def start(self, pages: Dict[str, PageEntry]) -> str:
        app = web.Application()
        for path, entry in pages.items():
            app.router.add_route("*", path, self._handler(path, entry))
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", self.port)
        await site.start()
        return self.base

    async def close(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()


@pytest_asyncio.fixture
async def local_site(unused_tcp_port: int) -> AsyncIterator[LocalSite]:
    site = LocalSite(unused_tcp_port)
    try:
        yield site
    finally:
        await site.close()


@pytest.fixture()
def make_config() -> Callable[..., AnalysisConfig]:
    """Config factory with short timeouts suitable for local servers."""

    def _make(base_url: str, **overrides: Any) -> AnalysisConfig:
        params: Dict[str, Any] = {
            "base_url": base_url,
            "timeout": 2.0,
            "analysis_timeout": 2.0,
            "sitemap_timeout": 2.0,
            "sink_timeout": 1.0,
            "user_agent": "TestAgent/1.0",
        }
        params.update(overrides)
        return AnalysisConfig(**params)

    return _make
