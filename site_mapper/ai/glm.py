# File: site_mapper/ai/glm.py
"""site_mapper.ai.glm: page-structure summaries from the GLM chat-completions API.

The crawler only needs ``summarize_structure``; everything here is a thin
aiohttp client around one POST request.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from site_mapper.crawler.models import StructureSummary
from site_mapper.logger import logger
from site_mapper.parser.platform import classify

__all__ = ["GLMSummarizer", "SummarizerError", "GLM_BASE_URL", "GLM_MODEL"]

GLM_BASE_URL = "https://api.z.ai/api/paas/v4"
GLM_MODEL = "glm-4.5-flash"

_STRUCTURE_SELECTORS = (
    ("Headers", "header, .header, #header"),
    ("Main areas", "main, .main, #main"),
    ("Footers", "footer, .footer, #footer"),
    ("Articles", "article"),
    ("Sections", "section"),
    ("Elementor containers", ".elementor-container, .elementor-widget"),
)


class SummarizerError(RuntimeError):
    """The summarization service could not produce a summary."""


def build_prompt(url: str, title: str, html: str, platform: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    counts = "\n".join(f"- {label}: {len(soup.select(selector))}" for label, selector in _STRUCTURE_SELECTORS)
    return (
        f"Analyze the structure of this {platform} webpage and provide insights:\n\n"
        f"URL: {url}\n"
        f"Title: {title}\n"
        f"Platform: {platform}\n\n"
        f"Structure Elements Found:\n{counts}\n\n"
        "Provide a summary covering what the page is about, its key content sections, "
        "and the main call-to-action elements.\n\n"
        "Keep summary under 300 words."
    )


class GLMSummarizer:
    """Async client; pass *session* to share a connection pool, else one is created lazily."""

    def __init__(
        self,
        api_key: str,
        session: Optional[ClientSession] = None,
        *,
        base_url: str = GLM_BASE_URL,
        model: str = GLM_MODEL,
        timeout: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("GLM API key must not be empty")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> GLMSummarizer:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> ClientSession:
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self._session

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send *messages* and return the first choice's content."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": 500,
            "temperature": 0.3,
            "thinking": {"type": "disabled"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with self._get_session().post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise SummarizerError(f"GLM API returned HTTP {resp.status}: {body[:200]}")
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise SummarizerError(f"GLM API timed out after {self.timeout:g}s") from exc
        except ClientError as exc:
            raise SummarizerError(f"GLM API request failed: {exc}") from exc
        except ValueError as exc:
            raise SummarizerError(f"GLM API returned invalid JSON: {exc}") from exc

        try:
            return str(data["choices"][0]["message"]["content"]).strip()
        except (KeyError, IndexError, TypeError) as exc:
            raise SummarizerError(f"Unexpected GLM response shape: {data!r:.200}") from exc

    async def test_connection(self) -> None:
        await self.complete([{"role": "user", "content": 'Hello, please respond with "API test successful"'}])

    async def summarize_structure(self, url: str, title: str, html: str) -> StructureSummary:
        platform = classify(html).platform.value
        logger.debug("Requesting GLM structure summary for %s (%s)", url, platform)
        text = await self.complete([{"role": "user", "content": build_prompt(url, title, html, platform)}])
        if not text:
            raise SummarizerError("GLM API returned an empty summary")
        return StructureSummary(platform_guess=platform, summary_text=text)
