# File: site_mapper/utils.py
"""site_mapper.utils: URL resolution, crawlability filtering and page-type tagging."""

from __future__ import annotations

import posixpath
from typing import Optional, Sequence
from urllib.parse import parse_qsl, quote, unquote, urlencode, urljoin, urlparse, urlunparse

from site_mapper.logger import logger

__all__: Sequence[str] = (
    "SKIP_EXTENSIONS",
    "SKIP_PATH_PREFIXES",
    "resolve_url",
    "origin_of",
    "is_crawlable",
    "normalize_url",
    "determine_page_type",
)

SKIP_EXTENSIONS: tuple[str, ...] = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp",
    ".css", ".js", ".xml", ".txt", ".ico",
)
SKIP_PATH_PREFIXES: tuple[str, ...] = ("/wp-admin", "/admin", "/api", "/wp-content", "/wp-includes")


def resolve_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve *href* against *base_url*; ``None`` for malformed or non-http(s) links."""
    if not href or not href.strip():
        return None
    try:
        absolute = urljoin(base_url, href.strip())
        parsed = urlparse(absolute)
        # .port raises ValueError on garbage like "http://host:99999"
        _ = parsed.port
    except ValueError as exc:
        logger.debug("Dropping malformed href %r: %s", href, exc)
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` in lower case."""
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def is_crawlable(url: Optional[str], site_origin: str) -> bool:
    """Same origin, no fragment, no static-file extension, no admin/system prefix."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        _ = parsed.port
    except ValueError:
        return False
    if origin_of(url) != site_origin.lower().rstrip("/"):
        return False
    if parsed.fragment:
        return False
    path = parsed.path.lower()
    if path.endswith(SKIP_EXTENSIONS):
        return False
    if any(path.startswith(prefix) for prefix in SKIP_PATH_PREFIXES):
        return False
    return True


def normalize_url(url: str) -> str:
    """Visited-set key: lower-case scheme/host, collapsed path, sorted query, no fragment."""
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    path = unquote(parsed.path or "/")
    norm = posixpath.normpath(path)
    if parsed.path.endswith("/") and not norm.endswith("/"):
        norm += "/"
    if not norm.startswith("/"):
        norm = "/" + norm
    norm = quote(norm, safe="/")
    qs = parse_qsl(parsed.query, keep_blank_values=True)
    qs.sort()
    query = urlencode(qs, doseq=True)
    return urlunparse((scheme, netloc, norm, "", query, ""))


_PAGE_TYPE_RULES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("about", ("/about",), "about"),
    ("contact", ("/contact",), "contact"),
    ("product", ("/product",), "product"),
    ("service", ("/service",), "service"),
    ("blog", ("/blog", "/news"), "blog"),
    ("portfolio", ("/portfolio",), "portfolio"),
    ("team", ("/team",), "team"),
    ("pricing", ("/pricing",), "pricing"),
)


def determine_page_type(url: str, title: str = "") -> str:
    """First-match page-type tag from the URL path and the page title."""
    path = urlparse(url).path.lower()
    title_lower = (title or "").lower()

    if path in ("", "/", "/home"):
        return "homepage"
    for tag, fragments, keyword in _PAGE_TYPE_RULES:
        if any(fragment in path for fragment in fragments) or keyword in title_lower:
            return tag
    return "page"

