# File: site_mapper/technology.py
"""site_mapper.technology: lightweight technology hints from the seed page HTML and headers."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

__all__ = ["Technology", "detect_technologies"]


@dataclass(slots=True)
class Technology:
    name: str
    category: str
    confidence: float
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Headers = Mapping[str, str]


def _header(headers: Headers, name: str) -> str:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return ""


def _any(*needles: str) -> Callable[[str, Headers], bool]:
    return lambda html, _headers: any(n in html for n in needles)


def _is_wordpress(html: str, headers: Headers) -> bool:
    return (
        any(n in html for n in ("wp-content", "wp-includes", "/wp-json/"))
        or re.search(r"generator.*wordpress", html, re.IGNORECASE) is not None
        or "WordPress" in _header(headers, "x-powered-by")
    )


def _wordpress_version(html: str) -> Optional[str]:
    match = re.search(r"generator.*wordpress\s+([\d.]+)", html, re.IGNORECASE)
    return match.group(1) if match else None


def _is_shopify(html: str, headers: Headers) -> bool:
    return "shopify" in html.lower() or "Shopify" in _header(headers, "server")


def _is_php(_html: str, headers: Headers) -> bool:
    return "PHP" in _header(headers, "x-powered-by") or "PHP" in _header(headers, "server")


def _analytics_flavour(html: str) -> str:
    if "gtag(" in html or "googletagmanager.com" in html:
        return "GA4"
    if "google-analytics.com/analytics.js" in html:
        return "Universal Analytics"
    return "Classic Analytics"


# name, category, confidence, predicate, version extractor
_RULES: Tuple[Tuple[str, str, float, Callable[[str, Headers], bool], Optional[Callable[[str], Optional[str]]]], ...] = (
    ("WordPress", "CMS", 0.95, _is_wordpress, _wordpress_version),
    ("Shopify", "E-commerce", 0.95, _is_shopify, None),
    ("React", "JavaScript Framework", 0.9, _any("__REACT_DEVTOOLS_GLOBAL_HOOK__", "data-reactroot", "react-dom", "React"), None),
    ("Vue.js", "JavaScript Framework", 0.9, _any("Vue.js", "vue.js", "__VUE__", "data-v-app"), None),
    ("Angular", "JavaScript Framework", 0.9, _any("ng-version", "angular.js", "angular.min.js", "Angular"), None),
    ("Next.js", "JavaScript Framework", 0.9, _any("__NEXT_DATA__", "/_next/", "Next.js"), None),
    ("PHP", "Programming Language", 0.8, _is_php, None),
    ("Google Analytics", "Analytics", 0.95, _any("google-analytics.com", "googletagmanager.com", "gtag("), _analytics_flavour),
    ("jQuery", "JavaScript Library", 0.9, _any("jquery", "jQuery"), None),
    ("Bootstrap", "CSS Framework", 0.8, _any("bootstrap", "Bootstrap"), None),
    ("Tailwind CSS", "CSS Framework", 0.85, _any("tailwind", "Tailwind"), None),
)

_SERVERS: Tuple[Tuple[str, str], ...] = (
    ("nginx", "Nginx"),
    ("Apache", "Apache"),
    ("Microsoft-IIS", "Microsoft IIS"),
)


def detect_technologies(html: str, headers: Optional[Headers] = None) -> List[Technology]:
    """Return technologies whose markers appear in *html* or *headers*, in rule order."""
    html = html or ""
    headers = headers or {}
    found: List[Technology] = []
    for name, category, confidence, predicate, version_of in _RULES:
        if predicate(html, headers):
            version = version_of(html) if version_of else None
            found.append(Technology(name, category, confidence, version))

    server = _header(headers, "server")
    for marker, name in _SERVERS:
        if marker in server:
            found.append(Technology(name, "Web Server", 0.95))
            break
    return found
