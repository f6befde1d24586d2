# File: site_mapper/parser/platform.py
"""Cheap platform labelling over raw HTML, used to pick an extraction variant."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

__all__ = [
    "Platform",
    "ExtractionVariant",
    "Classification",
    "classify",
    "variant_for",
    "platform_from_guess",
]


class Platform(str, Enum):
    WORDPRESS = "wordpress"
    SHOPIFY = "shopify"
    REACT_SPA = "react_spa"
    STATIC_GENERIC = "static_generic"
    OTHER = "other"


class ExtractionVariant(str, Enum):
    GENERIC = "generic"
    PAGE_BUILDER = "page_builder"
    ECOMMERCE = "ecommerce"


@dataclass(frozen=True, slots=True)
class Classification:
    platform: Platform
    has_page_builder: bool = False


_WORDPRESS_RE = re.compile(
    r"wp-content|wp-includes|/wp-json/|<meta[^>]+generator[^>]+wordpress", re.IGNORECASE
)
_SHOPIFY_RE = re.compile(r"cdn\.shopify\.com|Shopify\.theme|shopify", re.IGNORECASE)
_REACT_RE = re.compile(r"__NEXT_DATA__|/_next/|__REACT_DEVTOOLS_GLOBAL_HOOK__|data-reactroot")
_STATIC_RE = re.compile(r"<main[\s>]|<article[\s>]|class=[\"']content[\"']|id=[\"']content[\"']", re.IGNORECASE)
_PAGE_BUILDER_RE = re.compile(r"elementor", re.IGNORECASE)

# first match wins
_PRECEDENCE: Tuple[Tuple[Platform, "re.Pattern[str]"], ...] = (
    (Platform.WORDPRESS, _WORDPRESS_RE),
    (Platform.SHOPIFY, _SHOPIFY_RE),
    (Platform.REACT_SPA, _REACT_RE),
    (Platform.STATIC_GENERIC, _STATIC_RE),
)


def classify(html: str) -> Classification:
    """Label *html* with its likely platform plus the page-builder flag."""
    html = html or ""
    platform = Platform.OTHER
    for candidate, pattern in _PRECEDENCE:
        if pattern.search(html):
            platform = candidate
            break
    return Classification(platform, bool(_PAGE_BUILDER_RE.search(html)))


_VARIANTS: Dict[Platform, ExtractionVariant] = {
    Platform.WORDPRESS: ExtractionVariant.PAGE_BUILDER,
    Platform.SHOPIFY: ExtractionVariant.ECOMMERCE,
    Platform.REACT_SPA: ExtractionVariant.GENERIC,
    Platform.STATIC_GENERIC: ExtractionVariant.GENERIC,
    Platform.OTHER: ExtractionVariant.GENERIC,
}


def variant_for(classification: Classification) -> ExtractionVariant:
    """Pick the extraction strategy for a classified page."""
    if classification.has_page_builder and classification.platform is not Platform.SHOPIFY:
        return ExtractionVariant.PAGE_BUILDER
    return _VARIANTS[classification.platform]


_GUESS_ALIASES: Dict[str, Platform] = {
    "wordpress": Platform.WORDPRESS,
    "shopify": Platform.SHOPIFY,
    "react": Platform.REACT_SPA,
    "react_spa": Platform.REACT_SPA,
    "static": Platform.STATIC_GENERIC,
    "static_generic": Platform.STATIC_GENERIC,
}


def platform_from_guess(guess: Optional[str]) -> Optional[Platform]:
    """Map a free-form platform guess (e.g. from the AI collaborator) to a Platform."""
    if not guess:
        return None
    return _GUESS_ALIASES.get(guess.strip().lower())
