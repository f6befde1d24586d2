# File: tests/test_platform.py
import pytest

from site_mapper.parser.platform import (
    Classification,
    ExtractionVariant,
    Platform,
    classify,
    platform_from_guess,
    variant_for,
)


@pytest.mark.parametrize(
    "html,expected",
    [
        ('<link href="/wp-content/themes/x/style.css">', Platform.WORDPRESS),
        ('<link rel="https://api.w.org/" href="https://x.com/wp-json/">', Platform.WORDPRESS),
        ('<meta name="generator" content="WordPress 6.4.2">', Platform.WORDPRESS),
        ('<script src="https://cdn.shopify.com/s/files/app.js"></script>', Platform.SHOPIFY),
        ("<script>Shopify.theme = {};</script>", Platform.SHOPIFY),
        ('<script id="__NEXT_DATA__" type="application/json">{}</script>', Platform.REACT_SPA),
        ('<div data-reactroot=""></div>', Platform.REACT_SPA),
        ("<main><p>Hello</p></main>", Platform.STATIC_GENERIC),
        ('<div class="content">x</div>', Platform.STATIC_GENERIC),
        ("<div><p>Hello</p></div>", Platform.OTHER),
        ("", Platform.OTHER),
    ],
)
def test_classify(html, expected):
    assert classify(html).platform is expected


def test_precedence_wordpress_before_shopify():
    html = '<link href="/wp-content/a.css"><script src="https://cdn.shopify.com/x.js"></script><main></main>'
    assert classify(html).platform is Platform.WORDPRESS


def test_page_builder_flag_is_independent():
    assert classify('<div class="elementor-section">x</div>') == Classification(Platform.OTHER, True)
    assert classify('<link href="/wp-content/plugins/Elementor/x.css">').has_page_builder is True
    assert classify('<link href="/wp-content/x.css">').has_page_builder is False


@pytest.mark.parametrize(
    "classification,variant",
    [
        (Classification(Platform.WORDPRESS), ExtractionVariant.PAGE_BUILDER),
        (Classification(Platform.SHOPIFY), ExtractionVariant.ECOMMERCE),
        (Classification(Platform.SHOPIFY, True), ExtractionVariant.ECOMMERCE),
        (Classification(Platform.REACT_SPA), ExtractionVariant.GENERIC),
        (Classification(Platform.STATIC_GENERIC), ExtractionVariant.GENERIC),
        (Classification(Platform.STATIC_GENERIC, True), ExtractionVariant.PAGE_BUILDER),
        (Classification(Platform.OTHER), ExtractionVariant.GENERIC),
    ],
)
def test_variant_for(classification, variant):
    assert variant_for(classification) is variant


@pytest.mark.parametrize(
    "guess,expected",
    [
        ("WordPress", Platform.WORDPRESS),
        (" shopify ", Platform.SHOPIFY),
        ("react", Platform.REACT_SPA),
        ("static", Platform.STATIC_GENERIC),
        ("other", None),
        ("drupal", None),
        (None, None),
        ("", None),
    ],
)
def test_platform_from_guess(guess, expected):
    assert platform_from_guess(guess) is expected
