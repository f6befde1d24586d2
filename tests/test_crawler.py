# File: tests/test_crawler.py
from __future__ import annotations

import asyncio
from urllib.parse import urlparse

import pytest
from aiohttp import web
from helpers import page, sitemap_index, urlset

from site_mapper.crawler.crawler import SiteCrawler
from site_mapper.crawler.models import FAILED_SUMMARY, FAILED_TITLE, PageResult, StructureSummary
from site_mapper.sinks import MemorySink
from site_mapper.utils import normalize_url


async def run_crawler(config, **kwargs) -> tuple[list[PageResult], SiteCrawler]:
    cancel = kwargs.pop("cancel", None)
    async with SiteCrawler(config, **kwargs) as crawler:
        results = await asyncio.wait_for(crawler.crawl(cancel), timeout=20)
    return results, crawler


# --------------------------------------------------------------------------- #
#                              sitemap-driven mode                            #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
@pytest.mark.parametrize("leaves,max_pages", [(5, 3), (2, 10), (4, 4)])
async def test_sitemap_count(local_site, make_config, leaves, max_pages):
    pages = {f"/p{i}": page(f"<h1>P{i}</h1><p>body {i}</p>", title=f"P{i}") for i in range(leaves)}
    pages["/sitemap.xml"] = urlset(*(local_site.url(f"/p{i}") for i in range(leaves)))
    await local_site.start(pages)

    results, crawler = await run_crawler(make_config(local_site.base, max_pages=max_pages))

    expected = min(leaves, max_pages)
    assert len(results) == expected
    assert [r.url for r in results] == [local_site.url(f"/p{i}") for i in range(expected)]
    assert crawler.stats.source == "sitemap"
    assert crawler.stats.processed == expected
    assert "/" not in local_site.hits


@pytest.mark.asyncio()
async def test_sitemap_index_drives_crawl(local_site, make_config):
    await local_site.start(
        {
            "/sitemap_index.xml": sitemap_index(local_site.url("/posts.xml")),
            "/posts.xml": urlset(local_site.url("/a"), local_site.url("/b")),
            "/a": page("<h1>A</h1><p>x</p>", title="A"),
            "/b": page("<h1>B</h1><p>y</p>", title="B"),
        }
    )
    results, _ = await run_crawler(make_config(local_site.base))
    assert [r.title for r in results] == ["A", "B"]
    assert [(s.title, s.content) for s in results[0].sections] == [("A", "x")]


@pytest.mark.asyncio()
async def test_sitemap_page_failure_is_isolated(local_site, make_config):
    await local_site.start(
        {
            "/sitemap.xml": urlset(local_site.url("/ok"), local_site.url("/gone"), local_site.url("/boom"), local_site.url("/last")),
            "/ok": page("<h1>Ok</h1>"),
            "/boom": (500, "error"),
            "/last": page("<h1>Last</h1>"),
        }
    )
    results, crawler = await run_crawler(make_config(local_site.base))

    assert [r.url.rsplit("/", 1)[-1] for r in results] == ["ok", "gone", "boom", "last"]
    gone, boom = results[1], results[2]
    for failed in (gone, boom):
        assert failed.degraded
        assert failed.status_code == 0
        assert failed.title == FAILED_TITLE
        assert failed.content_summary == FAILED_SUMMARY
        assert failed.sections == []
    assert gone.error == "HTTP 404"
    assert boom.error == "HTTP 500"
    assert crawler.stats.degraded == 2


@pytest.mark.asyncio()
async def test_sitemap_spellings_of_one_page_fetched_once(local_site, make_config):
    await local_site.start(
        {
            "/sitemap.xml": urlset(
                local_site.url("/p?a=1&amp;b=2"),
                local_site.url("/p?b=2&amp;a=1"),
                local_site.url("/q/"),
                local_site.url("/q/./"),
            ),
            "/p": page("<h1>P</h1>", title="P"),
            "/q/": page("<h1>Q</h1>", title="Q"),
        }
    )
    results, crawler = await run_crawler(make_config(local_site.base))

    assert [r.url for r in results] == [local_site.url("/p?a=1&b=2"), local_site.url("/q/")]
    assert local_site.hits.count("/q/") == 1
    assert len([hit for hit in local_site.hits if hit.startswith("/p")]) == 1
    assert crawler.stats.processed == 2


# --------------------------------------------------------------------------- #
#                               fallback crawl                                #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_fallback_stays_on_origin_without_revisits(local_site, make_config):
    root_links = (
        '<a href="/a">A</a><a href="/b">B</a><a href="http://other.example/x">Ext</a>'
        '<a href="/a#frag">A again</a><a href="/doc.pdf">PDF</a><a href="mailto:x@y.z">Mail</a>'
        '<a href="/wp-admin/">Admin</a><a href="http://[bad">Broken</a>'
    )
    await local_site.start(
        {
            "/": page(root_links, title="Home"),
            "/a": page('<a href="/">Home</a><a href="/b">B</a><a href="/a/../b">B again</a>', title="A"),
            "/b": page('<a href="/a">A</a><a href="/./">Home</a>', title="B"),
        }
    )
    results, crawler = await run_crawler(make_config(local_site.base))

    assert crawler.stats.source == "crawl"
    assert [r.title for r in results] == ["Home", "A", "B"]
    keys = [normalize_url(r.url) for r in results]
    assert len(keys) == len(set(keys))
    assert all(urlparse(r.url).netloc == urlparse(local_site.base).netloc for r in results)
    assert local_site.hits.count("/b") == 1
    assert local_site.hits.count("/") == 1


@pytest.mark.asyncio()
async def test_fallback_respects_page_budget(local_site, make_config):
    links = "".join(f'<a href="/page{i}">P{i}</a>' for i in range(10))
    pages = {"/": page(links)}
    pages.update({f"/page{i}": page(f"<h1>{i}</h1>") for i in range(10)})
    await local_site.start(pages)

    results, _ = await run_crawler(make_config(local_site.base, max_pages=4))
    assert [urlparse(r.url).path for r in results] == ["/", "/page0", "/page1", "/page2"]


@pytest.mark.asyncio()
async def test_failed_page_links_not_followed(local_site, make_config):
    await local_site.start(
        {
            "/": page('<a href="/broken">Broken</a><a href="/fine">Fine</a>'),
            "/broken": (503, '<a href="/hidden">Hidden</a>'),
            "/fine": page("<p>fine</p>"),
            "/hidden": page("<p>never</p>"),
        }
    )
    results, crawler = await run_crawler(make_config(local_site.base))
    assert [urlparse(r.url).path for r in results] == ["/", "/broken", "/fine"]
    assert results[1].degraded and results[1].status_code == 0
    assert "/hidden" not in local_site.hits
    assert crawler.stats.degraded == 1


@pytest.mark.asyncio()
async def test_timeout_degrades_page(local_site, make_config):
    async def slow(_):
        await asyncio.sleep(2)
        return web.Response(text=page("<p>late</p>"), content_type="text/html")

    await local_site.start({"/": page('<a href="/slow">Slow</a>'), "/slow": slow})
    results, _ = await run_crawler(make_config(local_site.base, timeout=0.5))
    assert len(results) == 2
    assert results[1].degraded
    assert results[1].status_code == 0
    assert "timeout" in results[1].error


@pytest.mark.asyncio()
async def test_unreachable_seed_yields_one_degraded_result(unused_tcp_port, make_config):
    results, crawler = await run_crawler(make_config(f"http://127.0.0.1:{unused_tcp_port}"))
    assert len(results) == 1
    assert results[0].degraded
    assert results[0].status_code == 0
    assert crawler.stats.source == "crawl"


@pytest.mark.asyncio()
async def test_redirect_followed(local_site, make_config):
    async def moved(_):
        raise web.HTTPFound("/target")

    await local_site.start({"/": page('<a href="/old">Old</a>'), "/old": moved, "/target": page("<h1>T</h1>", title="Target")})
    results, _ = await run_crawler(make_config(local_site.base))
    assert results[1].url == local_site.url("/old")
    assert results[1].title == "Target"
    assert results[1].status_code == 200


# --------------------------------------------------------------------------- #
#                              per-page options                               #
# --------------------------------------------------------------------------- #

RICH = page(
    '<header><nav><a href="/">Home</a><a href="/about">About</a></nav></header>'
    '<main><h1>Welcome</h1><p>Hello there.</p><img src="/img/logo.png" alt="Logo"></main>'
    "<footer><p>© 2024 Acme</p></footer>",
    title="Acme Home",
    head='<meta name="description" content="Acme widgets">',
)


@pytest.mark.asyncio()
async def test_page_result_fields(local_site, make_config):
    await local_site.start({"/": RICH, "/about": page("<p>About</p>", title="About")})
    results, _ = await run_crawler(make_config(local_site.base, max_pages=1))
    home = results[0]
    assert home.page_type == "homepage"
    assert home.status_code == 200
    assert home.meta_description == "Acme widgets"
    assert [s.title for s in home.sections] == ["HEADER SECTION", "Welcome", "FOOTER SECTION"]
    assert [(h.level, h.text) for h in home.headings] == [(1, "Welcome")]
    assert [i.src for i in home.images] == [local_site.url("/img/logo.png")]
    assert home.page_structure.startswith("1 headings, 2 paragraphs, 1 images, 2 links")
    assert home.content_summary == home.page_structure
    assert home.complete_content is None
    assert home.platform == "static_generic"
    assert not home.degraded


@pytest.mark.asyncio()
async def test_shallow_without_images(local_site, make_config):
    await local_site.start({"/": RICH})
    config = make_config(local_site.base, deep_analysis=False, include_images=False, max_pages=1)
    results, _ = await run_crawler(config)
    home = results[0]
    assert home.title == "Acme Home"
    assert home.sections == [] and home.headings == [] and home.images == []
    assert home.meta_description == ""
    assert home.content_summary


@pytest.mark.asyncio()
async def test_exact_order_mode(local_site, make_config):
    await local_site.start({"/": RICH})
    results, _ = await run_crawler(make_config(local_site.base, extraction_mode="exact_order", max_pages=1))
    home = results[0]
    assert home.complete_content is not None
    assert home.complete_content.index("Welcome") < home.complete_content.index("Hello there.")
    assert [s.position for s in home.sections] == list(range(len(home.sections)))


# --------------------------------------------------------------------------- #
#                                collaborators                                #
# --------------------------------------------------------------------------- #


class FakeSummarizer:
    def __init__(self, guess="shopify", text="AI summary", error: Exception | None = None):
        self.guess = guess
        self.text = text
        self.error = error
        self.calls: list[str] = []

    async def summarize_structure(self, url, title, html):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return StructureSummary(self.guess, self.text)


@pytest.mark.asyncio()
async def test_summarizer_used_when_enabled(local_site, make_config):
    shop = '<div class="product-description"><h2>Mug</h2><p>A sturdy ceramic mug, twelve ounces.</p></div>'
    await local_site.start({"/": page(shop)})
    summarizer = FakeSummarizer()
    results, _ = await run_crawler(make_config(local_site.base, use_ai=True), summarizer=summarizer)
    assert summarizer.calls == [local_site.url("/")]
    assert results[0].content_summary == "AI summary"
    assert results[0].platform == "shopify"
    assert [s.title for s in results[0].sections] == ["Mug"]


@pytest.mark.asyncio()
async def test_summarizer_ignored_when_ai_disabled(local_site, make_config):
    await local_site.start({"/": page("<p>x</p>")})
    summarizer = FakeSummarizer()
    results, _ = await run_crawler(make_config(local_site.base, use_ai=False), summarizer=summarizer)
    assert summarizer.calls == []
    assert results[0].content_summary == results[0].page_structure


@pytest.mark.asyncio()
async def test_summarizer_failure_is_not_fatal(local_site, make_config):
    await local_site.start({"/": page("<h1>T</h1><p>x</p>")})
    summarizer = FakeSummarizer(error=RuntimeError("service down"))
    results, _ = await run_crawler(make_config(local_site.base, use_ai=True), summarizer=summarizer)
    assert not results[0].degraded
    assert results[0].content_summary == "1 headings, 1 paragraphs"
    assert results[0].platform == "other"


@pytest.mark.asyncio()
async def test_sink_receives_every_result(local_site, make_config):
    await local_site.start({"/": page('<a href="/a">A</a><a href="/missing">M</a>'), "/a": page("<p>a</p>")})
    sink = MemorySink()
    results, _ = await run_crawler(make_config(local_site.base), sink=sink)
    assert sink.results == results
    assert [processed for processed, _ in sink.progress] == [1, 2, 3]
    assert sink.progress[-1] == (3, 3)


class FailingSink:
    def __init__(self):
        self.calls = 0

    async def save(self, result):
        self.calls += 1
        raise OSError("disk full")

    async def update_progress(self, processed, total):
        raise RuntimeError("db gone")


class SlowSink:
    async def save(self, result):
        await asyncio.sleep(5)

    async def update_progress(self, processed, total):
        await asyncio.sleep(5)


@pytest.mark.asyncio()
async def test_failing_sink_does_not_abort(local_site, make_config):
    await local_site.start({"/": page('<a href="/a">A</a>'), "/a": page("<p>a</p>")})
    sink = FailingSink()
    results, _ = await run_crawler(make_config(local_site.base), sink=sink)
    assert len(results) == 2
    assert sink.calls == 2


@pytest.mark.asyncio()
async def test_slow_sink_is_bounded(local_site, make_config):
    await local_site.start({"/": page("<p>x</p>")})
    config = make_config(local_site.base, sink_timeout=0.2)
    results, _ = await asyncio.wait_for(run_crawler(config, sink=SlowSink()), timeout=5)
    assert len(results) == 1


# --------------------------------------------------------------------------- #
#                                cancellation                                 #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_cancel_before_start(local_site, make_config):
    await local_site.start({"/": page("<p>x</p>")})
    cancel = asyncio.Event()
    cancel.set()
    results, crawler = await run_crawler(make_config(local_site.base), cancel=cancel)
    assert results == []
    assert crawler.stats.cancelled is True
    assert "/" not in local_site.hits


class CancellingSink(MemorySink):
    def __init__(self, event: asyncio.Event):
        super().__init__()
        self.event = event

    async def save(self, result):
        await super().save(result)
        self.event.set()


@pytest.mark.asyncio()
async def test_cancel_between_pages(local_site, make_config):
    links = "".join(f'<a href="/p{i}">{i}</a>' for i in range(5))
    pages = {"/": page(links)}
    pages.update({f"/p{i}": page("<p>x</p>") for i in range(5)})
    await local_site.start(pages)

    cancel = asyncio.Event()
    sink = CancellingSink(cancel)
    results, crawler = await run_crawler(make_config(local_site.base), sink=sink, cancel=cancel)
    assert len(results) == 1
    assert crawler.stats.cancelled is True


@pytest.mark.asyncio()
async def test_crawl_requires_context(make_config):
    crawler = SiteCrawler(make_config("http://127.0.0.1:1"))
    with pytest.raises(RuntimeError):
        await crawler.crawl()
