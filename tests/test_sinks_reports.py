# File: tests/test_sinks_reports.py
from __future__ import annotations

import json

import pytest

from site_mapper.aggregator import aggregate_results
from site_mapper.crawler.models import CrawlStats, PageSection, PageResult, SectionType
from site_mapper.report import render_html, render_json
from site_mapper.sinks import JsonLinesSink, MemorySink
from site_mapper.technology import Technology


@pytest.fixture()
def report():
    pages = [
        PageResult(
            url="https://example.com/",
            title="Home <Acme>",
            page_type="homepage",
            status_code=200,
            sections=[PageSection(SectionType.CONTENT, "Welcome", "Hello there.", 0)],
            content_summary="1 headings, 1 paragraphs",
            platform="static_generic",
        ),
        PageResult.failed("https://example.com/gone", "HTTP 404"),
    ]
    return aggregate_results(
        "https://example.com/",
        pages,
        [Technology("WordPress", "CMS", 0.95, "6.4.2")],
        CrawlStats(processed=2, degraded=1, source="sitemap"),
    )


@pytest.mark.asyncio()
async def test_memory_sink():
    sink = MemorySink()
    result = PageResult(url="https://example.com/")
    await sink.save(result)
    await sink.update_progress(1, 3)
    assert sink.results == [result]
    assert sink.progress == [(1, 3)]


@pytest.mark.asyncio()
async def test_jsonl_sink_appends_lines(tmp_path):
    path = tmp_path / "nested" / "pages.jsonl"
    path.parent.mkdir()
    path.write_text("stale\n", encoding="utf-8")

    sink = JsonLinesSink(path)
    await sink.save(PageResult(url="https://example.com/a", title="A"))
    await sink.save(PageResult.failed("https://example.com/b", "timeout after 2s"))
    await sink.update_progress(2, 2)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert sink.saved == 2
    assert [json.loads(line)["url"] for line in lines] == ["https://example.com/a", "https://example.com/b"]
    assert json.loads(lines[1])["error"] == "timeout after 2s"


def test_render_json(report, tmp_path):
    path = render_json(report, tmp_path / "out" / "report.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["outcome"] == "traversal completed with 2 pages, 1 of which are degraded"
    assert data["stats"]["source"] == "sitemap"
    assert data["technologies"][0]["version"] == "6.4.2"
    assert data["pages"][0]["sections"][0]["type"] == "content"
    assert data["pages"][1]["title"] == "Failed to load"


def test_render_json_compact(report, tmp_path):
    path = render_json(report, tmp_path / "report.json", pretty=False)
    assert "\n" not in path.read_text(encoding="utf-8")


def test_render_html(report, tmp_path):
    path = render_html(report, None, tmp_path / "report.html")
    html = path.read_text(encoding="utf-8")
    assert "traversal completed with 2 pages, 1 of which are degraded" in html
    assert "WordPress" in html and "6.4.2" in html
    assert 'class="degraded"' in html
    assert "Home &lt;Acme&gt;" in html
    assert "Hello there." in html


def test_render_html_custom_template(report, tmp_path):
    templates = tmp_path / "tpl"
    templates.mkdir()
    (templates / "report.html.j2").write_text("{{ site_url }}|{{ pages|length }}|{{ page_types['homepage'] }}", encoding="utf-8")
    path = render_html(report, templates, tmp_path / "custom.html")
    assert path.read_text(encoding="utf-8") == "https://example.com/|2|1"
