"""Tests for the crawl orchestrator.

Mocking strategy:
- ``respx`` serves a small fake site; anything not routed explicitly gets a
  404 (robots.txt and sitemap guesses included).
- ``time.sleep`` is patched so the per-host limiter never actually waits.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from sitebrand.extractor.crawl import clamp_limits, crawl_site
from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.plugins import DefaultExtractorPlugin
from sitebrand.extractor.rate_limit import HostRateLimiter

_HTML = {"content-type": "text/html; charset=utf-8"}
_FILLER = "We build calm, durable homes and offices for clients across Central Europe. " * 4

_ROOT = f"""\
<html><head><title>Acme Studio</title></head>
<body>
  <nav><a href="/about">About</a><a href="/services">Services</a><a href="/about/">About again</a></nav>
  <main>
    <h1>Acme Studio</h1>
    <p>{_FILLER}</p>
    <a href="/private/secret">Secret</a>
    <a href="/broken">Broken</a>
    <a href="/about?utm_source=home">Tracked about</a>
    <a href="https://other.example/partner">Partner</a>
    <a href="/brochure.pdf">Brochure</a>
  </main>
</body></html>
"""

_ABOUT = f"""\
<html><head><title>About | Acme Studio</title></head>
<body><main><h1>About us</h1><p>{_FILLER}</p><a href="/about/team">Team</a></main></body></html>
"""


def _simple(title: str) -> str:
    return f"<html><head><title>{title}</title></head><body><main><p>{_FILLER}</p></main></body></html>"


@pytest.fixture
def site():
    with respx.mock(assert_all_called=False) as router:
        router.get("https://acme.example/robots.txt").mock(
            return_value=httpx.Response(
                200, text="User-agent: *\nDisallow: /private\n", headers={"content-type": "text/plain"}
            )
        )
        router.get("https://acme.example/").mock(return_value=httpx.Response(200, text=_ROOT, headers=_HTML))
        router.get("https://acme.example/about").mock(
            return_value=httpx.Response(200, text=_ABOUT, headers=_HTML)
        )
        router.get("https://acme.example/services").mock(
            return_value=httpx.Response(200, text=_simple("Services"), headers=_HTML)
        )
        router.get("https://acme.example/private/secret").mock(
            return_value=httpx.Response(200, text=_simple("Secret"), headers=_HTML)
        )
        router.get("https://acme.example/about/team").mock(
            return_value=httpx.Response(200, text=_simple("Team"), headers=_HTML)
        )
        router.route().mock(return_value=httpx.Response(404))
        with patch("time.sleep"):
            yield router


def _crawl(**options):
    return crawl_site("https://acme.example", FetchClient(), DefaultExtractorPlugin(), **options)


def _paths(result):
    return [page.url.replace("https://acme.example", "") for page in result.pages]


class TestClampLimits:
    def test_clamps_and_floors(self) -> None:
        assert clamp_limits(99, 8, 1, 16) == 16
        assert clamp_limits(0, 8, 1, 16) == 1
        assert clamp_limits(3.7, 8, 1, 16) == 3

    def test_non_numbers_fall_back(self) -> None:
        assert clamp_limits(None, 8, 1, 16) == 8
        assert clamp_limits("lots", 8, 1, 16) == 8
        assert clamp_limits(float("nan"), 8, 1, 16) == 8


class TestCrawlSite:
    def test_crawls_site_breadth_first(self, site) -> None:
        result = _crawl()

        assert _paths(result)[0] == "/"
        assert set(_paths(result)) == {"/", "/about", "/services", "/private/secret", "/about/team"}
        assert all(page.depth <= 2 for page in result.pages)
        team = next(page for page in result.pages if page.url.endswith("/about/team"))
        assert team.depth == 2

    def test_duplicate_links_are_fetched_once(self, site) -> None:
        _crawl()
        about_calls = [call for call in site.calls if call.request.url.path == "/about"]
        assert len(about_calls) == 1

    def test_page_limit(self, site) -> None:
        result = _crawl(max_pages=2)
        assert len(result.pages) == 2
        assert result.crawl.pages_requested == 2

    def test_depth_zero_is_root_only(self, site) -> None:
        result = _crawl(max_depth=0)
        assert _paths(result) == ["/"]
        assert result.crawl.max_depth == 0

    def test_robots_respected_when_asked(self, site) -> None:
        result = _crawl(ignore_robots=False)

        assert "/private/secret" not in _paths(result)
        blocked = [warning for warning in result.warnings if warning.code == "robots_blocked_path"]
        assert blocked[0].url == "https://acme.example/private/secret"

    def test_failures_become_reports_and_warnings(self, site) -> None:
        result = _crawl()

        broken = next(report for report in result.page_reports if report.url.endswith("/broken"))
        assert broken.status == 404
        assert broken.error_code == "fetch_error"
        codes = {warning.code for warning in result.warnings}
        assert "fetch_error" in codes
        assert "sitemap_fetch_failed" in codes

    def test_cross_origin_links_are_counted(self, site) -> None:
        result = _crawl()
        filtered = [warning for warning in result.warnings if warning.code == "same_origin_filtered"]
        assert len(filtered) == 1
        assert filtered[0].url == "https://acme.example"
        assert "Filtered 1 cross-origin" in filtered[0].message

    def test_non_html_assets_are_not_fetched(self, site) -> None:
        _crawl()
        assert not any(call.request.url.path.endswith(".pdf") for call in site.calls)

    def test_website_structure(self, site) -> None:
        result = _crawl()
        structure = result.website_structure
        assert structure.key_pages.home == "https://acme.example/"
        assert structure.key_pages.about == "https://acme.example/about"
        assert structure.discovered_url_count >= 5

    def test_marketing_mode_caps_pages(self, site) -> None:
        result = _crawl(site_map_mode="marketing_only", max_pages=50)
        assert result.crawl.pages_requested == 10


def _fetched_paths(router, host: str) -> list[str]:
    skip = ("/robots.txt", "/sitemap.xml")
    return [
        call.request.url.path
        for call in router.calls
        if call.request.url.host == host and call.request.url.path not in skip
    ]


class TestFrontierOrder:
    @pytest.fixture
    def ordered_site(self):
        root = """\
<html><body>
  <nav><a href="/news">News</a></nav>
  <footer><a href="/gallery">Gallery</a></footer>
  <main><a href="/pricing">Pricing</a><a href="/alpha">Alpha</a><a href="/beta">Beta</a></main>
</body></html>
"""
        news = '<html><body><nav><a href="/contact">Contact</a></nav></body></html>'
        with respx.mock(assert_all_called=False) as router:
            router.get("https://order.example/").mock(return_value=httpx.Response(200, text=root, headers=_HTML))
            router.get("https://order.example/news").mock(
                return_value=httpx.Response(200, text=news, headers=_HTML)
            )
            for path in ("/gallery", "/pricing", "/alpha", "/beta", "/contact"):
                router.get(f"https://order.example{path}").mock(
                    return_value=httpx.Response(200, text=_simple(path), headers=_HTML)
                )
            router.route().mock(return_value=httpx.Response(404))
            with patch("time.sleep"):
                yield router

    def test_depth_then_score_then_insertion_order(self, ordered_site) -> None:
        crawl_site(
            "https://order.example", FetchClient(), DefaultExtractorPlugin(), max_pages=10, max_depth=2
        )

        # pricing: cta + intent, news: nav, alpha/beta: cta in document order, gallery: footer.
        # The high-scoring contact link sits one level deeper, so it comes last.
        assert _fetched_paths(ordered_site, "order.example") == [
            "/", "/pricing", "/news", "/alpha", "/beta", "/gallery", "/contact",
        ]


class TestSitemapSeeding:
    @pytest.fixture
    def seeded_site(self):
        root = '<html><body><main><a href="/contact">Contact</a></main></body></html>'
        sitemap = (
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<url><loc>https://seed.example/deep/page/one</loc></url>"
            "<url><loc>https://seed.example/services</loc></url>"
            "<url><loc>https://elsewhere.example/services</loc></url>"
            "</urlset>"
        )
        with respx.mock(assert_all_called=False) as router:
            router.get("https://seed.example/sitemap.xml").mock(
                return_value=httpx.Response(200, text=sitemap, headers={"content-type": "application/xml"})
            )
            router.get("https://seed.example/").mock(return_value=httpx.Response(200, text=root, headers=_HTML))
            for path in ("/deep/page/one", "/services", "/contact"):
                router.get(f"https://seed.example{path}").mock(
                    return_value=httpx.Response(200, text=_simple(path), headers=_HTML)
                )
            router.route().mock(return_value=httpx.Response(404))
            with patch("time.sleep"):
                yield router

    def test_seeds_are_queued_at_depth_one_ahead_of_links(self, seeded_site) -> None:
        result = crawl_site("https://seed.example", FetchClient(), DefaultExtractorPlugin(), max_pages=10)

        assert _fetched_paths(seeded_site, "seed.example") == ["/", "/services", "/deep/page/one", "/contact"]
        depths = {page.url: page.depth for page in result.pages}
        assert depths["https://seed.example/services"] == 1
        assert depths["https://seed.example/deep/page/one"] == 1
        assert not any(call.request.url.host == "elsewhere.example" for call in seeded_site.calls)

    def test_seeds_skipped_at_depth_zero(self, seeded_site) -> None:
        result = crawl_site(
            "https://seed.example", FetchClient(), DefaultExtractorPlugin(), max_pages=10, max_depth=0
        )
        assert [page.url for page in result.pages] == ["https://seed.example/"]


class TestCrawlDelay:
    @pytest.fixture
    def slow_site(self):
        with respx.mock(assert_all_called=False) as router:
            router.get("https://slow.example/robots.txt").mock(
                return_value=httpx.Response(
                    200, text="User-agent: *\nCrawl-delay: 2\n", headers={"content-type": "text/plain"}
                )
            )
            router.get("https://slow.example/").mock(
                return_value=httpx.Response(200, text=_simple("Slow"), headers=_HTML)
            )
            router.route().mock(return_value=httpx.Response(404))
            with patch("time.sleep"):
                yield router

    def test_robots_delay_is_passed_to_limiter(self, slow_site) -> None:
        limiter = MagicMock(spec=HostRateLimiter)
        crawl_site(
            "https://slow.example", FetchClient(), DefaultExtractorPlugin(),
            ignore_robots=False, rate_limiter=limiter,
        )
        limiter.wait.assert_called_once_with("https://slow.example/", 2000)

    def test_delay_ignored_with_robots(self, slow_site) -> None:
        limiter = MagicMock(spec=HostRateLimiter)
        crawl_site("https://slow.example", FetchClient(), DefaultExtractorPlugin(), rate_limiter=limiter)
        limiter.wait.assert_called_once_with("https://slow.example/", 0)
