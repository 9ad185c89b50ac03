"""Tests for robots.txt parsing, matching and fetching."""

from __future__ import annotations

import httpx
import respx

from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.models import RobotsRules
from sitebrand.extractor.robots import fetch_robots, is_allowed_by_robots, parse_robots_text

_ROBOTS = """\
# comment
User-agent: googlebot
Disallow: /google-only

User-agent: *
Disallow: /private
Allow: /private/open
Crawl-delay: 2
Disallow:

Sitemap: /sitemap-pages.xml
Sitemap: https://example.com/sitemap-pages.xml
"""


class TestParseRobots:
    def test_only_star_group_applies(self) -> None:
        rules = parse_robots_text(_ROBOTS, "https://example.com")
        assert rules.disallow == ["/private"]
        assert rules.allow == ["/private/open"]
        assert "/google-only" not in rules.disallow

    def test_crawl_delay_and_sitemaps(self) -> None:
        rules = parse_robots_text(_ROBOTS, "https://example.com")
        assert rules.crawl_delay_sec == 2.0
        assert rules.sitemaps == ["https://example.com/sitemap-pages.xml"]

    def test_new_group_after_directive(self) -> None:
        text = "User-agent: *\nDisallow: /a\nUser-agent: bingbot\nDisallow: /b\n"
        rules = parse_robots_text(text, "https://example.com")
        assert rules.disallow == ["/a"]

    def test_rule_without_leading_slash_is_normalised(self) -> None:
        rules = parse_robots_text("User-agent: *\nDisallow: tmp\n", "https://example.com")
        assert rules.disallow == ["/tmp"]


class TestIsAllowed:
    def test_no_match_is_allowed(self) -> None:
        assert is_allowed_by_robots(RobotsRules(disallow=["/private"]), "/public") is True

    def test_equal_length_tie_allows(self) -> None:
        rules = RobotsRules(allow=["/page"], disallow=["/page"])
        assert is_allowed_by_robots(rules, "/page") is True

    def test_longest_match_wins(self) -> None:
        rules = RobotsRules(allow=["/private/open"], disallow=["/private"])
        assert is_allowed_by_robots(rules, "/private/open/doc") is True
        assert is_allowed_by_robots(rules, "/private/closed") is False

    def test_wildcard_and_anchor(self) -> None:
        rules = RobotsRules(disallow=["/*.pdf$"])
        assert is_allowed_by_robots(rules, "/files/report.pdf") is False
        assert is_allowed_by_robots(rules, "/files/report.pdf?download=1") is True


class TestFetchRobots:
    def test_missing_robots_allows_everything(self) -> None:
        with respx.mock:
            respx.get("https://example.com/robots.txt").mock(return_value=httpx.Response(404))
            fetched = fetch_robots("https://example.com", FetchClient())

        assert fetched.warning == "HTTP 404"
        assert fetched.rules == RobotsRules()

    def test_parses_fetched_file(self) -> None:
        with respx.mock:
            respx.get("https://example.com/robots.txt").mock(
                return_value=httpx.Response(200, text=_ROBOTS, headers={"content-type": "text/plain"})
            )
            fetched = fetch_robots("https://example.com", FetchClient())

        assert fetched.warning is None
        assert fetched.robots_url == "https://example.com/robots.txt"
        assert fetched.rules.disallow == ["/private"]
