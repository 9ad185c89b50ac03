"""Crawl orchestrator: priority frontier driving the fetch loop.

The frontier is a heap ordered by ascending depth, descending link score and
insertion order, so the crawl order is reproducible for a fixed page graph.
Every failure is recorded as a warning plus a :class:`PageReport`; the loop
always runs to completion and returns a best-effort result.
"""

from __future__ import annotations

import heapq
import re
import time
from dataclasses import replace
from typing import List, Optional, Set
from urllib.parse import urlsplit

import structlog

from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.ia_planner import build_website_structure, classify_by_path, infer_page_type
from sitebrand.extractor.models import (
    CrawlResult,
    CrawlStats,
    CrawlWarning,
    FetchInfo,
    FrontierEntry,
    Link,
    PageReport,
    ParsedPage,
    RobotsRules,
)
from sitebrand.extractor.parser import parse_html_page
from sitebrand.extractor.plugins import ExtractorPlugin
from sitebrand.extractor.rate_limit import HostRateLimiter
from sitebrand.extractor.robots import fetch_robots, is_allowed_by_robots
from sitebrand.extractor.sitemap import fetch_sitemap_seeds
from sitebrand.extractor.url_utils import (
    canonical_key,
    is_same_origin,
    keyword_score,
    looks_like_non_html_asset,
    normalize_discovered_url,
    normalize_url,
    origin_of,
)

logger = structlog.get_logger(__name__)

ROOT_SCORE = 100000
LOW_CONTENT_CHARS = 220
PAGE_MAX_RETRIES = 3

_MODE_PAGE_CEILING = {"all_urls": 40, "marketing_only": 10, "template_samples": 16}
_MARKETING_EXCLUDED_TYPES = ("product", "checkout", "account")

INTENT_SCORES = (
    (re.compile(r"(about|company|team|who-we-are)"), 4),
    (re.compile(r"(services|solutions|what-we-do)"), 4),
    (re.compile(r"(projects|portfolio|references|case-studies|case-study)"), 5),
    (re.compile(r"(contact|get-in-touch)"), 4),
    (re.compile(r"pricing"), 2),
)

_CONTEXT_BOOSTS = {"nav": 2, "cta": 1.5, "footer": 1}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def clamp_limits(value, fallback: int, lo: int, hi: int) -> int:
    """Clamp *value* to ``[lo, hi]`` (floored); non-numbers give *fallback*."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if number != number or number in (float("inf"), float("-inf")):
        return fallback
    return max(lo, min(hi, int(number // 1)))


def score_link(link: Link, plugin: Optional[ExtractorPlugin] = None) -> float:
    """Frontier priority of a discovered link (higher is crawled sooner)."""
    score = float(_CONTEXT_BOOSTS.get(link.context, 0))
    hay = f"{link.url} {link.label or ''}".lower()
    for pattern, weight in INTENT_SCORES:
        if pattern.search(hay):
            score += weight
    if plugin is not None:
        score = plugin.adjust_link_priority(link, score)
    return score


def build_warning(code: str, message: str, url: Optional[str] = None) -> CrawlWarning:
    return CrawlWarning(code=code, message=message, url=url or None)


def _path_of(url: str) -> str:
    return urlsplit(url).path or "/"


def _excluded_for_marketing(url: str) -> bool:
    return classify_by_path(url) in _MARKETING_EXCLUDED_TYPES


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class _Frontier:
    """Heap of :class:`FrontierEntry` with monotonic insertion order."""

    def __init__(self) -> None:
        self._heap: List[tuple] = []
        self._counter = 0

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, url: str, depth: int, score: float) -> None:
        entry = FrontierEntry(url=url, depth=depth, score=score, insert_order=self._counter)
        self._counter += 1
        heapq.heappush(self._heap, (entry.sort_key, entry))

    def pop(self) -> FrontierEntry:
        return heapq.heappop(self._heap)[1]


def crawl_site(
    url: str,
    fetch_client: FetchClient,
    plugin: ExtractorPlugin,
    max_pages: Optional[int] = None,
    max_depth: Optional[int] = None,
    timeout_ms: Optional[int] = None,
    ignore_robots: bool = True,
    site_map_mode: str = "template_samples",
    rate_limiter: Optional[HostRateLimiter] = None,
) -> CrawlResult:
    """Crawl one site starting at *url* and return the parsed pages.

    Raises:
        ValueError: If *url* is not an absolute http(s) URL.
    """
    started = time.monotonic()
    warnings: List[CrawlWarning] = []
    page_reports: List[PageReport] = []
    mode = site_map_mode or "template_samples"

    pages_limit = clamp_limits(
        max_pages, 14 if mode == "all_urls" else 8, 1, _MODE_PAGE_CEILING.get(mode, 16)
    )
    depth_limit = clamp_limits(max_depth, 2, 0, 3)
    request_timeout_ms = clamp_limits(timeout_ms, fetch_client.timeout_ms or 8000, 1000, 25000)

    root_url = normalize_url(url)
    limiter = rate_limiter or HostRateLimiter()

    robots = fetch_robots(root_url, fetch_client, timeout_ms=3000)
    if robots.warning:
        warnings.append(build_warning("robots_fetch_failed", robots.warning, robots.robots_url))
    robots_rules = robots.rules or RobotsRules()
    apply_robots = ignore_robots is not True

    def blocked_by_robots(target: str) -> bool:
        if not apply_robots:
            return False
        if is_allowed_by_robots(robots_rules, _path_of(target)):
            return False
        warnings.append(build_warning("robots_blocked_path", "Blocked by robots.txt rules", target))
        return True

    sitemap = fetch_sitemap_seeds(
        root_url,
        robots_rules.sitemaps,
        fetch_client,
        timeout_ms=4000,
        max_urls=120,
        max_files=8,
        max_depth=2,
    )
    warnings.extend(sitemap.warnings)

    frontier = _Frontier()
    frontier.push(root_url, 0, ROOT_SCORE)
    visited: Set[str] = set()
    enqueued: Set[str] = {canonical_key(root_url)}
    discovered_urls = {root_url: None}

    final_url = root_url
    same_origin_filtered = 0

    # Seeds sit at depth 1; a depth limit of 0 means the root page only.
    if depth_limit >= 1:
        for sitemap_url in sitemap.urls:
            if len(frontier) >= pages_limit * 3:
                break
            if not is_same_origin(root_url, sitemap_url):
                same_origin_filtered += 1
                continue
            if looks_like_non_html_asset(sitemap_url):
                continue
            if mode == "marketing_only" and _excluded_for_marketing(sitemap_url):
                continue
            if blocked_by_robots(sitemap_url):
                continue
            key = canonical_key(sitemap_url)
            if key in enqueued:
                continue
            enqueued.add(key)
            discovered_urls[sitemap_url] = None
            frontier.push(sitemap_url, 1, keyword_score(sitemap_url) + 10)

    pages: List[ParsedPage] = []
    crawl_delay_ms = (
        round(robots_rules.crawl_delay_sec * 1000)
        if apply_robots and robots_rules.crawl_delay_sec
        else 0
    )

    while frontier and len(pages) < pages_limit:
        entry = frontier.pop()

        key = canonical_key(entry.url)
        if key in visited:
            continue
        if blocked_by_robots(entry.url):
            continue
        visited.add(key)

        limiter.wait(entry.url, crawl_delay_ms)
        response = fetch_client.fetch_url(
            entry.url,
            timeout_ms=request_timeout_ms,
            max_retries=PAGE_MAX_RETRIES,
            accept_html_only=True,
        )
        limiter.register_status(entry.url, response.status)

        report = PageReport(
            url=entry.url,
            status=int(response.status or 0),
            content_type=response.content_type,
            bytes=int(response.bytes or 0),
            duration_ms=int(response.duration_ms or 0),
            retries=int(response.retries or 0),
        )

        for warning in response.warnings:
            warnings.append(
                build_warning(warning.code or "warning", warning.message or "Fetch warning", entry.url)
            )

        if response.redirected and response.final_url:
            report.notes.append(f"redirected to {response.final_url}")
            final_url = response.final_url
            visited.add(canonical_key(response.final_url))

        if not response.ok:
            report.error_code = response.error_code or "fetch_error"
            report.error_message = response.error_message or "Unable to fetch page"
            page_reports.append(report)
            warnings.append(build_warning(report.error_code, report.error_message, entry.url))
            logger.info("page_failed", url=entry.url, code=report.error_code, status=report.status)
            continue

        if not response.text or "<" not in response.text:
            report.error_code = response.error_code or "non_html"
            report.error_message = response.error_message or "Response body is not valid HTML"
            page_reports.append(report)
            warnings.append(build_warning(report.error_code, report.error_message, entry.url))
            continue

        parsed = parse_html_page(response.text, response.final_url or entry.url)

        if len(parsed.raw_text) < LOW_CONTENT_CHARS:
            warnings.append(build_warning("low_content", "Page has very little textual content", parsed.url))
            report.notes.append("low content page")

        page = replace(
            parsed,
            page_type=infer_page_type(parsed),
            depth=entry.depth,
            fetch=FetchInfo(
                status=response.status,
                duration_ms=response.duration_ms,
                content_type=response.content_type,
                bytes=response.bytes,
                retries=response.retries,
            ),
        )
        pages.append(page)
        page_reports.append(report)
        logger.info(
            "page_fetched",
            url=entry.url,
            depth=entry.depth,
            page_type=page.page_type,
            links=len(parsed.links),
        )

        if entry.depth >= depth_limit:
            continue

        for link in parsed.links:
            absolute = normalize_discovered_url(link.url, parsed.url or entry.url)
            if not absolute:
                continue
            if not is_same_origin(root_url, absolute):
                same_origin_filtered += 1
                continue

            discovered_urls[absolute] = None

            if looks_like_non_html_asset(absolute):
                continue
            if mode == "marketing_only" and _excluded_for_marketing(absolute):
                continue
            if blocked_by_robots(absolute):
                continue

            link_key = canonical_key(absolute)
            if link_key in visited or link_key in enqueued:
                continue
            enqueued.add(link_key)
            frontier.push(absolute, entry.depth + 1, score_link(link, plugin))

    if same_origin_filtered > 0:
        warnings.append(
            build_warning(
                "same_origin_filtered",
                f"Filtered {same_origin_filtered} cross-origin links during crawl",
                origin_of(root_url),
            )
        )

    crawl_ms = int((time.monotonic() - started) * 1000)
    website_structure = build_website_structure(
        root_url, pages, list(discovered_urls), site_map_mode=mode
    )

    logger.info(
        "crawl_finished",
        root=root_url,
        pages=len(pages),
        pages_limit=pages_limit,
        warnings=len(warnings),
        duration_ms=crawl_ms,
    )

    return CrawlResult(
        root_url=root_url,
        final_url=final_url,
        website_structure=website_structure,
        pages=pages,
        page_reports=page_reports,
        warnings=warnings,
        crawl=CrawlStats(
            pages_requested=pages_limit,
            pages_crawled=len(pages),
            max_depth=depth_limit,
            duration_ms=crawl_ms,
        ),
    )
