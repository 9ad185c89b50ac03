"""Sitemap discovery: bounded breadth-first traversal of sitemap files.

Sitemaps are read with tag-scoped regular expressions rather than an XML
parser, which keeps the seeder tolerant of the truncated or slightly broken
files that are common in the wild.  ``<loc>`` values are entity-decoded and
unwrapped from CDATA sections.
"""

from __future__ import annotations

import html
import re
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

import structlog

from sitebrand.extractor.models import CrawlWarning
from sitebrand.extractor.url_utils import normalize_discovered_url

if TYPE_CHECKING:
    from sitebrand.extractor.fetcher import FetchClient

logger = structlog.get_logger(__name__)

_CDATA_RE = re.compile(r"^<!\[CDATA\[(.*?)\]\]>$", re.DOTALL)


@dataclass
class SitemapDocument:
    type: str  # index | urlset | unknown
    urls: List[str] = field(default_factory=list)


@dataclass
class SitemapSeeds:
    urls: List[str] = field(default_factory=list)
    warnings: List[CrawlWarning] = field(default_factory=list)


def _loc_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(
        rf"<{tag}(?:\s[^>]*)?>.*?<loc[^>]*>(.*?)</loc>.*?</{tag}>",
        re.IGNORECASE | re.DOTALL,
    )


_SITEMAP_LOC_RE = _loc_pattern("sitemap")
_URL_LOC_RE = _loc_pattern("url")


def _clean_loc(value: str) -> str:
    value = value.strip()
    cdata = _CDATA_RE.match(value)
    if cdata:
        value = cdata.group(1).strip()
    return html.unescape(value)


def _extract_loc_values(xml: str, pattern: re.Pattern[str]) -> List[str]:
    values = []
    for match in pattern.finditer(xml):
        value = _clean_loc(match.group(1))
        if value:
            values.append(value)
    return values


def parse_sitemap_xml(xml: str) -> SitemapDocument:
    """Classify *xml* as a sitemap index or urlset and pull its ``<loc>`` values."""
    source = str(xml or "")
    lower = source.lower()

    if "<sitemapindex" in lower:
        return SitemapDocument(type="index", urls=_extract_loc_values(source, _SITEMAP_LOC_RE))
    if "<urlset" in lower:
        return SitemapDocument(type="urlset", urls=_extract_loc_values(source, _URL_LOC_RE))
    return SitemapDocument(type="unknown")


def fetch_sitemap_seeds(
    root_url: str,
    sitemap_urls: Optional[List[str]],
    fetch_client: "FetchClient",
    timeout_ms: int = 4000,
    max_urls: int = 120,
    max_files: int = 8,
    max_depth: int = 2,
) -> SitemapSeeds:
    """Collect page URLs from the site's sitemaps.

    Starts from *sitemap_urls* (typically the robots ``Sitemap:`` lines) plus
    a ``/sitemap.xml`` guess.  Index files queue their children one level
    deeper until *max_depth*; at most *max_files* files are fetched and
    *max_urls* URLs returned.  Failures are recorded as warnings and the
    traversal moves on.
    """
    seeds: List[str] = []
    seen_seeds: set[str] = set()
    warnings: List[CrawlWarning] = []
    queue: deque[tuple[str, int]] = deque()
    visited: set[str] = set()

    starts = list(sitemap_urls or [])
    default_guess = normalize_discovered_url("/sitemap.xml", root_url)
    if default_guess:
        starts.append(default_guess)

    for url in starts:
        normalised = normalize_discovered_url(url, root_url)
        if normalised:
            queue.append((normalised, 0))

    while queue and len(visited) < max_files and len(seeds) < max_urls:
        url, depth = queue.popleft()
        if url in visited:
            continue
        visited.add(url)

        response = fetch_client.fetch_url(
            url, accept_html_only=False, max_retries=1, timeout_ms=timeout_ms
        )
        if not response.ok or not response.text:
            message = response.error_message or f"Unable to fetch sitemap ({response.status})"
            logger.info("sitemap_file_failed", url=url, reason=message)
            warnings.append(CrawlWarning("sitemap_fetch_failed", message, url))
            continue

        document = parse_sitemap_xml(response.text)
        if document.type == "unknown":
            warnings.append(
                CrawlWarning("sitemap_parse_failed", "Sitemap XML did not match urlset/sitemapindex", url)
            )
            continue

        if document.type == "index":
            if depth >= max_depth:
                continue
            for child in document.urls:
                if len(queue) + len(visited) >= max_files * 3:
                    break
                normalised = normalize_discovered_url(child, url)
                if not normalised or normalised in visited:
                    continue
                queue.append((normalised, depth + 1))
            continue

        for page_url in document.urls:
            normalised = normalize_discovered_url(page_url, url)
            if not normalised or normalised in seen_seeds:
                continue
            seen_seeds.add(normalised)
            seeds.append(normalised)
            if len(seeds) >= max_urls:
                break

    logger.debug("sitemap_seeds", root=root_url, files=len(visited), urls=len(seeds))
    return SitemapSeeds(urls=seeds[:max_urls], warnings=warnings)
