"""Unified extractor: crawl, then brand/style/section inference and confidence.

Typical use::

    from sitebrand import extract

    result = extract({"url": "https://example.com", "max_pages": 6})
    print(result.brand.canonical_name)
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlsplit

import structlog
from pydantic import BaseModel, ValidationError

from sitebrand.errors import ExtractionError
from sitebrand.extractor.brand import extract_brand
from sitebrand.extractor.confidence import calculate_confidence
from sitebrand.extractor.crawl import crawl_site
from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.models import (
    Confidence,
    Content,
    ContentPage,
    ContentSectionCandidate,
    CrawlSummary,
    CrawlWarning,
    Durations,
    ExtractionResult,
    Headings,
    Style,
)
from sitebrand.extractor.parser import unique
from sitebrand.extractor.plugins import ExtractorRegistry
from sitebrand.extractor.rate_limit import HostRateLimiter
from sitebrand.extractor.sections import normalize_sections
from sitebrand.extractor.style import StylesheetCache, infer_colors, infer_typography
from sitebrand.extractor.url_utils import normalize_url, origin_of
from sitebrand.observability import configure_logging

logger = structlog.get_logger(__name__)

SiteMapMode = Literal["template_samples", "marketing_only", "all_urls"]


class ExtractionInput(BaseModel):
    url: str
    max_pages: Optional[int] = None
    max_depth: Optional[int] = None
    timeout_ms: Optional[int] = None
    ignore_robots: bool = True
    site_map_mode: SiteMapMode = "template_samples"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def dedupe_warnings(warnings: List[CrawlWarning]) -> List[CrawlWarning]:
    """Drop incomplete warnings and repeats of the same (code, message, url)."""
    seen: Dict[tuple, CrawlWarning] = {}
    for warning in warnings:
        if warning is None or not warning.code or not warning.message:
            continue
        key = (warning.code, warning.message, warning.url or "")
        if key not in seen:
            seen[key] = CrawlWarning(code=warning.code, message=warning.message, url=warning.url or None)
    return list(seen.values())


def _coerce_input(value: Union[ExtractionInput, Dict[str, Any]]) -> ExtractionInput:
    if isinstance(value, ExtractionInput):
        return value
    try:
        return ExtractionInput.model_validate(value)
    except ValidationError as exc:
        raise ExtractionError(f"Invalid extraction input: {exc}", code="invalid_input") from exc


def _root_url(value: str) -> str:
    """Validate the root URL before any network traffic happens."""
    try:
        return normalize_url(value)
    except ValueError as exc:
        raise ExtractionError(f"Invalid URL '{value}': {exc}", code="invalid_url") from exc


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class UnifiedExtractor:
    """Runs one extraction per :meth:`extract` call.

    *fetch_options* (``timeout_ms``, ``max_retries``, ``user_agent``,
    ``transport``) configure the default :class:`FetchClient` when none is
    passed in.
    """

    def __init__(
        self,
        fetch_client: Optional[FetchClient] = None,
        registry: Optional[ExtractorRegistry] = None,
        **fetch_options: Any,
    ) -> None:
        configure_logging()
        self.fetch_client = fetch_client or FetchClient(**fetch_options)
        self.registry = registry or ExtractorRegistry()

    def extract(self, value: Union[ExtractionInput, Dict[str, Any]]) -> ExtractionResult:
        """Crawl the site in *value* and assemble an :class:`ExtractionResult`.

        Raises:
            ExtractionError: If the input is invalid or the URL is not http(s).
        """
        started = time.monotonic()
        options = _coerce_input(value)
        input_url = _root_url(options.url)
        plugin = self.registry.resolve((urlsplit(input_url).hostname or "").lower())
        origin = origin_of(input_url)

        logger.info("extraction_started", url=input_url, plugin=plugin.name, mode=options.site_map_mode)

        crawl = crawl_site(
            input_url,
            self.fetch_client,
            plugin,
            max_pages=options.max_pages,
            max_depth=options.max_depth,
            timeout_ms=options.timeout_ms,
            ignore_robots=options.ignore_robots,
            site_map_mode=options.site_map_mode,
            rate_limiter=HostRateLimiter(),
        )
        warnings = list(crawl.warnings)

        style_started = time.monotonic()
        css_cache = StylesheetCache(self.fetch_client)
        colors = infer_colors(crawl.pages, self.fetch_client, warnings, origin, css_cache=css_cache)
        typography = infer_typography(crawl.pages, self.fetch_client, warnings, origin, css_cache=css_cache)
        style_ms = int((time.monotonic() - style_started) * 1000)

        brand = extract_brand(crawl.pages, plugin)
        sections = normalize_sections(crawl.pages, plugin)

        content = Content(
            pages=[
                ContentPage(
                    url=page.url,
                    page_type=page.page_type,
                    title=page.title,
                    description=page.description,
                    headings=page.headings,
                    text_samples=page.text_samples,
                    section_candidates=[
                        ContentSectionCandidate(
                            source_page_url=candidate.source_page_url,
                            title=candidate.title,
                            summary=candidate.summary,
                            bullets=candidate.bullets,
                            ctas=candidate.ctas,
                            source_tag=candidate.source_tag,
                        )
                        for candidate in page.section_candidates
                    ],
                )
                for page in crawl.pages
            ],
            sections=sections,
        )

        summary = CrawlSummary(
            pages_requested=crawl.crawl.pages_requested,
            pages_crawled=crawl.crawl.pages_crawled,
            max_depth=crawl.crawl.max_depth,
            durations_ms=Durations(
                total=int((time.monotonic() - started) * 1000),
                crawl=crawl.crawl.duration_ms,
                style=style_ms,
            ),
        )
        style = Style(colors=colors, typography=typography)
        deduped = dedupe_warnings(warnings)

        result = ExtractionResult(
            input_url=input_url,
            final_url=crawl.final_url or input_url,
            crawled_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            crawl=summary,
            brand=brand,
            website=crawl.website_structure,
            style=style,
            content=content,
            page_reports=crawl.page_reports,
            warnings=deduped,
            confidence=Confidence(),
            crawl_pages=crawl.pages,
        )
        result.confidence = calculate_confidence(
            brand=brand,
            style=style,
            content=content,
            crawl=summary,
            warnings=deduped,
            website=crawl.website_structure,
        )

        logger.info(
            "extraction_finished",
            url=input_url,
            pages=summary.pages_crawled,
            sections=len(sections),
            warnings=len(deduped),
            confidence=result.confidence.overall,
            duration_ms=summary.durations_ms.total,
        )
        return result


def extract(value: Union[ExtractionInput, Dict[str, Any]], **options: Any) -> ExtractionResult:
    """Convenience wrapper: ``UnifiedExtractor(**options).extract(value)``."""
    return UnifiedExtractor(**options).extract(value)


# ---------------------------------------------------------------------------
# Legacy shape
# ---------------------------------------------------------------------------

def to_legacy_extracted_data(result: ExtractionResult) -> Dict[str, Any]:
    """Flatten *result* into the dict shape consumed by older normalizers."""
    pages = result.content.pages
    first_page = pages[0] if pages else None

    headings = Headings()
    for page in pages:
        headings.h1.extend(page.headings.h1)
        headings.h2.extend(page.headings.h2)
        headings.h3.extend(page.headings.h3)

    project_blocks = [
        {"title": section.title or "Project", "summary": section.summary or None}
        for section in result.content.sections
        if section.type == "PROJECTS"
    ]
    if not project_blocks:
        project_blocks = [{"title": heading, "summary": None} for heading in unique(headings.h2)]

    links = unique(
        (cta.url, cta.label or None) for section in result.content.sections for cta in section.ctas
    )

    brand = result.brand
    title = (
        brand.canonical_name
        or brand.name
        or (first_page.title if first_page else None)
        or brand.tagline
        or result.final_url
    )
    description = (
        (first_page.description if first_page else None)
        or brand.tagline
        or (first_page.text_samples[0] if first_page and first_page.text_samples else None)
    )

    return {
        "source": {"website_url": result.final_url},
        "title": title,
        "description": description,
        "headings": {
            "h1": unique(headings.h1)[:8],
            "h2": unique(headings.h2)[:12],
            "h3": unique(headings.h3)[:12],
        },
        "contacts": {
            "emails": unique(brand.contact.emails)[:5],
            "phones": unique(brand.contact.phones)[:5],
        },
        "links": [{"href": href, "label": label} for href, label in links][:60],
        "paragraphs": unique(
            text for page in pages for text in page.text_samples if len(text) > 40
        )[:20],
        "project_blocks": project_blocks[:8],
        "scraped_at": result.crawled_at,
    }
