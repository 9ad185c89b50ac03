"""Per-crawl stylesheet cache shared by color and typography inference."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

import structlog

from sitebrand.extractor.models import CrawlWarning

if TYPE_CHECKING:
    from sitebrand.extractor.fetcher import FetchClient

logger = structlog.get_logger(__name__)

CSS_TIMEOUT_MS = 7000
CSS_MAX_RETRIES = 2


class StylesheetCache:
    """Fetches each stylesheet URL at most once.

    A failed fetch is cached as an empty string and reported with a single
    ``css_fetch_failed`` warning; later lookups of the same URL stay silent.
    """

    def __init__(self, fetch_client: "FetchClient") -> None:
        self.fetch_client = fetch_client
        self._texts: Dict[str, str] = {}

    def get(self, url: str, warnings: List[CrawlWarning]) -> str:
        if url in self._texts:
            return self._texts[url]

        response = self.fetch_client.fetch_url(
            url, accept_html_only=False, max_retries=CSS_MAX_RETRIES, timeout_ms=CSS_TIMEOUT_MS
        )
        if response.ok:
            self._texts[url] = response.text or ""
        else:
            message = response.error_message or f"Unable to fetch stylesheet ({response.status})"
            logger.info("css_fetch_failed", url=url, reason=message)
            warnings.append(CrawlWarning("css_fetch_failed", message, url))
            self._texts[url] = ""
        return self._texts[url]
