"""Website crawl-and-extract engine."""

from sitebrand.extractor.crawl import crawl_site
from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.models import ExtractionResult
from sitebrand.extractor.plugins import ExtractorPlugin, ExtractorRegistry
from sitebrand.extractor.rate_limit import HostRateLimiter
from sitebrand.extractor.unified import (
    ExtractionInput,
    UnifiedExtractor,
    dedupe_warnings,
    extract,
    to_legacy_extracted_data,
)

__all__ = [
    "ExtractionInput",
    "ExtractionResult",
    "ExtractorPlugin",
    "ExtractorRegistry",
    "FetchClient",
    "HostRateLimiter",
    "UnifiedExtractor",
    "crawl_site",
    "dedupe_warnings",
    "extract",
    "to_legacy_extracted_data",
]
