"""sitebrand: crawl a company website and extract structured marketing data."""

from sitebrand.errors import ExtractionError
from sitebrand.extractor import UnifiedExtractor, extract

__all__ = ["extract", "UnifiedExtractor", "ExtractionError"]
