"""Fallback plugin used when no site plugin matches."""

from __future__ import annotations

from sitebrand.extractor.plugins.base import ExtractorPlugin


class DefaultExtractorPlugin(ExtractorPlugin):
    """Matches every host and leaves all scores untouched."""

    def match(self, hostname: str) -> bool:
        return True
