"""Exceptions raised by the extractor's public entry points."""

from __future__ import annotations


class ExtractionError(Exception):
    """Raised by ``extract()`` before any crawling starts.

    Everything that goes wrong *during* a crawl is reported through the
    result's ``warnings`` list instead; this exception only covers input that
    makes crawling impossible (unparseable or non-http(s) root URL, invalid
    options).
    """

    def __init__(self, message: str, status_code: int = 400, code: str = "extraction_error") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
