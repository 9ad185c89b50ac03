"""End-to-end tests for ``extract()`` against a mocked one-page site."""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
import respx

from sitebrand import ExtractionError, UnifiedExtractor, extract
from sitebrand.extractor import dedupe_warnings, to_legacy_extracted_data
from sitebrand.extractor.models import CrawlWarning

_PAGE = """\
<!DOCTYPE html>
<html>
<head>
  <title>Test Company | Quality widgets</title>
  <meta name="description" content="Quality widgets made in a small workshop.">
  <style>:root { --brand-primary: #3366cc; } body { font-family: "Source Sans Pro", sans-serif; }</style>
</head>
<body>
  <main>
    <section>
      <h1>Test</h1>
      <p>We make quality widgets for workshops, schools and hobbyists, and we have been doing it for
      more than twenty years. Every widget is assembled by hand, checked twice and shipped in
      recyclable packaging. Ask us about custom sizes and colours for your next project.</p>
      <a href="mailto:test@example.com">Email us</a>
    </section>
  </main>
</body>
</html>
"""


@pytest.fixture
def one_page_site():
    with respx.mock(assert_all_called=False) as router:
        router.get("https://example.com/robots.txt").mock(return_value=httpx.Response(404))
        router.get("https://example.com/sitemap.xml").mock(return_value=httpx.Response(404))
        router.get("https://example.com/").mock(
            return_value=httpx.Response(200, text=_PAGE, headers={"content-type": "text/html"})
        )
        with patch("time.sleep"):
            yield router


class TestExtract:
    def test_single_page_site(self, one_page_site) -> None:
        result = extract({"url": "https://example.com"})

        assert result.input_url == "https://example.com/"
        assert result.final_url == "https://example.com/"
        assert len(result.content.pages) == 1
        assert result.crawl.pages_crawled == 1
        assert result.brand.contact.emails == ["test@example.com"]
        assert not any(warning.code == "low_content" for warning in result.warnings)

    def test_brand_and_style(self, one_page_site) -> None:
        result = extract({"url": "https://example.com"})

        assert result.brand.canonical_name == "Test Company"
        assert result.brand.tagline == "Quality widgets made in a small workshop."
        assert result.style.colors.primary == "#3366cc"
        assert result.style.typography.primary_fonts == ["Source Sans Pro"]

    def test_result_serialises(self, one_page_site) -> None:
        result = extract({"url": "https://example.com"})
        data = json.loads(json.dumps(result.to_dict()))

        assert data["api_version"] == "3.0"
        assert data["crawled_at"].endswith("Z")
        assert "crawl_pages" not in data
        assert data["website"]["key_pages"]["home"] == "https://example.com/"
        assert 0 <= data["confidence"]["overall"] <= 1

    def test_warnings_are_unique(self, one_page_site) -> None:
        result = extract({"url": "https://example.com"})
        keys = [(warning.code, warning.message, warning.url) for warning in result.warnings]
        assert len(keys) == len(set(keys))
        assert {"robots_fetch_failed", "sitemap_fetch_failed"} <= {key[0] for key in keys}

    def test_legacy_shape(self, one_page_site) -> None:
        legacy = to_legacy_extracted_data(extract({"url": "https://example.com"}))

        assert legacy["source"] == {"website_url": "https://example.com/"}
        assert legacy["title"] == "Test Company"
        assert legacy["headings"]["h1"] == ["Test"]
        assert legacy["contacts"]["emails"] == ["test@example.com"]
        assert legacy["paragraphs"]
        assert legacy["project_blocks"] == []


class TestHostilePages:
    def test_nested_json_ld_does_not_abort_extraction(self) -> None:
        nested = "[" * 200000 + "]" * 200000
        page = _PAGE.replace(
            "</head>", f'<script type="application/ld+json">{nested}</script></head>'
        )
        with respx.mock(assert_all_called=False) as router:
            router.get("https://acme.example/").mock(
                return_value=httpx.Response(200, text=page, headers={"content-type": "text/html"})
            )
            router.route().mock(return_value=httpx.Response(404))
            with patch("time.sleep"):
                result = extract({"url": "https://acme.example"})

        assert result.crawl.pages_crawled == 1
        assert result.brand.contact.emails == ["test@example.com"]


class TestInvalidInput:
    def test_non_http_url(self) -> None:
        with pytest.raises(ExtractionError) as excinfo:
            UnifiedExtractor().extract({"url": "ftp://example.com/file"})
        assert excinfo.value.code == "invalid_url"
        assert excinfo.value.status_code == 400

    def test_missing_url(self) -> None:
        with pytest.raises(ExtractionError) as excinfo:
            extract({"max_pages": 3})
        assert excinfo.value.code == "invalid_input"

    def test_unknown_mode(self) -> None:
        with pytest.raises(ExtractionError):
            extract({"url": "https://example.com", "site_map_mode": "everything"})


class TestDedupeWarnings:
    def test_drops_repeats_and_incomplete(self) -> None:
        warnings = [
            CrawlWarning("low_content", "thin", "https://example.com/"),
            CrawlWarning("low_content", "thin", "https://example.com/"),
            CrawlWarning("low_content", "thin", None),
            CrawlWarning("", "no code"),
        ]
        assert dedupe_warnings(warnings) == [
            CrawlWarning("low_content", "thin", "https://example.com/"),
            CrawlWarning("low_content", "thin", None),
        ]
