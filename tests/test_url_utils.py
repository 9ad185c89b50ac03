"""Tests for URL canonicalisation, origin checks and keyword scoring."""

from __future__ import annotations

import pytest

from sitebrand.extractor.url_utils import (
    canonical_key,
    is_same_origin,
    keyword_score,
    looks_like_non_html_asset,
    normalize_discovered_url,
    normalize_url,
    origin_of,
    to_absolute_url,
)


class TestCanonicalKey:
    def test_strips_tracking_sorts_query_and_drops_fragment(self) -> None:
        key = canonical_key("https://Example.com:443/a/?utm_source=x&b=2&a=1#frag")
        assert key == "https://example.com/a?a=1&b=2"

    def test_idempotent(self) -> None:
        once = canonical_key("HTTP://Example.com:80/Path/?z=1&gclid=abc&a=2")
        assert canonical_key(once) == once

    def test_root_keeps_slash(self) -> None:
        assert canonical_key("https://example.com") == "https://example.com/"

    def test_non_default_port_kept(self) -> None:
        assert canonical_key("http://example.com:8080/x") == "http://example.com:8080/x"

    def test_drops_ref_and_source(self) -> None:
        assert canonical_key("https://example.com/?ref=nav&source=footer") == "https://example.com/"

    def test_rejects_non_http(self) -> None:
        with pytest.raises(ValueError):
            canonical_key("ftp://example.com/file")


class TestNormalizeUrl:
    def test_resolves_relative(self) -> None:
        assert normalize_url("/about#team", "https://example.com/x") == "https://example.com/about"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            normalize_url("not a url")

    def test_to_absolute_url_returns_none_on_failure(self) -> None:
        assert to_absolute_url("mailto:a@b.cz", "https://example.com/") is None
        assert to_absolute_url("", "https://example.com/") is None
        assert to_absolute_url("img/logo.png", "https://example.com/a/") == "https://example.com/a/img/logo.png"


class TestNormalizeDiscoveredUrl:
    @pytest.mark.parametrize(
        "href", ["", "#top", "mailto:x@example.com", "tel:+420123", "javascript:void(0)"]
    )
    def test_rejected_hrefs(self, href: str) -> None:
        assert normalize_discovered_url(href, "https://example.com/") is None

    def test_trailing_slash_and_tracking_removed(self) -> None:
        url = normalize_discovered_url("/services/?utm_campaign=spring", "https://example.com/")
        assert url == "https://example.com/services"


class TestOrigins:
    def test_same_origin_default_port(self) -> None:
        assert is_same_origin("https://example.com/a", "https://EXAMPLE.com:443/b") is True

    def test_different_scheme_is_different_origin(self) -> None:
        assert is_same_origin("http://example.com/", "https://example.com/") is False

    def test_origin_of(self) -> None:
        assert origin_of("https://Example.com/a/b?c=1") == "https://example.com"


class TestAssetsAndScores:
    def test_non_html_assets(self) -> None:
        assert looks_like_non_html_asset("https://example.com/brochure.PDF") is True
        assert looks_like_non_html_asset("https://example.com/about") is False

    def test_contact_outscores_deep_path(self) -> None:
        assert keyword_score("https://example.com/contact") > keyword_score("https://example.com/a/b/c")

    def test_shallow_path_bonus(self) -> None:
        assert keyword_score("https://example.com/") == 10
