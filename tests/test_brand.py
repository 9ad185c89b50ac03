"""Tests for brand name ranking and brand asset aggregation."""

from __future__ import annotations

from sitebrand.extractor.brand import (
    clean_brand_candidate,
    domain_token,
    extract_brand,
    normalize_phone,
    pick_tagline,
    rank_brand_candidates,
)
from sitebrand.extractor.models import BrandCandidate
from sitebrand.extractor.parser import parse_html_page
from sitebrand.extractor.plugins import NordicBuildPlugin

_HOME = """\
<html>
<head>
  <title>Acme | Handmade furniture</title>
  <meta property="og:site_name" content="Acme">
  <meta name="description" content="Handmade oak furniture from Brno.">
  <meta property="og:image" content="https://acme.example/og.png">
</head>
<body>
  <header><img src="/logo.png" alt="Acme logo"></header>
  <h1>Furniture for decades</h1>
  <p>Contact sales@acme.example or call +420 777 123 456.</p>
  <a href="https://facebook.com/acme">Facebook</a>
  <p>Featured in the national press.</p>
</body>
</html>
"""

_ABOUT = """\
<html>
<head><title>About | Acme</title></head>
<body>
  <h1>Our workshop</h1>
  <p>Email SALES@acme.example, or try info@acme.example.</p>
  <a href="https://linkedin.com/company/acme">LinkedIn</a>
</body>
</html>
"""


def _pages():
    return [
        parse_html_page(_HOME, "https://acme.example/"),
        parse_html_page(_ABOUT, "https://acme.example/about"),
    ]


class TestHelpers:
    def test_clean_brand_candidate_strips_noise(self) -> None:
        assert clean_brand_candidate("Acme Official Store") == "Acme"
        assert clean_brand_candidate("Acme - Best furniture") == "Acme"
        assert clean_brand_candidate("Acme chairs by John Smith") == "Acme chairs"
        assert clean_brand_candidate("") == ""

    def test_domain_token(self) -> None:
        assert domain_token("https://www.acme.example/about") == "acme"

    def test_normalize_phone(self) -> None:
        assert normalize_phone("+420 777 123 456") == "+420777123456"
        assert normalize_phone("777 123 456") == "777 123 456"
        assert normalize_phone("123") is None


class TestRanking:
    def test_groups_by_normalised_key(self) -> None:
        ranked = rank_brand_candidates(
            [
                BrandCandidate(value="acme", score=1.0, source="domain", reason="domain token"),
                BrandCandidate(value="Acme", score=1.0, source="title_chunk", reason="title chunk"),
                BrandCandidate(value="Other Co", score=1.5, source="title_chunk", reason="title chunk"),
            ]
        )
        assert ranked[0].value == "Acme"
        assert ranked[0].score == 2.0
        assert ranked[0].count == 2
        assert ranked[1].value == "Other Co"

    def test_tie_breaks_on_count_then_length(self) -> None:
        ranked = rank_brand_candidates(
            [
                BrandCandidate(value="Longer Name", score=1.0, source="a", reason="a"),
                BrandCandidate(value="Short", score=1.0, source="a", reason="a"),
            ]
        )
        assert [item.value for item in ranked] == ["Short", "Longer Name"]


class TestExtractBrand:
    def test_canonical_name_and_aliases(self) -> None:
        brand = extract_brand(_pages())
        assert brand.canonical_name == "Acme"
        assert brand.name == "Acme"
        assert "Acme" not in brand.aliases
        assert brand.name_candidates[0].value == "Acme"

    def test_contacts_are_deduped_and_normalised(self) -> None:
        brand = extract_brand(_pages())
        assert brand.contact.emails == ["sales@acme.example", "info@acme.example"]
        assert brand.contact.phones == ["+420777123456"]

    def test_logos_and_images(self) -> None:
        brand = extract_brand(_pages())
        assert brand.primary_logo == "https://acme.example/logo.png"
        assert brand.images.og_image == "https://acme.example/og.png"
        assert any(logo.type == "og-image" for logo in brand.logos)

    def test_social_and_trust(self) -> None:
        brand = extract_brand(_pages())
        assert brand.social.facebook == "https://facebook.com/acme"
        assert brand.social.linkedin == "https://linkedin.com/company/acme"
        assert brand.trust_signals.press is True
        assert brand.trust_signals.evidence == ["press token on https://acme.example/"]

    def test_plugin_trust_evidence(self) -> None:
        html = "<html><head><title>Nordic Build | Homes</title></head><body></body></html>"
        page = parse_html_page(html, "https://nordicbuild.example.com/")
        brand = extract_brand([page], NordicBuildPlugin())
        assert brand.trust_signals.evidence == [
            "NordicBuild plugin recognized branding on https://nordicbuild.example.com/"
        ]

    def test_no_pages(self) -> None:
        brand = extract_brand([])
        assert brand.canonical_name is None
        assert brand.logos == []
        assert brand.primary_logo is None


class TestTagline:
    def test_most_frequent_candidate(self) -> None:
        pages = _pages()
        assert pick_tagline(pages) == "Furniture for decades"
