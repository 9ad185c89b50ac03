"""Tests for page typing and website structure."""

from __future__ import annotations

from dataclasses import replace

import pytest

from sitebrand.extractor.ia_planner import (
    build_website_structure,
    classify_by_content,
    classify_by_path,
    infer_page_type,
)
from sitebrand.extractor.parser import parse_html_page


def _page(url: str, title: str = "", h1: str = "", description: str = ""):
    html = (
        f"<html><head><title>{title}</title>"
        f'<meta name="description" content="{description}"></head>'
        f"<body><h1>{h1}</h1></body></html>"
    )
    return parse_html_page(html, url)


class TestClassifyByPath:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://example.com/", "home"),
            ("https://example.com/cart", "checkout"),
            ("https://checkout.example.com/pay", "checkout"),
            ("https://example.com/my-account/orders", "account"),
            ("https://example.com/privacy-policy", "legal"),
            ("https://example.com/kontakt", "contact"),
            ("https://example.com/o-nas", "about"),
            ("https://example.com/blog/spring-news", "blog"),
            ("https://example.com/products/red-chair", "product"),
            ("https://example.com/collections/chairs", "category"),
            ("https://example.com/chairs", "category"),
            ("https://example.com/chairs/red-chair", "product"),
            ("https://example.com/2024", "other"),
        ],
    )
    def test_paths(self, url: str, expected: str) -> None:
        assert classify_by_path(url) == expected


class TestClassifyByContent:
    def test_contact_title(self) -> None:
        assert classify_by_content(_page("https://example.com/x", title="Get in touch")) == "contact"

    def test_nothing_to_go_on(self) -> None:
        assert classify_by_content(_page("https://example.com/x")) is None


class TestInferPageType:
    def test_product_path_beats_about_content(self) -> None:
        page = _page("https://example.com/products/oak-table", title="Oak table | About our craft")
        assert infer_page_type(page) == "product"

    def test_content_confirms_legal(self) -> None:
        page = _page("https://example.com/info/page", title="Privacy notice")
        assert infer_page_type(page) == "legal"

    def test_content_fills_in_for_other_path(self) -> None:
        page = _page("https://example.com/2024", title="Our story")
        assert infer_page_type(page) == "about"


class TestBuildWebsiteStructure:
    def test_buckets_and_key_pages(self) -> None:
        pages = [
            replace(_page("https://example.com/", title="Home"), page_type="home"),
            replace(_page("https://example.com/about", title="About"), page_type="about"),
        ]
        discovered = [
            "https://example.com/",
            "https://example.com/contact",
            "https://example.com/terms",
            "https://example.com/products/a",
            "https://example.com/products/b",
            "https://example.com/products/c",
        ]
        structure = build_website_structure("https://example.com/", pages, discovered)

        assert structure.mode == "template_samples"
        assert structure.discovered_url_count == 6
        assert structure.page_types[0].type == "product"
        assert structure.page_types[0].count == 3
        assert structure.key_pages.home == "https://example.com/"
        assert structure.key_pages.about == "https://example.com/about"
        assert structure.key_pages.contact == "https://example.com/contact"
        assert structure.key_pages.legal == ["https://example.com/terms"]

    def test_marketing_only_samples_two_per_type(self) -> None:
        discovered = [f"https://example.com/products/item-{index}" for index in range(5)]
        structure = build_website_structure(
            "https://example.com/", [], discovered, site_map_mode="marketing_only"
        )
        products = [url for url in structure.sample_urls if "/products/" in url]
        assert len(products) == 2
        assert structure.key_pages.home == "https://example.com/"
