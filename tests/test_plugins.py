"""Tests for the extractor plugin registry."""

from __future__ import annotations

from sitebrand.extractor.crawl import score_link
from sitebrand.extractor.models import Link
from sitebrand.extractor.plugins import (
    DefaultExtractorPlugin,
    ExtractorPlugin,
    ExtractorRegistry,
    NordicBuildPlugin,
)


class _ExplodingPlugin(ExtractorPlugin):
    def match(self, hostname: str) -> bool:
        raise RuntimeError("boom")


class _ExamplePlugin(ExtractorPlugin):
    def match(self, hostname: str) -> bool:
        return hostname.endswith("example.org")


class TestExtractorRegistry:
    def test_default_registry_resolves_nordicbuild(self) -> None:
        registry = ExtractorRegistry()
        assert isinstance(registry.resolve("nordicbuild.example.com"), NordicBuildPlugin)
        assert isinstance(registry.resolve("www.nordicbuild.example.com"), NordicBuildPlugin)

    def test_unknown_host_falls_back_to_default(self) -> None:
        registry = ExtractorRegistry()
        assert isinstance(registry.resolve("acme.example"), DefaultExtractorPlugin)

    def test_failing_match_is_skipped(self) -> None:
        registry = ExtractorRegistry(plugins=[_ExplodingPlugin(), _ExamplePlugin()])
        assert isinstance(registry.resolve("shop.example.org"), _ExamplePlugin)

    def test_first_match_wins(self) -> None:
        first, second = _ExamplePlugin(), _ExamplePlugin()
        registry = ExtractorRegistry(plugins=[first, second])
        assert registry.resolve("example.org") is first

    def test_plugin_name_defaults_to_class_name(self) -> None:
        assert NordicBuildPlugin().name == "NordicBuildPlugin"


class TestLinkPriority:
    def test_context_and_intent_scores(self) -> None:
        link = Link(url="https://acme.example/contact", label="Contact", context="nav")
        assert score_link(link) == 2 + 4

    def test_nordicbuild_boosts_project_links(self) -> None:
        link = Link(url="https://nordicbuild.example.com/projects", label="Projects", context="footer")
        assert score_link(link, NordicBuildPlugin()) == score_link(link, DefaultExtractorPlugin()) + 2

    def test_default_plugin_changes_nothing(self) -> None:
        link = Link(url="https://acme.example/pricing", label=None, context="cta")
        assert score_link(link, DefaultExtractorPlugin()) == score_link(link)
