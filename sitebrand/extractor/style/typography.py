"""Font evidence from CSS declarations, font variables and font providers."""

from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from sitebrand.extractor.models import CrawlWarning, FontEvidence, ParsedPage, Typography
from sitebrand.extractor.style.cache import StylesheetCache
from sitebrand.extractor.url_utils import is_same_origin

GENERIC_FONTS = frozenset(
    {
        "serif",
        "sans-serif",
        "monospace",
        "system-ui",
        "ui-sans-serif",
        "ui-serif",
        "ui-monospace",
        "cursive",
        "fantasy",
    }
)

FONT_VAR_RE = re.compile(r"(--font[\w-]*)\s*:\s*([^;]+);", re.IGNORECASE)
FONT_FAMILY_RE = re.compile(r"font-family\s*:\s*([^;}{]+);", re.IGNORECASE)
_TYPEKIT_RE = re.compile(r"typekit|adobe\.com", re.IGNORECASE)

TYPEKIT_PLACEHOLDER = "Typekit Font"
MAX_EVIDENCE = 18


def _clean_font_name(font: str) -> str:
    return re.sub(r"[\"']", "", str(font or "")).strip()


def _is_generic(name: str) -> bool:
    return name.lower() in GENERIC_FONTS


def split_font_families(value: Optional[str]) -> List[str]:
    """Split a ``font-family`` value, dropping quotes and generic families."""
    names = (_clean_font_name(item) for item in str(value or "").split(","))
    return [name for name in names if name and not _is_generic(name)]


def parse_google_fonts_from_url(url: str) -> List[str]:
    """Family names from a ``fonts.googleapis.com`` stylesheet URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return []
    if "fonts.googleapis.com" not in (parts.hostname or ""):
        return []

    # parse_qs already decodes "+" to a space.
    families = parse_qs(parts.query).get("family")
    if not families:
        return []
    chunks = (chunk.split(":")[0].strip() for chunk in families[0].split("|"))
    return [chunk for chunk in chunks if chunk]


class _FontCollector:
    def __init__(self) -> None:
        self.by_name: Dict[str, FontEvidence] = {}

    def add(self, font: str, source: str) -> None:
        name = _clean_font_name(font)
        if not name or _is_generic(name):
            return
        entry = self.by_name.setdefault(name, FontEvidence(font=name))
        entry.count += 1
        if source not in entry.sources:
            entry.sources.append(source)

    def ranked(self) -> List[FontEvidence]:
        entries = [
            FontEvidence(font=entry.font, count=entry.count, sources=entry.sources[:8])
            for entry in self.by_name.values()
        ]
        entries.sort(key=lambda entry: entry.count, reverse=True)
        return entries[:MAX_EVIDENCE]


def parse_fonts_from_css(css_text: str, source: str, collector: _FontCollector) -> None:
    for match in FONT_VAR_RE.finditer(css_text):
        variable = match.group(1).strip()
        for family in split_font_families(match.group(2)):
            collector.add(family, f"{source}:{variable}")
    for match in FONT_FAMILY_RE.finditer(css_text):
        for family in split_font_families(match.group(1)):
            collector.add(family, source)


def infer_typography(
    pages: List[ParsedPage],
    fetch_client,
    warnings: List[CrawlWarning],
    origin: str,
    css_cache: Optional[StylesheetCache] = None,
) -> Typography:
    """Rank fonts by occurrence; the top two are primary, the next four secondary."""
    cache = css_cache or StylesheetCache(fetch_client)
    collector = _FontCollector()

    for page in pages:
        for css_text in page.style_signals.inline_styles:
            parse_fonts_from_css(css_text, f"inline-style:{page.url}", collector)
        for style_attr in page.style_signals.inline_style_attributes:
            parse_fonts_from_css(style_attr, f"inline-attr:{page.url}", collector)

        for stylesheet_url in page.style_signals.stylesheet_links:
            for family in parse_google_fonts_from_url(stylesheet_url):
                collector.add(family, f"provider:{stylesheet_url}")
            if _TYPEKIT_RE.search(stylesheet_url):
                collector.add(TYPEKIT_PLACEHOLDER, f"provider:{stylesheet_url}")

            if not is_same_origin(stylesheet_url, origin):
                continue
            css_text = cache.get(stylesheet_url, warnings)
            if css_text:
                parse_fonts_from_css(css_text, f"stylesheet:{stylesheet_url}", collector)

    evidence = collector.ranked()
    primary = [entry.font for entry in evidence[:2]]
    secondary = [entry.font for entry in evidence[2:6] if entry.font not in primary]
    return Typography(primary_fonts=primary, secondary_fonts=secondary, evidence=evidence)
