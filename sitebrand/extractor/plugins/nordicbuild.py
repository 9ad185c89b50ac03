"""Example site plugin for the NordicBuild construction company."""

from __future__ import annotations

import re
from typing import Dict, List

from sitebrand.extractor.models import Link, ParsedPage, SectionCandidate
from sitebrand.extractor.plugins.base import ExtraAssets, ExtractorPlugin

_HOSTNAME = "nordicbuild.example.com"

_PROJECT_LINK_RE = re.compile(r"(project|portfolio|reference|case-study|case study)")
_PROJECT_SECTION_RE = re.compile(r"(project|portfolio|reference|case study)")


class NordicBuildPlugin(ExtractorPlugin):
    """Pushes project and reference pages up for ``nordicbuild.example.com``."""

    def match(self, hostname: str) -> bool:
        return hostname == _HOSTNAME or hostname.endswith(f".{_HOSTNAME}")

    def adjust_link_priority(self, link: Link, base_score: float) -> float:
        hay = f"{link.url} {link.label or ''}".lower()
        if _PROJECT_LINK_RE.search(hay):
            return base_score + 2
        return base_score

    def adjust_section_scores(
        self, candidate: SectionCandidate, scores: Dict[str, float]
    ) -> Dict[str, float]:
        hay = " ".join(
            [candidate.title or "", candidate.summary or "", " ".join(candidate.bullets or [])]
        ).lower()
        if _PROJECT_SECTION_RE.search(hay):
            scores["PROJECTS"] = scores.get("PROJECTS", 0.0) + 1.5
        return scores

    def extract_extra_assets(self, pages: List[ParsedPage]) -> ExtraAssets:
        evidence = [
            f"NordicBuild plugin recognized branding on {page.url}"
            for page in pages
            if "nordic" in f"{page.title or ''} {page.description or ''}".lower()
        ]
        return ExtraAssets(trust_evidence=evidence)
