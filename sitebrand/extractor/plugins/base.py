"""Per-site extractor plugin interface.

A plugin is resolved once per extraction from the root hostname (see
:class:`~sitebrand.extractor.plugins.ExtractorRegistry`) and may nudge link
priorities, section scores and brand assets for the site it recognises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from sitebrand.extractor.models import Link, LogoCandidate, ParsedPage, SectionCandidate


@dataclass
class ExtraAssets:
    logos: List[LogoCandidate] = field(default_factory=list)
    trust_evidence: List[str] = field(default_factory=list)


class ExtractorPlugin(ABC):
    """Abstract base class for a site-specific extraction plugin."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def match(self, hostname: str) -> bool:
        """Return ``True`` if this plugin handles *hostname*."""

    def adjust_link_priority(self, link: Link, base_score: float) -> float:
        return base_score

    def adjust_section_scores(
        self, candidate: SectionCandidate, scores: Dict[str, float]
    ) -> Dict[str, float]:
        return scores

    def extract_extra_assets(self, pages: List[ParsedPage]) -> ExtraAssets:
        return ExtraAssets()
