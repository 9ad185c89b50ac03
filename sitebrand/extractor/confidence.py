"""Per-field and overall confidence for an extraction."""

from __future__ import annotations

from dataclasses import fields as dataclass_fields
from typing import Dict, List

from sitebrand.extractor.models import (
    BrandProfile,
    Confidence,
    Content,
    CrawlSummary,
    CrawlWarning,
    Style,
    WebsiteStructure,
)

FIELD_WEIGHTS: Dict[str, float] = {
    "brand.name": 1.35,
    "brand.tagline": 0.85,
    "brand.logos": 0.8,
    "brand.social": 0.7,
    "contact.emails": 0.85,
    "contact.phones": 0.75,
    "style.colors": 0.9,
    "style.typography": 0.9,
    "content.pages": 1.0,
    "content.sections": 1.35,
    "website.structure": 1.25,
    "diagnostics.cleanliness": 1.0,
}

MAX_CONSENSUS_BOOST = 0.12


def _bool_score(value: bool, yes: float = 0.9, no: float = 0.2) -> float:
    return yes if value else no


def _capped_ratio(length: int, good: int = 1) -> float:
    """0.1 for nothing, otherwise ``0.3 + 0.7 * length / good`` capped at 1."""
    if length <= 0:
        return 0.1
    return min(1.0, (length / max(1, good)) * 0.7 + 0.3)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _explain(key: str, score: float, candidate_count: int, page_type_count: int, warning_count: int) -> str:
    if score >= 0.85:
        reasons = ["high signal quality"]
    elif score >= 0.65:
        reasons = ["moderate evidence"]
    else:
        reasons = ["limited evidence"]

    if key == "brand.name":
        reasons.append(f"name candidates: {candidate_count}")
    elif key == "website.structure":
        reasons.append(f"page types detected: {page_type_count}")
    elif key == "diagnostics.cleanliness":
        reasons.append(f"warnings: {warning_count}")
    return "; ".join(reasons)


def calculate_confidence(
    brand: BrandProfile,
    style: Style,
    content: Content,
    crawl: CrawlSummary,
    warnings: List[CrawlWarning],
    website: WebsiteStructure,
) -> Confidence:
    """Score each output field in ``[0, 1]`` and combine them by weight.

    ``brand.name`` gains up to 0.12 when the top name candidate clearly
    outscores the runner-up.  Every number is rounded to three decimals.
    """
    name_candidates = brand.name_candidates
    page_types = website.page_types if website else []
    social_platforms = [item.name for item in dataclass_fields(brand.social)]
    social_found = sum(1 for name in social_platforms if getattr(brand.social, name))

    scores: Dict[str, float] = {
        "brand.name": _bool_score(bool(brand.canonical_name or brand.name), 0.92, 0.2),
        "brand.tagline": _bool_score(bool(brand.tagline), 0.85, 0.25),
        "brand.logos": _capped_ratio(len(brand.logos), 2),
        "brand.social": _capped_ratio(social_found, max(1, len(social_platforms) // 2)),
        "contact.emails": _capped_ratio(len(brand.contact.emails), 1),
        "contact.phones": _capped_ratio(len(brand.contact.phones), 1),
        "style.colors": _bool_score(bool(style.colors.evidence), 0.9, 0.25),
        "style.typography": _bool_score(bool(style.typography.evidence), 0.85, 0.2),
        "content.pages": _capped_ratio(
            len(content.pages), max(1, min(4, crawl.pages_requested or 1))
        ),
        "content.sections": _capped_ratio(len(content.sections), 4),
        "website.structure": _bool_score(bool(page_types), 0.9, 0.25),
        "diagnostics.cleanliness": max(0.15, 1 - min(0.85, len(warnings) * 0.06)),
    }

    if len(name_candidates) >= 2:
        spread = max(0.0, name_candidates[0].score - name_candidates[1].score)
        boost = min(MAX_CONSENSUS_BOOST, spread / 10)
        scores["brand.name"] = max(0.2, min(1.0, scores["brand.name"] + boost))

    weighted_total = 0.0
    weight_total = 0.0
    rounded_fields: Dict[str, float] = {}
    explain: Dict[str, str] = {}
    for key, value in scores.items():
        rounded = round(_clamp01(value), 3)
        weight = FIELD_WEIGHTS.get(key, 1.0)
        weighted_total += rounded * weight
        weight_total += weight
        rounded_fields[key] = rounded
        explain[key] = _explain(key, rounded, len(name_candidates), len(page_types), len(warnings))

    overall = weighted_total / weight_total if weight_total > 0 else 0.2
    core = [
        rounded_fields["brand.name"],
        rounded_fields["website.structure"],
        rounded_fields["content.sections"],
    ]

    return Confidence(
        overall=round(_clamp01(overall), 3),
        fields=rounded_fields,
        explain=explain,
        extraction_confidence=round(sum(core) / len(core), 3),
    )
