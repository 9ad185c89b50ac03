"""Section classifier: scores DOM blocks against marketing archetypes."""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Tuple

from sitebrand.extractor.models import NormalizedSection, ParsedPage, SectionCandidate, SectionEvidence
from sitebrand.extractor.plugins import ExtractorPlugin

# Order is the tie-break and the output order.
SECTION_TYPES = (
    "HERO",
    "FEATURES",
    "SERVICES",
    "PROJECTS",
    "TESTIMONIALS",
    "TEAM",
    "FAQ",
    "CONTACT",
    "FOOTER",
)

MIN_WINNING_SCORE = 1.2
FULL_CONFIDENCE_SCORE = 4.2

_Rule = Callable[[str, SectionCandidate], bool]


def _keywords(pattern: str) -> _Rule:
    compiled = re.compile(pattern)
    return lambda text, candidate: bool(compiled.search(text))


def _any(*rules: _Rule) -> _Rule:
    return lambda text, candidate: any(rule(text, candidate) for rule in rules)


# (section type, predicate over (lower-cased text, candidate), weight)
SCORING_RULES: Tuple[Tuple[str, _Rule, float], ...] = (
    ("HERO", _keywords(r"hero|welcome|discover|premium|trusted"), 1.2),
    ("FEATURES", _keywords(r"feature|benefit|why us|why choose|advantages"), 2.0),
    ("FEATURES", lambda text, candidate: len(candidate.bullets or []) >= 3, 1.0),
    ("SERVICES", _keywords(r"services|solutions|what we do|expertise|offer"), 2.2),
    ("PROJECTS", _keywords(r"projects|portfolio|references|case study|developments"), 2.4),
    (
        "TESTIMONIALS",
        _any(
            _keywords(r"testimonial|what clients say|reviews"),
            lambda text, candidate: candidate.features.has_quote or candidate.features.has_stars,
        ),
        2.1,
    ),
    (
        "TEAM",
        _any(
            _keywords(r"team|our people|leadership|founder"),
            lambda text, candidate: candidate.features.has_people,
        ),
        2.0,
    ),
    (
        "FAQ",
        _any(
            _keywords(r"faq|frequently asked|questions"),
            lambda text, candidate: candidate.features.question_count >= 2,
        ),
        2.0,
    ),
    (
        "CONTACT",
        _any(
            _keywords(r"contact|get in touch|reach us|location|address|phone|email"),
            lambda text, candidate: candidate.features.has_form or candidate.features.has_map,
        ),
        2.4,
    ),
    (
        "FOOTER",
        _any(
            lambda text, candidate: candidate.source_tag == "footer",
            lambda text, candidate: candidate.features.legal_link_count >= 1,
            _keywords(r"privacy|terms|cookies"),
        ),
        2.6,
    ),
)

HERO_POSITION_WEIGHT = 1.8


def _candidate_text(candidate: SectionCandidate) -> str:
    bullets = " ".join(candidate.bullets or [])
    return f"{candidate.title or ''} {candidate.summary or ''} {bullets}".lower()


def score_section_candidate(
    candidate: SectionCandidate,
    page: ParsedPage,
    index: int,
    plugin: Optional[ExtractorPlugin] = None,
) -> Dict[str, float]:
    """Return a score per section type for one candidate.

    The first two blocks of the root page, and blocks titled with one of the
    page's h1 headings, get the hero position boost.
    """
    scores = {section_type: 0.0 for section_type in SECTION_TYPES}
    text = _candidate_text(candidate)

    if (index <= 1 and page.depth == 0) or (candidate.title or "") in page.headings.h1:
        scores["HERO"] += HERO_POSITION_WEIGHT

    for section_type, predicate, weight in SCORING_RULES:
        if predicate(text, candidate):
            scores[section_type] += weight

    if plugin is not None:
        scores = plugin.adjust_section_scores(candidate, dict(scores)) or scores
    return scores


def _winner(scores: Dict[str, float]) -> Tuple[str, float]:
    best_type, best_score = SECTION_TYPES[0], scores.get(SECTION_TYPES[0], 0.0)
    for section_type in SECTION_TYPES[1:]:
        score = scores.get(section_type, 0.0)
        if score > best_score:
            best_type, best_score = section_type, score
    return best_type, best_score


def normalize_sections(
    pages: List[ParsedPage], plugin: Optional[ExtractorPlugin] = None
) -> List[NormalizedSection]:
    """Classify every candidate and keep the most confident block per type.

    A later block replaces the current holder of its type only when strictly
    more confident.
    """
    best: Dict[str, NormalizedSection] = {}

    for page in pages:
        for index, candidate in enumerate(page.section_candidates):
            section_type, score = _winner(score_section_candidate(candidate, page, index, plugin))
            if score < MIN_WINNING_SCORE:
                continue

            confidence = round(max(0.0, min(1.0, score / FULL_CONFIDENCE_SCORE)), 3)
            section = NormalizedSection(
                type=section_type,
                title=candidate.title or section_type,
                summary=candidate.summary or "",
                bullets=list(candidate.bullets) if candidate.bullets else None,
                ctas=list(candidate.ctas),
                evidence=SectionEvidence(
                    source_page_url=candidate.source_page_url,
                    heading_snippet=(candidate.title or candidate.summary or "")[:120],
                ),
                confidence=confidence,
            )

            current = best.get(section_type)
            if current is None or section.confidence > current.confidence:
                best[section_type] = section

    return [best[section_type] for section_type in SECTION_TYPES if section_type in best]
