"""Brand resolver: name ranking plus logos, contacts, social and trust signals."""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from sitebrand.extractor.models import (
    BrandCandidate,
    BrandImages,
    BrandProfile,
    Contacts,
    LogoCandidate,
    ParsedPage,
    RankedBrandName,
    SocialLinks,
    TrustSignals,
)
from sitebrand.extractor.parser import clean_text, pick_site_name_candidate, split_title_chunks, unique
from sitebrand.extractor.plugins import ExtractorPlugin

BRAND_NOISE_RE = re.compile(
    r"\b(official|eshop|e-shop|shop|store|online|webshop|skateshop|boutique)\b", re.IGNORECASE
)
PRICE_NOISE_RE = re.compile(r"\b(za|od|from)\s*\d+[,.]?\d*\s*(k[čc]|czk|eur|usd)?\b", re.IGNORECASE)
BY_SUFFIX_RE = re.compile(r"\s+by\s+[^|–—-]+$", re.IGNORECASE)
PRODUCT_TITLE_HINT_RE = re.compile(
    r"\b(kc|k[čc]|usd|eur|buy|add to cart|skate deska|trucky|kole[čc]ka|ložiska)\b", re.IGNORECASE
)
_CHUNK_SPLIT_RE = re.compile(r"\||–|—|-")

MIN_CANDIDATE_SCORE = 0.2

# (source, home score, other-page score, reason)
_SIGNAL_SCORES = {
    "site_name_candidate": (1.3, 1.0, "site name candidate"),
    "title_chunk": (1.1, 0.75, "title chunk"),
    "header_text": (0.95, 0.65, "header text"),
    "meta_og_site_name": (1.35, 1.15, "og:site_name"),
    "structured_data_name": (1.45, 1.2, "json-ld name"),
    "structured_data_legal_name": (1.5, 1.25, "json-ld legalName"),
}
DOMAIN_TOKEN_SCORE = 1.4

_TRUST_KINDS = ("partners", "testimonials", "awards", "press")
_SOCIAL_PLATFORMS = ("instagram", "linkedin", "facebook", "youtube", "x", "tiktok")


def _normalize_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(value or "").lower())


def _most_frequent(values: List[str]) -> Optional[str]:
    counts = Counter(value for value in values if value)
    return counts.most_common(1)[0][0] if counts else None


def normalize_phone(value: str) -> Optional[str]:
    """Collapse a validated phone candidate into a display form.

    International numbers (leading ``+``, 8-15 digits) become ``+<digits>``;
    anything else is kept as cleaned text when at least 8 characters long.
    """
    cleaned = clean_text(value)
    if not cleaned:
        return None
    digits = re.sub(r"\D", "", cleaned)
    if cleaned.startswith("+") and 8 <= len(digits) <= 15:
        return f"+{digits}"
    return cleaned if len(cleaned) >= 8 else None


def clean_brand_candidate(value: Optional[str]) -> str:
    """Strip shop noise, prices and ``by X`` suffixes; keep the first chunk."""
    out = clean_text(value)
    if not out:
        return ""

    chunks = [chunk for chunk in (clean_text(item) for item in _CHUNK_SPLIT_RE.split(out)) if chunk]
    if len(chunks) > 1:
        out = chunks[0]

    out = PRICE_NOISE_RE.sub(" ", out)
    out = BRAND_NOISE_RE.sub(" ", out)
    out = BY_SUFFIX_RE.sub(" ", out)
    return clean_text(out)


def domain_token(url: str) -> str:
    """First hostname label (minus ``www.``), cleaned like a brand candidate."""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return clean_brand_candidate(host.split(".")[0])


def _is_root_page(page: ParsedPage) -> bool:
    try:
        return urlsplit(page.url).path in ("", "/")
    except ValueError:
        return False


def collect_brand_candidates(pages: List[ParsedPage]) -> List[BrandCandidate]:
    """Harvest scored brand-name signals from every page.

    Each value is cleaned and adjusted: product-title hints cost 0.6, long
    strings with digits cost 0.3, containing the domain token earns 0.4 and
    coming from the home page earns 0.2.  Anything at or below 0.2 is dropped.
    """
    items: List[BrandCandidate] = []
    root_page = next((page for page in pages if _is_root_page(page)), None)

    hint_source = root_page.url if root_page else (pages[0].url if pages else "")
    domain_hint = domain_token(hint_source)
    domain_key = _normalize_key(domain_hint)
    if domain_hint:
        items.append(
            BrandCandidate(value=domain_hint, score=DOMAIN_TOKEN_SCORE, source="domain", reason="domain token")
        )

    for page in pages:
        is_home = root_page is not None and root_page.url == page.url

        def push(value: Optional[str], source: str) -> None:
            cleaned = clean_brand_candidate(value)
            if not cleaned or not 2 <= len(cleaned) <= 90:
                return

            home_score, other_score, reason = _SIGNAL_SCORES[source]
            score = home_score if is_home else other_score
            if PRODUCT_TITLE_HINT_RE.search(cleaned):
                score -= 0.6
            if re.search(r"\d", cleaned) and len(cleaned) > 18:
                score -= 0.3
            if domain_key and domain_key in _normalize_key(cleaned):
                score += 0.4
            if is_home:
                score += 0.2
            if score <= MIN_CANDIDATE_SCORE:
                return

            items.append(
                BrandCandidate(
                    value=cleaned, score=round(score, 3), source=source, reason=reason, page_url=page.url
                )
            )

        push(pick_site_name_candidate(page), "site_name_candidate")
        for chunk in split_title_chunks(page.title):
            push(chunk, "title_chunk")
        push(page.header_text, "header_text")
        push(page.meta.og_site_name, "meta_og_site_name")
        for name in page.structured_data.names:
            push(name, "structured_data_name")
        for name in page.structured_data.legal_names:
            push(name, "structured_data_legal_name")

    return items


def rank_brand_candidates(candidates: List[BrandCandidate]) -> List[RankedBrandName]:
    """Group candidates by normalised key and rank the groups.

    The group's display value is its highest-scoring variant; at equal score a
    variant with capitals replaces an all-lowercase one.  Groups sort by summed
    score, then occurrence count, then shorter value.
    """
    groups: Dict[str, dict] = {}
    for candidate in candidates:
        key = _normalize_key(candidate.value)
        if not key:
            continue
        group = groups.setdefault(
            key,
            {
                "value": candidate.value,
                "score": 0.0,
                "count": 0,
                "best": -1.0,
                "reasons": {},
                "sources": {},
                "page_urls": {},
            },
        )
        group["score"] += candidate.score
        group["count"] += 1
        group["reasons"][candidate.reason or "signal"] = None
        group["sources"][candidate.source or "unknown"] = None
        if candidate.page_url:
            group["page_urls"][candidate.page_url] = None

        if candidate.score > group["best"]:
            group["value"] = candidate.value
            group["best"] = candidate.score
        elif (
            candidate.score == group["best"]
            and re.fullmatch(r"[a-z0-9\s]+", group["value"])
            and re.search(r"[A-Z]", candidate.value)
        ):
            group["value"] = candidate.value

    ranked = [
        RankedBrandName(
            value=group["value"],
            score=round(group["score"], 3),
            count=group["count"],
            reason=", ".join(group["reasons"]),
            sources=list(group["sources"]),
            page_urls=list(group["page_urls"])[:8],
        )
        for group in groups.values()
    ]
    ranked.sort(key=lambda item: (-item.score, -item.count, len(item.value)))
    return ranked


def pick_tagline(pages: List[ParsedPage]) -> Optional[str]:
    """Most frequent first-h1 or meta description of a plausible length."""
    candidates = []
    for page in pages:
        if page.headings.h1:
            heading = clean_text(page.headings.h1[0])
            if 5 <= len(heading) <= 120 and not PRODUCT_TITLE_HINT_RE.search(heading):
                candidates.append(heading)
        if page.description:
            description = clean_text(page.description)
            if 8 <= len(description) <= 160:
                candidates.append(description)
    return _most_frequent(candidates)


def extract_brand(pages: List[ParsedPage], plugin: Optional[ExtractorPlugin] = None) -> BrandProfile:
    logos: List[LogoCandidate] = []
    favicons: List[str] = []
    og_images: List[str] = []
    twitter_images: List[str] = []
    emails: List[str] = []
    phones: List[Optional[str]] = []
    addresses: List[str] = []
    social = SocialLinks()
    trust = TrustSignals()

    for page in pages:
        logos.extend(page.logo_candidates)
        logos.extend(LogoCandidate(url=logo, type="img", confidence=0.9) for logo in page.structured_data.logos)
        favicons.extend(page.favicons)

        if page.meta.og_image:
            og_images.append(page.meta.og_image)
            logos.append(LogoCandidate(url=page.meta.og_image, type="og-image", confidence=0.5))
        if page.meta.twitter_image:
            twitter_images.append(page.meta.twitter_image)

        emails.extend(email.lower() for email in page.contacts.emails if email)
        phones.extend(normalize_phone(phone) for phone in page.contacts.phones)
        addresses.extend(page.contacts.address_candidates)

        for platform in _SOCIAL_PLATFORMS:
            if getattr(social, platform) is None and getattr(page.social_links, platform):
                setattr(social, platform, getattr(page.social_links, platform))

        for kind in _TRUST_KINDS:
            if getattr(page.trust_tokens, kind):
                setattr(trust, kind, True)
                trust.evidence.append(f"{kind} token on {page.url}")

    if plugin is not None:
        extra = plugin.extract_extra_assets(pages)
        logos.extend(logo for logo in extra.logos if logo.url)
        trust.evidence.extend(item for item in extra.trust_evidence if item)

    ranked = rank_brand_candidates(collect_brand_candidates(pages))
    canonical_name = ranked[0].value if ranked else None

    deduped_logos: List[LogoCandidate] = []
    for logo in logos:
        if logo not in deduped_logos:
            deduped_logos.append(logo)
    deduped_logos = deduped_logos[:18]
    # max() keeps the first of equally confident logos.
    primary = max(deduped_logos, key=lambda logo: logo.confidence, default=None)

    trust.evidence = unique(trust.evidence)[:18]

    return BrandProfile(
        canonical_name=canonical_name,
        name=canonical_name,
        aliases=[item.value for item in ranked[1:6]],
        name_candidates=ranked[:12],
        tagline=pick_tagline(pages),
        logos=deduped_logos[:12],
        primary_logo=primary.url if primary else None,
        favicons=unique(favicons)[:8],
        images=BrandImages(og_image=_most_frequent(og_images), twitter_image=_most_frequent(twitter_images)),
        social=social,
        contact=Contacts(
            emails=unique(emails)[:12],
            phones=unique(phones)[:12],
            address_candidates=unique(addresses)[:8],
        ),
        trust_signals=trust,
    )
