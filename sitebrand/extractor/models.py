"""Data models for the extraction pipeline.

Transient crawl-time records (frontier entries, fetch results) and the
aggregate :class:`ExtractionResult` are plain dataclasses.  Parsed pages are
frozen: they are created once per successful HTML response and only ever
copied (via :func:`dataclasses.replace`) when the crawler attaches its
page type and depth.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Crawl-time records
# ---------------------------------------------------------------------------

@dataclass
class CrawlWarning:
    """A recoverable problem reported to the caller."""

    code: str
    message: str
    url: Optional[str] = None


@dataclass
class FrontierEntry:
    """One URL waiting in the crawl frontier."""

    url: str
    depth: int
    score: float
    insert_order: int

    @property
    def sort_key(self) -> tuple[int, float, int]:
        """Ascending depth, then descending score, then FIFO."""
        return (self.depth, -self.score, self.insert_order)


@dataclass
class FetchResult:
    """Outcome of :meth:`FetchClient.fetch_url`. It is returned, not raised."""

    ok: bool
    status: int
    url: str
    final_url: str
    redirected: bool = False
    content_type: Optional[str] = None
    bytes: int = 0
    duration_ms: int = 0
    retries: int = 0
    text: str = ""
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    warnings: List[CrawlWarning] = field(default_factory=list)


@dataclass
class PageReport:
    """One entry per fetch outcome; appended once and never edited afterwards."""

    url: str
    status: int
    content_type: Optional[str]
    bytes: int
    duration_ms: int
    retries: int
    notes: List[str] = field(default_factory=list)
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class FetchInfo:
    status: int
    duration_ms: int
    content_type: Optional[str]
    bytes: int
    retries: int


@dataclass
class RobotsRules:
    """Rules for the ``*`` user agent.  Empty rules allow everything."""

    allow: List[str] = field(default_factory=list)
    disallow: List[str] = field(default_factory=list)
    crawl_delay_sec: Optional[float] = None
    sitemaps: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsed page
# ---------------------------------------------------------------------------

@dataclass
class Headings:
    h1: List[str] = field(default_factory=list)
    h2: List[str] = field(default_factory=list)
    h3: List[str] = field(default_factory=list)


@dataclass
class Link:
    """A link found in a page, with the region it was found in."""

    url: str
    label: Optional[str]
    context: str  # nav | footer | cta


@dataclass
class Cta:
    label: str
    url: str


@dataclass
class SectionFeatures:
    has_form: bool = False
    has_map: bool = False
    has_quote: bool = False
    has_stars: bool = False
    has_people: bool = False
    legal_link_count: int = 0
    question_count: int = 0
    text: str = ""


@dataclass
class SectionCandidate:
    """A DOM block considered for marketing-section classification."""

    source_page_url: str
    title: Optional[str] = None
    summary: Optional[str] = None
    bullets: Optional[List[str]] = None
    ctas: List[Cta] = field(default_factory=list)
    source_tag: Optional[str] = None
    features: SectionFeatures = field(default_factory=SectionFeatures)


@dataclass
class PageMeta:
    og_site_name: Optional[str] = None
    og_image: Optional[str] = None
    twitter_image: Optional[str] = None
    theme_color: Optional[str] = None


@dataclass
class StructuredData:
    """Organisation-like values harvested from JSON-LD blocks."""

    names: List[str] = field(default_factory=list)
    legal_names: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    logos: List[str] = field(default_factory=list)


@dataclass
class LogoCandidate:
    url: str
    type: str
    confidence: float


@dataclass
class SocialLinks:
    instagram: Optional[str] = None
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    youtube: Optional[str] = None
    x: Optional[str] = None
    tiktok: Optional[str] = None


@dataclass
class Contacts:
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    address_candidates: List[str] = field(default_factory=list)


@dataclass
class StyleSignals:
    inline_styles: List[str] = field(default_factory=list)
    stylesheet_links: List[str] = field(default_factory=list)
    inline_style_attributes: List[str] = field(default_factory=list)


@dataclass
class TrustTokens:
    partners: bool = False
    testimonials: bool = False
    awards: bool = False
    press: bool = False


@dataclass(frozen=True)
class ParsedPage:
    """Everything the parser pulls out of one HTML document."""

    url: str
    html_size: int
    title: Optional[str]
    description: Optional[str]
    headings: Headings
    text_samples: List[str]
    links: List[Link]
    section_candidates: List[SectionCandidate]
    meta: PageMeta
    structured_data: StructuredData
    favicons: List[str]
    logo_candidates: List[LogoCandidate]
    social_links: SocialLinks
    contacts: Contacts
    style_signals: StyleSignals
    raw_text: str
    trust_tokens: TrustTokens
    header_text: Optional[str] = None
    # Filled in by the crawler.
    page_type: str = "other"
    depth: int = 0
    fetch: Optional[FetchInfo] = None


# ---------------------------------------------------------------------------
# Website structure
# ---------------------------------------------------------------------------

@dataclass
class PageTypeSummary:
    type: str
    count: int
    sample_urls: List[str] = field(default_factory=list)


@dataclass
class KeyPages:
    home: Optional[str] = None
    about: Optional[str] = None
    contact: Optional[str] = None
    legal: List[str] = field(default_factory=list)
    blog: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    products: List[str] = field(default_factory=list)
    account: List[str] = field(default_factory=list)
    checkout: List[str] = field(default_factory=list)


@dataclass
class WebsiteStructure:
    mode: str
    discovered_url_count: int = 0
    page_types: List[PageTypeSummary] = field(default_factory=list)
    sample_urls: List[str] = field(default_factory=list)
    key_pages: KeyPages = field(default_factory=KeyPages)


@dataclass
class CrawlStats:
    pages_requested: int
    pages_crawled: int
    max_depth: int
    duration_ms: int


@dataclass
class CrawlResult:
    root_url: str
    final_url: str
    website_structure: WebsiteStructure
    pages: List[ParsedPage]
    page_reports: List[PageReport]
    warnings: List[CrawlWarning]
    crawl: CrawlStats


# ---------------------------------------------------------------------------
# Brand
# ---------------------------------------------------------------------------

@dataclass
class BrandCandidate:
    value: str
    score: float
    source: str
    reason: str
    page_url: Optional[str] = None


@dataclass
class RankedBrandName:
    value: str
    score: float
    count: int
    reason: str
    sources: List[str] = field(default_factory=list)
    page_urls: List[str] = field(default_factory=list)


@dataclass
class BrandImages:
    og_image: Optional[str] = None
    twitter_image: Optional[str] = None


@dataclass
class TrustSignals:
    partners: bool = False
    testimonials: bool = False
    awards: bool = False
    press: bool = False
    evidence: List[str] = field(default_factory=list)


@dataclass
class BrandProfile:
    canonical_name: Optional[str] = None
    name: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    name_candidates: List[RankedBrandName] = field(default_factory=list)
    tagline: Optional[str] = None
    logos: List[LogoCandidate] = field(default_factory=list)
    primary_logo: Optional[str] = None
    favicons: List[str] = field(default_factory=list)
    images: BrandImages = field(default_factory=BrandImages)
    social: SocialLinks = field(default_factory=SocialLinks)
    contact: Contacts = field(default_factory=Contacts)
    trust_signals: TrustSignals = field(default_factory=TrustSignals)


# ---------------------------------------------------------------------------
# Style
# ---------------------------------------------------------------------------

@dataclass
class Hsl:
    h: int
    s: int
    l: int  # noqa: E741


@dataclass
class ColorEvidence:
    color_hex: str
    hsl: Hsl
    count: int = 0
    weighted_score: float = 0.0
    sources: List[str] = field(default_factory=list)


@dataclass
class ColorPalette:
    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None
    background: Optional[str] = None
    text: Optional[str] = None
    evidence: List[ColorEvidence] = field(default_factory=list)


@dataclass
class FontEvidence:
    font: str
    count: int = 0
    sources: List[str] = field(default_factory=list)


@dataclass
class Typography:
    primary_fonts: List[str] = field(default_factory=list)
    secondary_fonts: List[str] = field(default_factory=list)
    evidence: List[FontEvidence] = field(default_factory=list)


@dataclass
class Style:
    colors: ColorPalette
    typography: Typography


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

@dataclass
class SectionEvidence:
    source_page_url: str
    heading_snippet: str = ""


@dataclass
class NormalizedSection:
    """The winning block for one section archetype across the whole crawl."""

    type: str
    title: str
    summary: str
    evidence: SectionEvidence
    confidence: float
    ctas: List[Cta] = field(default_factory=list)
    bullets: Optional[List[str]] = None


@dataclass
class ContentSectionCandidate:
    source_page_url: str
    title: Optional[str] = None
    summary: Optional[str] = None
    bullets: Optional[List[str]] = None
    ctas: List[Cta] = field(default_factory=list)
    source_tag: Optional[str] = None


@dataclass
class ContentPage:
    url: str
    page_type: Optional[str]
    title: Optional[str]
    description: Optional[str]
    headings: Headings
    text_samples: List[str]
    section_candidates: List[ContentSectionCandidate]


@dataclass
class Content:
    pages: List[ContentPage] = field(default_factory=list)
    sections: List[NormalizedSection] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Confidence & aggregate
# ---------------------------------------------------------------------------

@dataclass
class Confidence:
    overall: float = 0.0
    fields: Dict[str, float] = field(default_factory=dict)
    explain: Dict[str, str] = field(default_factory=dict)
    extraction_confidence: float = 0.0


@dataclass
class Durations:
    total: int
    crawl: int
    style: int


@dataclass
class CrawlSummary:
    pages_requested: int
    pages_crawled: int
    max_depth: int
    durations_ms: Durations


@dataclass
class ExtractionResult:
    """Top-level aggregate returned by ``extract()``."""

    input_url: str
    final_url: str
    crawled_at: str
    crawl: CrawlSummary
    brand: BrandProfile
    website: WebsiteStructure
    style: Style
    content: Content
    page_reports: List[PageReport]
    warnings: List[CrawlWarning]
    confidence: Confidence
    api_version: str = "3.0"
    # Full parsed pages, kept for in-process consumers; not serialised.
    crawl_pages: List[ParsedPage] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable dict (without the raw crawl pages)."""
        data: Dict[str, Any] = {}
        for item in fields(self):
            if item.name == "crawl_pages":
                continue
            value = getattr(self, item.name)
            if is_dataclass(value):
                data[item.name] = asdict(value)
            elif isinstance(value, list):
                data[item.name] = [asdict(entry) for entry in value]
            else:
                data[item.name] = value
        return data
