"""HTML page parser: turns one HTML document into a :class:`ParsedPage`.

Built on BeautifulSoup's ``html.parser`` backend, which tolerates the broken
markup common on small-business sites.  JSON-LD blocks and style signals
are read first; ``script``/``style``/``noscript``/``template`` elements are
then dropped so they never leak into page text.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Optional
from urllib.parse import unquote, urlsplit

import structlog
from bs4 import BeautifulSoup, Tag

from sitebrand.extractor.models import (
    Contacts,
    Cta,
    Headings,
    Link,
    LogoCandidate,
    PageMeta,
    ParsedPage,
    SectionCandidate,
    SectionFeatures,
    SocialLinks,
    StructuredData,
    StyleSignals,
    TrustTokens,
)
from sitebrand.extractor.url_utils import to_absolute_url

logger = structlog.get_logger(__name__)

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")
TITLE_SPLIT_RE = re.compile(r"\||-|–|—|•|·|:|/")

_STRICT_EMAIL_RE = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$", re.IGNORECASE)
_FAVICON_REL_RE = re.compile(r"(^|\s)(icon|shortcut icon|apple-touch-icon)(\s|$)")
_ORG_TYPE_RE = re.compile(r"organization|corporation|localbusiness|store|brand|website")

JSON_LD_MAX_DEPTH = 20
JSON_LD_MAX_CHARS = 100_000
MAX_SECTION_CANDIDATES = 30

_LINK_SELECTORS = (
    ("header a[href], nav a[href]", "nav"),
    ("footer a[href]", "footer"),
    (
        'a[href][class*="btn"], a[href][class*="cta"], a[href][role="button"], '
        ".btn a[href], .cta a[href], main a[href]",
        "cta",
    ),
)

_SECTION_SELECTOR = "section, article, main > section, main > article, main > div, footer"

# (platform, hostnames); subdomains of each hostname match too.
_SOCIAL_HOSTS = (
    ("instagram", ("instagram.com",)),
    ("linkedin", ("linkedin.com",)),
    ("facebook", ("facebook.com",)),
    ("youtube", ("youtube.com", "youtu.be")),
    ("x", ("twitter.com", "x.com")),
    ("tiktok", ("tiktok.com",)),
)

_TRUST_PATTERNS = (
    ("partners", re.compile(r"partner|clients|trusted by")),
    ("testimonials", re.compile(r"testimonial|what clients say|reviews")),
    ("awards", re.compile(r"award|winner|certified")),
    ("press", re.compile(r"press|featured in|media")),
)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def clean_text(value: Any) -> str:
    """Collapse whitespace runs to single spaces and strip."""
    return " ".join(str(value or "").split())


def clamp_text(value: Any, max_length: int = 320) -> str:
    return clean_text(value)[:max_length]


def unique(values: Iterable[Any]) -> List[Any]:
    """Drop falsy values and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(value for value in values if value))


def _node_text(node: Tag) -> str:
    return clean_text(node.get_text(" "))


def _attr_text(node: Tag, name: str) -> str:
    """Attribute value as a string; multi-valued attributes are space-joined."""
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return str(value or "")


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Return a lower-cased address, or ``None`` for anything that is not one."""
    raw = clean_text(unquote(value or "")).lower()
    if not raw or any(char in raw for char in "?&=") or re.search(r"\s", raw):
        return None
    if not _STRICT_EMAIL_RE.match(raw):
        return None
    if re.match(r"^(subject|body|mailto):", raw):
        return None
    return raw


def normalize_phone_candidate(value: Optional[str]) -> Optional[str]:
    """Validate a phone-looking string; returns it cleaned or ``None``.

    Rejects strings with letters, fewer than 8 or more than 15 digits,
    size lists such as ``"7.875 8.0 8.125 8.25"`` and runs of 0s or 1s.
    """
    raw = clean_text(value)
    if not raw or re.search(r"[a-zA-Z]", raw):
        return None

    digits = re.sub(r"\D", "", raw)
    if not 8 <= len(digits) <= 15:
        return None
    if raw.count(".") >= 3 and len(re.findall(r"\s", raw)) >= 2:
        return None
    if re.fullmatch(r"0{6,}|1{6,}", digits):
        return None
    return raw


def split_title_chunks(title: Optional[str]) -> List[str]:
    """Split a ``<title>`` on common separators into brand-name candidates."""
    chunks = [clean_text(chunk) for chunk in TITLE_SPLIT_RE.split(str(title or ""))]
    return unique(chunk for chunk in chunks if 2 <= len(chunk) <= 90)[:8]


def pick_site_name_candidate(page: ParsedPage) -> Optional[str]:
    """First JSON-LD name, else ``og:site_name``, else the first title chunk."""
    if page.structured_data.names:
        return page.structured_data.names[0]
    if page.meta.og_site_name:
        return page.meta.og_site_name
    if page.title:
        chunks = split_title_chunks(page.title)
        return chunks[0] if chunks else page.title
    return None


# ---------------------------------------------------------------------------
# Collectors
# ---------------------------------------------------------------------------

def _pick_headings(soup: BeautifulSoup) -> Headings:
    def texts(tag: str, limit: int) -> List[str]:
        return unique(_node_text(node) for node in soup.find_all(tag))[:limit]

    return Headings(h1=texts("h1", 8), h2=texts("h2", 20), h3=texts("h3", 24))


def _meta_content(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    return clean_text(node.get("content")) if node is not None else ""


def _walk_json_ld(node: Any, out: StructuredData, depth: int = 0) -> None:
    if depth > JSON_LD_MAX_DEPTH:
        return
    if isinstance(node, list):
        for item in node:
            _walk_json_ld(item, out, depth + 1)
        return
    if not isinstance(node, dict):
        return

    raw_type = node.get("@type")
    types = raw_type if isinstance(raw_type, list) else [raw_type]
    type_text = " ".join(str(item or "").lower() for item in types)

    if _ORG_TYPE_RE.search(type_text):
        name = clean_text(node.get("name") if isinstance(node.get("name"), str) else "")
        legal = clean_text(node.get("legalName") or node.get("legal_name") or "")
        alternate = clean_text(node.get("alternateName") or node.get("alternate_name") or "")
        url = clean_text(node.get("url") if isinstance(node.get("url"), str) else "")
        if name:
            out.names.append(name)
        if legal:
            out.legal_names.append(legal)
        if alternate:
            out.names.append(alternate)
        if url:
            out.urls.append(url)

    logo = node.get("logo")
    if isinstance(logo, str) and logo:
        out.logos.append(logo)
    elif isinstance(logo, dict):
        for key in ("url", "contentUrl"):
            if logo.get(key):
                out.logos.append(str(logo[key]))

    for value in node.values():
        if isinstance(value, (dict, list)):
            _walk_json_ld(value, out, depth + 1)


def _collect_structured_data(soup: BeautifulSoup, page_url: str) -> StructuredData:
    out = StructuredData()
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = (script.string or script.get_text() or "").strip()
        if not raw:
            continue
        if len(raw) > JSON_LD_MAX_CHARS:
            logger.debug("json_ld_oversized", url=page_url, chars=len(raw))
            continue
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("json_ld_malformed", url=page_url)
            continue
        _walk_json_ld(data, out)

    return StructuredData(
        names=unique(out.names)[:12],
        legal_names=unique(out.legal_names)[:12],
        urls=unique(to_absolute_url(url, page_url) for url in unique(out.urls))[:12],
        logos=unique(to_absolute_url(logo, page_url) for logo in unique(out.logos))[:12],
    )


def _collect_style_signals(soup: BeautifulSoup, page_url: str) -> StyleSignals:
    inline_styles = [style.get_text() for style in soup.find_all("style") if style.get_text()]

    stylesheet_links = []
    for link in soup.find_all("link", href=True):
        rel = _attr_text(link, "rel").lower().split()
        if "stylesheet" in rel or _attr_text(link, "as").lower() == "style":
            stylesheet_links.append(to_absolute_url(link.get("href"), page_url))

    attributes = unique(clean_text(node.get("style")) for node in soup.find_all(style=True))
    return StyleSignals(
        inline_styles=inline_styles,
        stylesheet_links=unique(stylesheet_links),
        inline_style_attributes=attributes[:200],
    )


def _collect_favicons(soup: BeautifulSoup, page_url: str) -> List[str]:
    icons = []
    for link in soup.find_all("link", rel=True):
        rel = _attr_text(link, "rel").lower()
        if _FAVICON_REL_RE.search(rel):
            icons.append(to_absolute_url(link.get("href"), page_url))
    return unique(icons)


def _collect_logo_candidates(soup: BeautifulSoup, page_url: str) -> List[LogoCandidate]:
    candidates: List[LogoCandidate] = []

    for img in soup.find_all("img"):
        alt = clean_text(img.get("alt"))
        hay = f"{alt} {_attr_text(img, 'class').lower()} {_attr_text(img, 'id').lower()}"
        if not re.search(r"logo|brand", hay):
            continue
        src = to_absolute_url(img.get("src"), page_url)
        if not src:
            continue
        confidence = 0.95 if "logo" in alt.lower() else 0.75
        candidates.append(LogoCandidate(url=src, type="img", confidence=confidence))

    for svg in soup.find_all("svg"):
        svg_id = _attr_text(svg, "id").lower()
        hay = f"{_attr_text(svg, 'class').lower()} {svg_id} {clean_text(svg.get('aria-label'))}"
        if not re.search(r"logo|brand", hay):
            continue
        anchor = svg_id or f"logo-svg-{len(candidates) + 1}"
        candidates.append(LogoCandidate(url=f"{page_url}#{anchor}", type="svg", confidence=0.7))

    deduped: List[LogoCandidate] = []
    for candidate in candidates:
        if candidate not in deduped:
            deduped.append(candidate)
    return deduped


def _social_platform(url: str) -> Optional[str]:
    host = (urlsplit(url).hostname or "").lower()
    for platform, hostnames in _SOCIAL_HOSTS:
        if any(host == name or host.endswith(f".{name}") for name in hostnames):
            return platform
    return None


def _collect_social_links(soup: BeautifulSoup, page_url: str) -> SocialLinks:
    social = SocialLinks()
    for anchor in soup.find_all("a", href=True):
        href = to_absolute_url(anchor.get("href"), page_url)
        if not href:
            continue
        platform = _social_platform(href)
        if platform and getattr(social, platform) is None:
            setattr(social, platform, href)
    return social


def _collect_contacts(soup: BeautifulSoup, body_text: str) -> Contacts:
    emails = [normalize_email(match) for match in EMAIL_RE.findall(body_text)]
    phones = [normalize_phone_candidate(match) for match in PHONE_RE.findall(body_text)]

    for anchor in soup.select('a[href^="mailto:" i]'):
        href = re.sub(r"^mailto:", "", _attr_text(anchor, "href"), flags=re.IGNORECASE).strip()
        local = unquote(href).split("?", 1)[0]
        emails.extend(normalize_email(candidate) for candidate in local.split(","))

    for anchor in soup.select('a[href^="tel:" i]'):
        href = re.sub(r"^tel:", "", _attr_text(anchor, "href"), flags=re.IGNORECASE).strip()
        phones.append(normalize_phone_candidate(href))

    addresses = [
        _node_text(node)
        for node in soup.select('address, [class*="address"], [id*="address"], [itemprop="address"]')
    ]

    return Contacts(
        emails=unique(emails)[:15],
        phones=unique(phones)[:20],
        address_candidates=unique(text for text in addresses if len(text) > 18)[:8],
    )


def _collect_links(soup: BeautifulSoup, page_url: str) -> List[Link]:
    links: List[Link] = []
    seen = set()
    for selector, context in _LINK_SELECTORS:
        for anchor in soup.select(selector):
            url = to_absolute_url(anchor.get("href"), page_url)
            if not url:
                continue
            label = _node_text(anchor) or clean_text(anchor.get("aria-label")) or None
            key = (url, label or "", context)
            if key in seen:
                continue
            seen.add(key)
            links.append(Link(url=url, label=label, context=context))
    return links


def _section_candidate(node: Tag, page_url: str) -> SectionCandidate:
    heading_node = node.find(["h1", "h2", "h3"])
    heading = _node_text(heading_node) if heading_node is not None else ""
    paragraph = node.find("p")
    node_text = _node_text(node)
    summary = clamp_text((_node_text(paragraph) if paragraph is not None else "") or node_text, 260)

    bullets = unique(clamp_text(_node_text(item), 120) for item in node.find_all("li"))[:6]

    ctas: List[Cta] = []
    for anchor in node.find_all("a", href=True):
        url = to_absolute_url(anchor.get("href"), page_url)
        if not url:
            continue
        label = _node_text(anchor) or clean_text(anchor.get("aria-label")) or "Learn more"
        cta = Cta(label=clamp_text(label, 64), url=url)
        if cta not in ctas:
            ctas.append(cta)
        if len(ctas) >= 4:
            break

    text = node_text.lower()
    raw_text = node.get_text()
    features = SectionFeatures(
        has_form=node.find("form") is not None,
        has_map=bool(
            node.select('iframe[src*="maps"], iframe[src*="mapbox"], [class*="map"]')
        )
        or bool(re.search(r"\bmap\b", text)),
        has_quote=node.find("blockquote") is not None or bool(re.search(r"[“”\"]", raw_text)),
        has_stars=bool(re.search(r"★|\bstar\b|\b5/5\b", text)),
        has_people=bool(re.search(r"team|founder|architect|engineer|director|our people|member", text)),
        legal_link_count=len(
            node.select('a[href*="privacy"], a[href*="terms"], a[href*="cookie"]')
        ),
        question_count=raw_text.count("?"),
        text=text,
    )

    return SectionCandidate(
        source_page_url=page_url,
        title=heading or None,
        summary=summary or None,
        bullets=bullets or None,
        ctas=ctas,
        source_tag=(node.name or "div").lower(),
        features=features,
    )


def detect_section_candidates(soup: BeautifulSoup, page_url: str) -> List[SectionCandidate]:
    """Up to 30 DOM blocks in document order that carry text, a heading or bullets."""
    candidates = [
        _section_candidate(node, page_url)
        for node in soup.select(_SECTION_SELECTOR)[:MAX_SECTION_CANDIDATES]
    ]
    return [
        candidate
        for candidate in candidates
        if len(candidate.summary or "") > 24 or candidate.title or candidate.bullets
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_html_page(html: str, page_url: str) -> ParsedPage:
    """Parse *html* fetched from *page_url*.

    Never raises on malformed markup; missing elements yield empty values.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    structured_data = _collect_structured_data(soup, page_url)
    style_signals = _collect_style_signals(soup, page_url)
    meta = PageMeta(
        og_site_name=_meta_content(soup, 'meta[property="og:site_name"]') or None,
        og_image=to_absolute_url(_meta_content(soup, 'meta[property="og:image"]'), page_url),
        twitter_image=to_absolute_url(_meta_content(soup, 'meta[name="twitter:image"]'), page_url),
        theme_color=_meta_content(soup, 'meta[name="theme-color"]') or None,
    )
    title_node = soup.find("title")
    title = _node_text(title_node) if title_node is not None else ""
    description = _meta_content(soup, 'meta[name="description"]')

    for node in soup(["script", "style", "noscript", "template"]):
        node.decompose()

    body = soup.body or soup
    raw_text = _node_text(body)
    header = soup.find("header")
    header_text = clamp_text(_node_text(header), 140) if header is not None else ""
    lowered = raw_text.lower()

    return ParsedPage(
        url=page_url,
        html_size=len((html or "").encode("utf-8")),
        title=title or None,
        description=description or None,
        headings=_pick_headings(soup),
        text_samples=unique(
            text
            for text in (clamp_text(_node_text(p), 280) for p in soup.find_all("p"))
            if len(text) > 50
        )[:12],
        links=_collect_links(soup, page_url),
        section_candidates=detect_section_candidates(soup, page_url),
        meta=meta,
        structured_data=structured_data,
        favicons=_collect_favicons(soup, page_url),
        logo_candidates=_collect_logo_candidates(soup, page_url),
        social_links=_collect_social_links(soup, page_url),
        contacts=_collect_contacts(soup, raw_text),
        style_signals=style_signals,
        raw_text=raw_text,
        trust_tokens=TrustTokens(
            **{name: bool(pattern.search(lowered)) for name, pattern in _TRUST_PATTERNS}
        ),
        header_text=header_text or None,
    )
