"""Information-architecture planner: page typing and website structure.

Classification is driven by ordered ``(pattern, page_type)`` tables; the
first matching rule wins.  Path rules understand English and Czech tokens.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from sitebrand.extractor.models import KeyPages, PageTypeSummary, ParsedPage, WebsiteStructure

PAGE_TYPES = (
    "home",
    "category",
    "product",
    "about",
    "contact",
    "legal",
    "blog",
    "account",
    "checkout",
    "other",
)

_CHECKOUT_PATH = re.compile(r"(cart|checkout|pokladna|kosik|ko[sš]i?k)")
_CATEGORY_HINT = re.compile(r"(collections|category|catalog|shop/c|sortiment|kategorie)")
_SECTION_WORDS = re.compile(r"(about|contact|legal|account|checkout|blog)")

# Evaluated against the joined, lower-cased path segments.
_PATH_RULES = (
    (re.compile(r"(account|login|signin|register|profile|my-account|customer)"), "account"),
    (re.compile(r"(privacy|gdpr|terms|conditions|cookies|refund|shipping|returns|imprint|legal)"), "legal"),
    (re.compile(r"(contact|kontakt)"), "contact"),
    (re.compile(r"(about|o-nas|o_nas|team|company|who-we-are|about-us)"), "about"),
    (re.compile(r"(blog|news|article|journal|insights)"), "blog"),
    (
        re.compile(r"(product|products|p/|item|shop/|shop|goods|zbozi|produkt|kolekce|collections|collections/all)"),
        "product",
    ),
)

# Evaluated against "title h1 description".
_CONTENT_RULES = (
    (re.compile(r"checkout|cart|ko[sš]ik|pokladna"), "checkout"),
    (re.compile(r"login|sign in|register|account"), "account"),
    (re.compile(r"privacy|terms|cookies|gdpr|legal"), "legal"),
    (re.compile(r"contact|kontakt|get in touch"), "contact"),
    (re.compile(r"about|o-nas|o nás|our story|who we are|team"), "about"),
    (re.compile(r"blog|news|journal"), "blog"),
    (re.compile(r"category|collection|shop|catalog"), "category"),
    (re.compile(r"\b(za|from|price|k[čc]|usd|eur)\b"), "product"),
)

_CONFIRMED_BY_CONTENT = ("contact", "legal", "account", "checkout")


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    return list(dict.fromkeys(value for value in values if value))


def classify_by_path(url: str) -> str:
    """Return the page type implied by *url*'s host and path alone."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "other"

    pathname = (parts.path or "/").lower()
    host = (parts.hostname or "").lower()
    segments = [segment.strip().lower() for segment in pathname.split("/") if segment.strip()]
    joined = "/".join(segments)

    if pathname in ("", "/"):
        return "home"
    if _CHECKOUT_PATH.search(joined) or "checkout" in host:
        return "checkout"

    for pattern, page_type in _PATH_RULES:
        if pattern.search(joined):
            if page_type == "product" and _CATEGORY_HINT.search(joined):
                return "category"
            return page_type

    # Positional fallback: /shoes is a listing, /shoes/red-runner an item.
    if len(segments) == 1 and not re.search(r"\d", segments[0]):
        return "category"
    if len(segments) >= 2 and not _SECTION_WORDS.search(joined) and re.search(r"[a-z]", joined):
        return "product"
    return "other"


def classify_by_content(page: ParsedPage) -> Optional[str]:
    """Return the page type suggested by title, first h1 and description."""
    title = (page.title or "").lower()
    h1 = (page.headings.h1[0] if page.headings.h1 else "").lower()
    summary = (page.description or "").lower()
    hay = f"{title} {h1} {summary}".strip()
    if not hay:
        return None

    for pattern, page_type in _CONTENT_RULES:
        if pattern.search(hay):
            return page_type
    return None


def infer_page_type(page: ParsedPage) -> str:
    """Combine path and content classification.

    Product and category paths keep their type even when the content looks
    like about/contact/blog (footer boilerplate often does).  Content wins
    when the path says nothing, or when it confirms contact, legal, account
    or checkout.
    """
    if not page.url or not urlsplit(page.url).scheme:
        return "other"

    by_path = classify_by_path(page.url)
    by_content = classify_by_content(page)

    if by_content and by_path in ("product", "category") and by_content in ("about", "contact", "blog"):
        return by_path
    if by_content and by_path == "other":
        return by_content
    if by_content in _CONFIRMED_BY_CONTENT:
        return by_content
    return by_path


def build_website_structure(
    root_url: Optional[str],
    pages: List[ParsedPage],
    discovered_urls: Iterable[str] = (),
    site_map_mode: str = "template_samples",
) -> WebsiteStructure:
    """Bucket crawled and discovered URLs by page type and pick key pages."""
    discovered = list(discovered_urls or [])

    typed = [(page.url, page.page_type or infer_page_type(page)) for page in pages]
    typed += [(url, classify_by_path(url)) for url in discovered]

    buckets: Dict[str, List[str]] = {}
    for url, page_type in typed:
        if not url:
            continue
        buckets.setdefault(page_type or "other", []).append(url)

    summaries = []
    for page_type in PAGE_TYPES:
        urls = _unique(buckets.get(page_type, []))
        if urls:
            summaries.append(PageTypeSummary(type=page_type, count=len(urls), sample_urls=urls[:6]))
    summaries.sort(key=lambda summary: summary.count, reverse=True)

    per_type = 2 if site_map_mode == "marketing_only" else 4
    sample_urls = _unique(url for summary in summaries for url in summary.sample_urls[:per_type])

    homes = buckets.get("home", []) + ([root_url] if root_url else [])
    key_pages = KeyPages(
        home=homes[0] if homes else None,
        about=next(iter(buckets.get("about", [])), None),
        contact=next(iter(buckets.get("contact", [])), None),
        legal=_unique(buckets.get("legal", []))[:5],
        blog=_unique(buckets.get("blog", []))[:5],
        categories=_unique(buckets.get("category", []))[:8],
        products=_unique(buckets.get("product", []))[:8],
        account=_unique(buckets.get("account", []))[:5],
        checkout=_unique(buckets.get("checkout", []))[:5],
    )

    return WebsiteStructure(
        mode=site_map_mode,
        discovered_url_count=len(_unique(discovered)),
        page_types=summaries,
        sample_urls=sample_urls,
        key_pages=key_pages,
    )
