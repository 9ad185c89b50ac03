"""URL canonicalisation, origin checks and path keyword scoring.

The canonical key is the crawler's deduplication key: two URLs that only
differ in host case, default port, fragment, tracking parameters, query
order or a trailing slash map to the same key.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import SplitResult, parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

_TRACKING_PARAM_PREFIXES = ("utm_",)
_TRACKING_PARAMS = {"gclid", "fbclid"}
_DROP_PARAMS = {"ref", "source"}

_DEFAULT_PORTS = {"http": 80, "https": 443}

NON_HTML_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico",
    ".css", ".js", ".mjs", ".cjs", ".json", ".xml", ".txt",
    ".mp4", ".mov", ".webm", ".mp3", ".wav",
    ".zip", ".rar", ".7z", ".tar", ".gz",
    ".woff", ".woff2", ".ttf", ".otf", ".map",
)

# (path keyword, weight), English and Czech marketing paths.
_PATH_KEYWORDS = (
    ("contact", 100),
    ("about", 90),
    ("company", 80),
    ("team", 75),
    ("services", 70),
    ("solutions", 65),
    ("projects", 60),
    ("portfolio", 60),
    ("references", 55),
    ("pricing", 50),
    ("faq", 45),
    ("kontakt", 100),
    ("o-nas", 80),
    ("sluzby", 70),
    ("projekty", 60),
    ("reference", 55),
)

_REJECTED_HREF_PREFIXES = ("mailto:", "tel:", "javascript:")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _is_tracking_param(key: str) -> bool:
    lower = key.lower()
    if lower in _TRACKING_PARAMS or lower in _DROP_PARAMS:
        return True
    return any(lower.startswith(prefix) for prefix in _TRACKING_PARAM_PREFIXES)


def clean_query_params(query: str) -> list[tuple[str, str]]:
    """Return the query pairs of *query* minus tracking parameters."""
    return [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _is_tracking_param(key)
    ]


def _normalise_parts(parts: SplitResult, sort_query: bool = False) -> str:
    """Apply the shared normalisation steps and return the URL string.

    Raises ``ValueError`` for non-http(s) schemes, missing hosts or invalid
    ports.
    """
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError("Only http and https URLs are supported")

    host = (parts.hostname or "").lower()
    if not host:
        raise ValueError("URL has no host")
    if ":" in host:
        host = f"[{host}]"

    port = parts.port
    netloc = host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    pairs = clean_query_params(parts.query)
    if sort_query:
        pairs.sort()
    query = urlencode(pairs)

    return urlunsplit((scheme, netloc, path, query, ""))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def canonical_key(url: str) -> str:
    """Return the deduplication key for *url*.

    Lower-cases the host, drops the fragment and default ports, strips
    tracking parameters, sorts the remaining query by key then value and
    removes a trailing slash (except on the root path).  Idempotent.

    Raises:
        ValueError: If *url* is not an absolute http(s) URL.
    """
    return _normalise_parts(urlsplit(url.strip()), sort_query=True)


def normalize_url(value: str, base_url: Optional[str] = None) -> str:
    """Resolve *value* (against *base_url* when given) and drop the fragment.

    Raises:
        ValueError: If the result is not an absolute http(s) URL.
    """
    raw = str(value or "").strip()
    resolved = urljoin(base_url, raw) if base_url else raw
    parts = urlsplit(resolved)
    if parts.scheme.lower() not in _DEFAULT_PORTS:
        raise ValueError("Only http and https URLs are supported")
    if not parts.hostname:
        raise ValueError("URL has no host")
    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path or "/", parts.query, ""))


def to_absolute_url(href: Optional[str], page_url: str) -> Optional[str]:
    """Like :func:`normalize_url` but returns ``None`` instead of raising."""
    if href is None or not str(href).strip():
        return None
    try:
        return normalize_url(href, page_url)
    except ValueError:
        return None


def normalize_discovered_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve a link found on *base_url* into a crawlable URL.

    Returns ``None`` for empty, fragment-only, ``mailto:``, ``tel:`` and
    ``javascript:`` hrefs and for anything that cannot be parsed.
    """
    raw = str(href or "").strip()
    if not raw or raw.startswith("#"):
        return None
    if raw.lower().startswith(_REJECTED_HREF_PREFIXES):
        return None

    try:
        return _normalise_parts(urlsplit(urljoin(base_url, raw)))
    except ValueError:
        return None


def _origin(url: str) -> tuple[str, str, Optional[int]]:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    port = parts.port or _DEFAULT_PORTS.get(scheme)
    return scheme, (parts.hostname or "").lower(), port


def is_same_origin(a: str, b: str) -> bool:
    """Return ``True`` if *a* and *b* share scheme, host and port."""
    try:
        return _origin(a) == _origin(b)
    except ValueError:
        return False


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*."""
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def looks_like_non_html_asset(url: str) -> bool:
    """Return ``True`` if the path ends in a known non-HTML extension."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return True
    return path.endswith(NON_HTML_EXTENSIONS)


def keyword_score(url: str) -> int:
    """Score a URL path by marketing keywords; shallow paths score higher."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return 0

    score = sum(weight for keyword, weight in _PATH_KEYWORDS if keyword in path)
    segments = [segment for segment in path.split("/") if segment]
    return score + max(0, 10 - len(segments))
