"""robots.txt fetching, parsing and path matching.

Only the ``User-agent: *`` groups are honoured; ``Sitemap:`` lines are
collected regardless of the active group.  Any failure to obtain the file
degrades to allow-all with a warning; robots problems never stop a crawl.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, List, Optional
from urllib.parse import urljoin, urlsplit

import structlog

from sitebrand.extractor.models import RobotsRules

if TYPE_CHECKING:
    from sitebrand.extractor.fetcher import FetchClient

logger = structlog.get_logger(__name__)


@dataclass
class RobotsFetch:
    robots_url: str
    rules: RobotsRules
    warning: Optional[str] = None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_directive(line: str) -> Optional[tuple[str, str]]:
    key, sep, value = line.partition(":")
    if not sep:
        return None
    key = key.strip().lower()
    if not key:
        return None
    return key, value.strip()


def _normalise_rule(value: str) -> str:
    trimmed = value.strip()
    if not trimmed:
        return ""
    return trimmed if trimmed.startswith("/") else f"/{trimmed}"


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def parse_robots_text(text: str, origin_url: str) -> RobotsRules:
    """Parse a robots.txt body into the rules that apply to ``*``.

    A ``User-agent`` line that follows at least one directive starts a new
    group.  Empty ``Disallow:`` values are ignored (they allow everything).
    """
    rules = RobotsRules()

    active_for_star = False
    saw_user_agent = False
    saw_directive = False

    for raw_line in str(text or "").splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line:
            continue
        parsed = _parse_directive(line)
        if parsed is None:
            continue
        key, value = parsed

        if key == "user-agent":
            if saw_user_agent and saw_directive:
                active_for_star = False
                saw_directive = False
            saw_user_agent = True
            if value == "*":
                active_for_star = True
            continue

        if key == "sitemap":
            absolute = urljoin(origin_url, value) if value else ""
            if urlsplit(absolute).scheme in ("http", "https"):
                rules.sitemaps.append(absolute)
            continue

        if not saw_user_agent:
            continue

        saw_directive = True
        if not active_for_star:
            continue

        if key == "allow":
            normalised = _normalise_rule(value)
            if normalised:
                rules.allow.append(normalised)
        elif key == "disallow":
            normalised = _normalise_rule(value)
            if normalised:
                rules.disallow.append(normalised)
        elif key == "crawl-delay":
            try:
                delay = float(value)
            except ValueError:
                continue
            if delay >= 0 and delay != float("inf"):
                rules.crawl_delay_sec = delay

    rules.allow = _dedupe(rules.allow)
    rules.disallow = _dedupe(rules.disallow)
    rules.sitemaps = _dedupe(rules.sitemaps)
    return rules


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def fetch_robots(origin_url: str, fetch_client: "FetchClient", timeout_ms: int = 3000) -> RobotsFetch:
    """Fetch and parse ``{origin}/robots.txt``; fails open on any error."""
    try:
        parts = urlsplit(origin_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError("missing scheme or host")
        robots_url = f"{parts.scheme}://{parts.netloc}/robots.txt"
    except ValueError:
        return RobotsFetch(robots_url=origin_url, rules=RobotsRules(), warning="invalid URL")

    response = fetch_client.fetch_url(
        robots_url, accept_html_only=False, max_retries=1, timeout_ms=timeout_ms
    )

    if not response.ok:
        reason = response.error_message or f"HTTP {response.status}"
        logger.info("robots_unavailable", url=robots_url, reason=reason)
        return RobotsFetch(robots_url=robots_url, rules=RobotsRules(), warning=reason)

    if not response.text:
        return RobotsFetch(robots_url=robots_url, rules=RobotsRules(), warning="empty response body")

    rules = parse_robots_text(response.text, origin_url)
    logger.debug(
        "robots_fetched",
        url=robots_url,
        allow=len(rules.allow),
        disallow=len(rules.disallow),
        sitemaps=len(rules.sitemaps),
    )
    return RobotsFetch(robots_url=robots_url, rules=rules)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

@lru_cache(maxsize=512)
def _rule_to_regex(rule: str) -> re.Pattern[str]:
    """``*`` matches any run of characters; a trailing ``$`` anchors the end."""
    anchored = rule.endswith("$")
    raw = rule[:-1] if anchored else rule
    escaped = re.escape(raw).replace(r"\*", ".*")
    return re.compile(f"^{escaped}{'$' if anchored else ''}")


def _match_length(rule: str) -> int:
    return len(rule.replace("*", "").replace("$", ""))


def is_allowed_by_robots(rules: RobotsRules, path: str) -> bool:
    """Return whether *path* may be crawled under *rules*.

    The longest matching Allow rule competes with the longest matching
    Disallow rule; on equal length Allow wins.  No match means allowed.
    """
    path = str(path or "")
    if not path.startswith("/"):
        path = f"/{path}"

    allow_len = max(
        (_match_length(rule) for rule in rules.allow if _rule_to_regex(rule).search(path)),
        default=-1,
    )
    disallow_len = max(
        (_match_length(rule) for rule in rules.disallow if _rule_to_regex(rule).search(path)),
        default=-1,
    )

    if allow_len == -1 and disallow_len == -1:
        return True
    return allow_len >= disallow_len
