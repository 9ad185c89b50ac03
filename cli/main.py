"""sitebrand CLI: run extractions and inspect robots.txt from the shell.

Usage:
    python cli/main.py --help

Commands:
    extract   → crawl a site and print the extraction result as JSON
    robots    → fetch and print the robots.txt rules that apply to ``*``
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from sitebrand.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from sitebrand.errors import ExtractionError
from sitebrand.extractor.fetcher import FetchClient
from sitebrand.extractor.robots import fetch_robots, is_allowed_by_robots
from sitebrand.extractor.unified import UnifiedExtractor, to_legacy_extracted_data
from sitebrand.extractor.url_utils import normalize_url, origin_of

app = typer.Typer(
    name="sitebrand",
    help="Crawl a company website and extract brand, structure, style and content.",
    no_args_is_help=True,
)

_MODES = ("template_samples", "marketing_only", "all_urls")


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
@app.command("extract")
def extract_cmd(
    url: str = typer.Option(..., help="Root URL of the site to extract."),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Page budget (clamped per mode)."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", help="Link depth limit (0-3)."),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Per-page request timeout."),
    respect_robots: bool = typer.Option(
        False, "--respect-robots", help="Skip paths disallowed by robots.txt."
    ),
    mode: str = typer.Option(
        "template_samples", "--mode", help="Site map mode: template_samples | marketing_only | all_urls."
    ),
    legacy: bool = typer.Option(False, "--legacy", help="Print the flattened legacy shape instead."),
) -> None:
    """Crawl URL and print the extraction result as JSON to stdout."""
    if mode not in _MODES:
        typer.echo(f"[extract] Unknown mode {mode!r}. Use: {' | '.join(_MODES)}", err=True)
        raise typer.Exit(1)

    typer.echo(f"[extract] Crawling {url!r} (mode={mode}) …", err=True)
    try:
        result = UnifiedExtractor().extract(
            {
                "url": url,
                "max_pages": max_pages,
                "max_depth": max_depth,
                "timeout_ms": timeout_ms,
                "ignore_robots": not respect_robots,
                "site_map_mode": mode,
            }
        )
    except ExtractionError as exc:
        typer.echo(f"[extract] Error ({exc.code}): {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"[extract] {result.crawl.pages_crawled} page(s), {len(result.warnings)} warning(s), "
        f"confidence {result.confidence.overall}",
        err=True,
    )
    payload = to_legacy_extracted_data(result) if legacy else result.to_dict()
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Robots
# ---------------------------------------------------------------------------
@app.command("robots")
def robots_cmd(
    url: str = typer.Option(..., help="Any URL on the site; only its origin is used."),
    path: Optional[str] = typer.Option(None, "--path", help="Path to check against the rules."),
) -> None:
    """Fetch robots.txt for URL's origin and print the rules for ``*``."""
    try:
        origin = origin_of(normalize_url(url))
    except ValueError as exc:
        typer.echo(f"[robots] Invalid URL {url!r}: {exc}", err=True)
        raise typer.Exit(1)

    fetched = fetch_robots(origin, FetchClient())
    rules = fetched.rules

    typer.echo(f"[robots] {fetched.robots_url}")
    if fetched.warning:
        typer.echo(f"[robots] Unavailable ({fetched.warning}); allowing everything.")
    typer.echo(f"  Allow       : {', '.join(rules.allow) or '(none)'}")
    typer.echo(f"  Disallow    : {', '.join(rules.disallow) or '(none)'}")
    typer.echo(f"  Crawl-delay : {rules.crawl_delay_sec if rules.crawl_delay_sec is not None else '(none)'}")
    typer.echo(f"  Sitemaps    : {', '.join(rules.sitemaps) or '(none)'}")

    if path is not None:
        verdict = "allowed" if is_allowed_by_robots(rules, path) else "disallowed"
        typer.echo(f"  {path} → {verdict}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
