"""Color evidence extraction and palette selection."""

from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Tuple

from sitebrand.extractor.models import ColorEvidence, ColorPalette, CrawlWarning, Hsl, ParsedPage
from sitebrand.extractor.style.cache import StylesheetCache
from sitebrand.extractor.url_utils import is_same_origin

COLOR_TOKEN_RE = re.compile(
    r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})\b|rgba?\([^)]+\)|hsla?\([^)]+\)"
)
CSS_VAR_RE = re.compile(r"(--[\w-]+)\s*:\s*([^;]+);")
_BRAND_VAR_RE = re.compile(r"primary|brand|accent|secondary|text|background|bg")
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

THEME_COLOR_WEIGHT = 9
BRAND_VAR_WEIGHT = 6
OTHER_VAR_WEIGHT = 3
PLAIN_TOKEN_WEIGHT = 2
MAX_EVIDENCE = 18


def _round(value: float) -> int:
    """Round half up, matching how CSS tooling rounds channel values."""
    return int(math.floor(value + 0.5))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _leading_float(value: str) -> Optional[float]:
    match = _LEADING_FLOAT_RE.match(value)
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def _normalize_hex(value: str) -> Optional[str]:
    clean = value.strip().replace("#", "", 1).lower()
    if len(clean) == 3:
        return "#" + "".join(char * 2 for char in clean)
    if len(clean) == 8:
        return f"#{clean[:6]}"
    if len(clean) == 6:
        return f"#{clean}"
    return None


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:  # noqa: E741
    sat = s / 100
    light = l / 100
    c = (1 - abs(2 * light - 1)) * sat
    x = c * (1 - abs(math.fmod(h / 60, 2) - 1))
    m = light - c / 2

    if 0 <= h < 60:
        r, g, b = c, x, 0.0
    elif 60 <= h < 120:
        r, g, b = x, c, 0.0
    elif 120 <= h < 180:
        r, g, b = 0.0, c, x
    elif 180 <= h < 240:
        r, g, b = 0.0, x, c
    elif 240 <= h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return _round((r + m) * 255), _round((g + m) * 255), _round((b + m) * 255)


def rgb_to_hsl(r: int, g: int, b: int) -> Hsl:
    rn, gn, bn = r / 255, g / 255, b / 255
    high = max(rn, gn, bn)
    low = min(rn, gn, bn)
    delta = high - low

    h = 0.0
    if delta != 0:
        if high == rn:
            h = math.fmod((gn - bn) / delta, 6)
        elif high == gn:
            h = (bn - rn) / delta + 2
        else:
            h = (rn - gn) / delta + 4

    hue = _round(h * 60)
    if hue < 0:
        hue += 360

    light = (high + low) / 2
    sat = 0.0 if delta == 0 else delta / (1 - abs(2 * light - 1))
    return Hsl(h=hue, s=_round(sat * 100), l=_round(light * 100))


def _rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    return "#" + "".join(f"{int(_clamp(channel, 0, 255)):02x}" for channel in rgb)


def _parse_rgb(token: str) -> Optional[Tuple[int, int, int]]:
    match = re.search(r"rgba?\(([^)]+)\)", token, re.IGNORECASE)
    if not match:
        return None
    parts = [_leading_float(part.strip()) for part in match.group(1).split(",")[:3]]
    if len(parts) < 3 or any(part is None for part in parts):
        return None
    return tuple(int(_clamp(_round(part), 0, 255)) for part in parts)  # type: ignore[return-value]


def _parse_hsl(token: str) -> Optional[Tuple[int, int, int]]:
    match = re.search(r"hsla?\(([^)]+)\)", token, re.IGNORECASE)
    if not match:
        return None
    parts = [part.strip() for part in match.group(1).split(",")]
    if len(parts) < 3:
        return None
    h = _leading_float(parts[0])
    s = _leading_float(parts[1].replace("%", "", 1))
    l = _leading_float(parts[2].replace("%", "", 1))  # noqa: E741
    if h is None or s is None or l is None:
        return None
    return hsl_to_rgb(((h % 360) + 360) % 360, _clamp(s, 0, 100), _clamp(l, 0, 100))


def parse_color_token(token: Optional[str]) -> Optional[ColorEvidence]:
    """Parse a hex, ``rgb()``/``rgba()`` or ``hsl()``/``hsla()`` token.

    Returns a zero-weight :class:`ColorEvidence` carrying the normalised
    six-digit lowercase hex and its HSL, or ``None`` when *token* is not a
    color.  Alpha channels are dropped.

    >>> parse_color_token("#abc").color_hex
    '#aabbcc'
    """
    if not token:
        return None
    value = token.strip()

    if value.startswith("#"):
        color_hex = _normalize_hex(value)
        if not color_hex or not re.fullmatch(r"#[0-9a-f]{6}", color_hex):
            return None
        rgb = (int(color_hex[1:3], 16), int(color_hex[3:5], 16), int(color_hex[5:7], 16))
    elif re.match(r"rgba?\(", value, re.IGNORECASE):
        rgb = _parse_rgb(value)
        if rgb is None:
            return None
        color_hex = _rgb_to_hex(rgb)
    elif re.match(r"hsla?\(", value, re.IGNORECASE):
        rgb = _parse_hsl(value)
        if rgb is None:
            return None
        color_hex = _rgb_to_hex(rgb)
    else:
        return None

    return ColorEvidence(color_hex=color_hex, hsl=rgb_to_hsl(*rgb))


def extract_color_tokens(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [token.strip() for token in COLOR_TOKEN_RE.findall(str(text)) if token.strip()]


def _is_light(hsl: Hsl) -> bool:
    return hsl.l >= 85 or (hsl.l >= 78 and hsl.s <= 10)


def _is_dark(hsl: Hsl) -> bool:
    return hsl.l <= 30


def _is_colorful(hsl: Hsl) -> bool:
    return hsl.s >= 20 and 12 <= hsl.l <= 88


def choose_palette(evidence: List[ColorEvidence]) -> ColorPalette:
    """Pick palette roles from evidence ranked by weighted score."""
    if not evidence:
        return ColorPalette()

    primary = next((entry for entry in evidence if _is_colorful(entry.hsl)), evidence[0])
    secondary = next(
        (entry for entry in evidence if entry.color_hex != primary.color_hex and _is_colorful(entry.hsl)),
        None,
    )
    others = [entry for entry in evidence if entry.color_hex != primary.color_hex]
    # max() keeps the best-ranked of equally saturated colors.
    accent = max(others, key=lambda entry: entry.hsl.s, default=None) or secondary
    background = next((entry for entry in evidence if _is_light(entry.hsl)), evidence[-1])
    text = next((entry for entry in evidence if _is_dark(entry.hsl)), primary)

    return ColorPalette(
        primary=primary.color_hex,
        secondary=secondary.color_hex if secondary else None,
        accent=accent.color_hex if accent else None,
        background=background.color_hex,
        text=text.color_hex,
    )


class _EvidenceCollector:
    def __init__(self) -> None:
        self.by_hex: Dict[str, ColorEvidence] = {}

    def add(self, token: str, weight: float, source: str) -> None:
        parsed = parse_color_token(token)
        if parsed is None:
            return
        entry = self.by_hex.setdefault(parsed.color_hex, parsed)
        entry.count += 1
        entry.weighted_score += weight
        if source not in entry.sources:
            entry.sources.append(source)

    def add_css(self, css_text: str, source: str) -> None:
        for token in extract_color_tokens(css_text):
            self.add(token, PLAIN_TOKEN_WEIGHT, source)
        for match in CSS_VAR_RE.finditer(css_text):
            name = match.group(1).lower()
            weight = BRAND_VAR_WEIGHT if _BRAND_VAR_RE.search(name) else OTHER_VAR_WEIGHT
            for token in extract_color_tokens(match.group(2)):
                self.add(token, weight, f"var:{name}")

    def ranked(self) -> List[ColorEvidence]:
        entries = [
            ColorEvidence(
                color_hex=entry.color_hex,
                hsl=entry.hsl,
                count=entry.count,
                weighted_score=round(entry.weighted_score, 3),
                sources=entry.sources[:8],
            )
            for entry in self.by_hex.values()
        ]
        entries.sort(key=lambda entry: entry.weighted_score, reverse=True)
        return entries[:MAX_EVIDENCE]


def infer_colors(
    pages: List[ParsedPage],
    fetch_client,
    warnings: List[CrawlWarning],
    origin: str,
    css_cache: Optional[StylesheetCache] = None,
) -> ColorPalette:
    """Collect color evidence from every page and choose a palette.

    Only stylesheets on *origin* are fetched; failures land in *warnings*.
    """
    cache = css_cache or StylesheetCache(fetch_client)
    collector = _EvidenceCollector()

    for page in pages:
        if page.meta.theme_color:
            collector.add(page.meta.theme_color, THEME_COLOR_WEIGHT, f"theme-color:{page.url}")
        for css_text in page.style_signals.inline_styles:
            collector.add_css(css_text, f"inline-style:{page.url}")
        for style_attr in page.style_signals.inline_style_attributes:
            collector.add_css(style_attr, f"inline-attr:{page.url}")
        for stylesheet_url in page.style_signals.stylesheet_links:
            if not is_same_origin(stylesheet_url, origin):
                continue
            css_text = cache.get(stylesheet_url, warnings)
            if css_text:
                collector.add_css(css_text, f"stylesheet:{stylesheet_url}")

    evidence = collector.ranked()
    palette = choose_palette(evidence)
    palette.evidence = evidence
    return palette
