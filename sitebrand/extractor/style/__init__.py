"""Style inference: color palette and typography."""

from sitebrand.extractor.style.cache import StylesheetCache
from sitebrand.extractor.style.colors import (
    choose_palette,
    extract_color_tokens,
    hsl_to_rgb,
    infer_colors,
    parse_color_token,
    rgb_to_hsl,
)
from sitebrand.extractor.style.typography import (
    infer_typography,
    parse_fonts_from_css,
    parse_google_fonts_from_url,
    split_font_families,
)

__all__ = [
    "StylesheetCache",
    "choose_palette",
    "extract_color_tokens",
    "hsl_to_rgb",
    "infer_colors",
    "infer_typography",
    "parse_color_token",
    "parse_fonts_from_css",
    "parse_google_fonts_from_url",
    "rgb_to_hsl",
    "split_font_families",
]
