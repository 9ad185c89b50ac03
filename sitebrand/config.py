"""Centralised settings for the sitebrand extractor.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).  Explicit arguments
passed to :class:`~sitebrand.extractor.fetcher.FetchClient` or to
``extract()`` always take precedence over these defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # HTTP client
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "SITEBRAND_USER_AGENT", "SitebrandBot/1.0 (+https://sitebrand.local)"
        )
    )
    request_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("SITEBRAND_TIMEOUT_MS", "8000"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("SITEBRAND_MAX_RETRIES", "3"))
    )

    # ------------------------------------------------------------------
    # Per-host pacing
    # ------------------------------------------------------------------
    min_delay_ms: int = field(
        default_factory=lambda: int(os.environ.get("SITEBRAND_MIN_DELAY_MS", "150"))
    )
    jitter_ms: int = field(
        default_factory=lambda: int(os.environ.get("SITEBRAND_JITTER_MS", "40"))
    )
    cooldown_cap_ms: int = field(
        default_factory=lambda: int(os.environ.get("SITEBRAND_COOLDOWN_CAP_MS", "2000"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("SITEBRAND_LOG_LEVEL", "INFO")
    )
    log_json: bool = field(
        default_factory=lambda: _env_bool("SITEBRAND_LOG_JSON", True)
    )


# Module-level singleton; import this everywhere:
#   from sitebrand.config import settings
settings = Settings()
