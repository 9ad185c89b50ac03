"""Per-host request pacing with adaptive cooldown."""

from __future__ import annotations

import random
import threading
import time
from typing import Dict, Optional
from urllib.parse import urlsplit

import structlog

from sitebrand.config import settings

logger = structlog.get_logger(__name__)

_COOLDOWN_FLOOR_MS = 250
_BACKPRESSURE_STATUSES = (429, 503)


def _host(url: str) -> Optional[str]:
    try:
        netloc = urlsplit(url).netloc.lower()
    except ValueError:
        return None
    return netloc or None


class HostRateLimiter:
    """Keeps requests to one host at least ``min_delay_ms`` apart.

    A ``429``/``503`` response doubles the host's cooldown (starting at
    250 ms, capped at ``cooldown_cap_ms``); any other status below 500 clears
    it.  The per-host maps are lock-guarded so one limiter may be shared by
    extractions running in a thread pool.
    """

    def __init__(
        self,
        min_delay_ms: Optional[int] = None,
        jitter_ms: Optional[int] = None,
        cooldown_cap_ms: Optional[int] = None,
    ) -> None:
        self.min_delay_ms = max(0, settings.min_delay_ms if min_delay_ms is None else min_delay_ms)
        self.jitter_ms = max(0, settings.jitter_ms if jitter_ms is None else jitter_ms)
        self.cooldown_cap_ms = max(
            0, settings.cooldown_cap_ms if cooldown_cap_ms is None else cooldown_cap_ms
        )
        self._last_by_host: Dict[str, float] = {}
        self._cooldown_by_host: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _jitter(self) -> int:
        if self.jitter_ms <= 0:
            return 0
        return random.randint(0, self.jitter_ms)

    def cooldown_for(self, url: str) -> int:
        """Current cooldown in milliseconds for the host of *url*."""
        host = _host(url)
        if host is None:
            return 0
        with self._lock:
            return self._cooldown_by_host.get(host, 0)

    def wait(self, url: str, extra_delay_ms: float = 0) -> None:
        """Sleep until the next request to *url*'s host is due."""
        host = _host(url)
        if host is None:
            return

        with self._lock:
            last = self._last_by_host.get(host)
            cooldown = self._cooldown_by_host.get(host, 0)

        target_ms = max(self.min_delay_ms, float(extra_delay_ms or 0), cooldown) + self._jitter()
        if last is not None:
            elapsed_ms = (time.monotonic() - last) * 1000
            wait_ms = max(0.0, target_ms - elapsed_ms)
            if wait_ms > 0:
                time.sleep(wait_ms / 1000)

        with self._lock:
            self._last_by_host[host] = time.monotonic()

    def register_status(self, url: str, status: int) -> None:
        """Adapt the host's cooldown to the status of its latest response."""
        host = _host(url)
        if host is None:
            return

        status = int(status or 0)
        with self._lock:
            if status in _BACKPRESSURE_STATUSES:
                previous = self._cooldown_by_host.get(host, 0)
                cooldown = min(self.cooldown_cap_ms, previous * 2) if previous else _COOLDOWN_FLOOR_MS
                self._cooldown_by_host[host] = cooldown
                logger.info("host_cooldown", host=host, status=status, cooldown_ms=cooldown)
            elif 0 < status < 500:
                self._cooldown_by_host[host] = 0
