"""Resilient HTTP GET: bounded, retried, timed-out and size-capped.

:meth:`FetchClient.fetch_url` never raises for network or HTTP problems.
Every outcome comes back as a :class:`FetchResult` whose ``error_code`` is
one of ``timeout``, ``redirect_limit``, ``fetch_error``, ``non_html`` or
``body_too_large_header``.
"""

from __future__ import annotations

import random
import time
from typing import List, Optional

import httpx
import structlog

from sitebrand.config import settings
from sitebrand.extractor.models import CrawlWarning, FetchResult

logger = structlog.get_logger(__name__)

MAX_HTML_BYTES = 2 * 1024 * 1024
MAX_CSS_BYTES = 512 * 1024
MAX_OTHER_TEXT_BYTES = 512 * 1024

MAX_REDIRECTS = 10

_HTML_ACCEPT = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"


class _DeadlineExceeded(Exception):
    """The whole-response deadline passed while the body was streaming."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


def content_limit_bytes(content_type: Optional[str]) -> int:
    """Byte ceiling for a response of the given content type."""
    lower = (content_type or "").lower()
    if "text/html" in lower:
        return MAX_HTML_BYTES
    if "text/css" in lower:
        return MAX_CSS_BYTES
    return MAX_OTHER_TEXT_BYTES


def _backoff_seconds(attempt: int) -> float:
    """``250 * 2^(attempt-1)`` ms plus up to 120 ms of jitter."""
    return (250 * 2 ** (attempt - 1) + random.randint(0, 120)) / 1000


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _read_limited(response: httpx.Response, limit: int, deadline: float) -> tuple[bytes, bool]:
    """Stream at most *limit* bytes; returns ``(body, truncated)``."""
    chunks: List[bytes] = []
    read = 0
    truncated = False
    for chunk in response.iter_bytes():
        if time.monotonic() > deadline:
            raise _DeadlineExceeded()
        if not chunk:
            continue
        if read + len(chunk) <= limit:
            chunks.append(chunk)
            read += len(chunk)
            continue
        remaining = max(0, limit - read)
        if remaining:
            chunks.append(chunk[:remaining])
            read += remaining
        truncated = True
        break
    return b"".join(chunks), truncated


def _classify_exception(exc: Exception) -> tuple[str, str]:
    if isinstance(exc, (httpx.TimeoutException, _DeadlineExceeded)):
        return "timeout", "Request timed out"
    if isinstance(exc, httpx.TooManyRedirects):
        return "redirect_limit", f"Redirect limit exceeded: {exc}"
    return "fetch_error", str(exc) or type(exc).__name__


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class FetchClient:
    """Sequential GET client shared by robots, sitemap, page and CSS fetches.

    ``transport`` is passed straight to :class:`httpx.Client` and exists for
    callers that need a custom transport (proxies, ``httpx.MockTransport``).
    """

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout_ms = int(timeout_ms or settings.request_timeout_ms)
        self.max_retries = int(max_retries or settings.max_retries)
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport

    def fetch_url(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        max_retries: Optional[int] = None,
        accept_html_only: bool = True,
    ) -> FetchResult:
        """GET *url* following redirects, retrying 429/5xx and network errors.

        Retryable statuses and network failures back off exponentially and
        are retried until *max_retries* attempts have been made.  A
        ``Content-Length`` above the content-type ceiling fails without
        reading the body; a streamed body over the ceiling is truncated and
        still returned as ``ok`` with a ``body_truncated`` warning.
        """
        timeout_ms = int(timeout_ms or self.timeout_ms)
        max_retries = max(1, int(max_retries or self.max_retries))
        timeout_s = timeout_ms / 1000

        headers = {
            "User-Agent": self.user_agent,
            "Accept": _HTML_ACCEPT if accept_html_only else "*/*",
        }

        attempts = 0
        attempt_warnings: List[CrawlWarning] = []
        last_error: Optional[FetchResult] = None

        with httpx.Client(
            headers=headers,
            timeout=timeout_s,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            transport=self._transport,
        ) as client:
            while attempts < max_retries:
                attempts += 1
                started = time.monotonic()
                deadline = started + timeout_s

                try:
                    with client.stream("GET", url) as response:
                        status = response.status_code
                        content_type = (response.headers.get("content-type") or "").lower() or None
                        final_url = str(response.url)
                        redirected = bool(response.history)

                        def _result(**overrides) -> FetchResult:
                            values = dict(
                                ok=False,
                                status=status,
                                url=url,
                                final_url=final_url,
                                redirected=redirected,
                                content_type=content_type,
                                duration_ms=_elapsed_ms(started),
                                retries=attempts - 1,
                                warnings=list(attempt_warnings),
                            )
                            values.update(overrides)
                            return FetchResult(**values)

                        if accept_html_only and content_type and "text/html" not in content_type:
                            return _result(error_code="non_html", error_message="Response is not HTML")

                        if is_retryable_status(status):
                            attempt_warnings.append(
                                CrawlWarning("retryable_status", f"Retrying after HTTP {status}")
                            )
                            if attempts < max_retries:
                                logger.info("fetch_retry", url=url, status=status, attempt=attempts)
                                # Leaving the context closes the unread body.
                                raise _RetryStatus()

                        limit = content_limit_bytes(content_type)
                        try:
                            content_length = int(response.headers.get("content-length", ""))
                        except ValueError:
                            content_length = None
                        if content_length is not None and content_length > limit:
                            message = f"Body too large by content-length ({content_length} bytes)"
                            return _result(
                                error_code="body_too_large_header",
                                error_message=message,
                                warnings=attempt_warnings
                                + [CrawlWarning("body_too_large_header", message)],
                            )

                        body, truncated = _read_limited(response, limit, deadline)
                        warnings = list(attempt_warnings)
                        if truncated:
                            warnings.append(
                                CrawlWarning(
                                    "body_truncated", f"Body exceeded {limit} bytes and was truncated"
                                )
                            )
                            logger.info("fetch_truncated", url=url, limit=limit)

                        ok = response.is_success
                        return _result(
                            ok=ok,
                            bytes=len(body),
                            text=body.decode("utf-8", errors="replace"),
                            error_code=None if ok else "fetch_error",
                            error_message=None if ok else f"HTTP {status}",
                            warnings=warnings,
                        )

                except _RetryStatus:
                    time.sleep(_backoff_seconds(attempts))
                    continue
                except (httpx.HTTPError, httpx.InvalidURL, _DeadlineExceeded) as exc:
                    code, message = _classify_exception(exc)
                    logger.info("fetch_failed", url=url, code=code, attempt=attempts, error=message)
                    last_error = FetchResult(
                        ok=False,
                        status=0,
                        url=url,
                        final_url=url,
                        duration_ms=_elapsed_ms(started),
                        retries=attempts - 1,
                        error_code=code,
                        error_message=message,
                        warnings=list(attempt_warnings),
                    )
                    if attempts >= max_retries:
                        return last_error
                    time.sleep(_backoff_seconds(attempts))

        return last_error or FetchResult(
            ok=False,
            status=0,
            url=url,
            final_url=url,
            duration_ms=timeout_ms,
            retries=max_retries - 1,
            error_code="fetch_error",
            error_message="Request failed",
        )


class _RetryStatus(Exception):
    """Internal signal: the response status is retryable and attempts remain."""
