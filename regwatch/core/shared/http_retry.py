# regwatch/core/shared/http_retry.py
"""
Fetch-with-retry primitive shared by every poller.

Wraps a single HTTP call with bounded exponential backoff and ``Retry-After``
honoring. 2xx responses return immediately; 429 and 5xx responses are retried
until the attempt budget runs out, at which point the last response is handed
back to the caller instead of raised, so pollers can decide whether to skip a
page or stop a term. Transport errors (timeouts, DNS, refused connections) are
retried the same way and the last one is re-raised once attempts are spent.

Usage:
    from regwatch.core.shared.http_retry import fetch_with_retries

    async with httpx.AsyncClient() as client:
        response = await fetch_with_retries(
            client, "GET", url, params={"page": 1}, attempts=3
        )
        if response.is_success:
            data = response.json()

Backoff:
    wait = min(max_delay, base_delay * 2 ** (attempt - 1)) + uniform(0, 0.1)
    A Retry-After header (delta-seconds or HTTP-date) replaces the computed
    wait, capped at ``retry_after_cap``.
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Optional

import httpx

from regwatch.config import settings

logger = logging.getLogger("regwatch.http")

# Upper bound of the random jitter added to computed backoff waits (seconds)
JITTER_SECONDS = 0.1

RETRYABLE_STATUS_CODES = frozenset({429})


def format_error(e: Exception) -> str:
    """
    Format exception with type name when message is empty.

    Some network exceptions (e.g., httpx.RemoteProtocolError) can have empty
    string representations, making error logs useless.
    """
    msg = str(e)
    if not msg or msg.isspace():
        return f"{type(e).__name__}: Connection error (no details available)"
    return f"{type(e).__name__}: {msg}"


def is_retryable_status(status_code: int) -> bool:
    """429 and every 5xx are worth another attempt."""
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600


def compute_backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential backoff for a 1-based attempt number, plus jitter."""
    return min(max_delay, base_delay * (2 ** (attempt - 1))) + random.uniform(0, JITTER_SECONDS)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After header value into seconds.

    Accepts delta-seconds ("120") or an HTTP-date
    ("Wed, 21 Oct 2015 07:28:00 GMT"). Returns None for missing or
    unparseable values; dates in the past yield 0.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
        return max(0.0, seconds)
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at is None:
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (retry_at - now).total_seconds())


async def fetch_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    timeout: Optional[float] = None,
    retry_after_cap: Optional[float] = None,
    on_retry: Optional[Callable[[int, str, float], Awaitable[Any]]] = None,
    **request_kwargs: Any,
) -> httpx.Response:
    """
    Perform one HTTP request with retries on 429/5xx and transport errors.

    Args:
        client: Shared httpx.AsyncClient
        method: HTTP method
        url: Target URL
        attempts: Total attempts including the first (default settings.fetch_attempts)
        base_delay: Backoff base in seconds (default settings.fetch_base_delay_seconds)
        max_delay: Backoff ceiling in seconds before jitter (default settings.fetch_max_delay_seconds)
        timeout: Per-attempt timeout in seconds (default settings.fetch_timeout_seconds)
        retry_after_cap: Longest server-requested wait honored (default settings.fetch_retry_after_cap_seconds)
        on_retry: Optional async callback(attempt, reason, wait_seconds) called before each wait
        **request_kwargs: Passed to client.request (params, headers, json, ...)

    Returns:
        The first 2xx/non-retryable response, or the final attempt's response.

    Raises:
        httpx.TransportError: The last transport error once attempts are exhausted
    """
    attempts = max(1, attempts if attempts is not None else settings.fetch_attempts)
    base_delay = base_delay if base_delay is not None else settings.fetch_base_delay_seconds
    max_delay = max_delay if max_delay is not None else settings.fetch_max_delay_seconds
    timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
    retry_after_cap = (
        retry_after_cap if retry_after_cap is not None else settings.fetch_retry_after_cap_seconds
    )

    for attempt in range(1, attempts + 1):
        try:
            response = await client.request(method, url, timeout=timeout, **request_kwargs)
        except httpx.TransportError as e:
            if attempt >= attempts:
                logger.warning(f"{method} {url} failed after {attempts} attempts: {format_error(e)}")
                raise
            reason = format_error(e)
            wait = compute_backoff(attempt, base_delay, max_delay)
        else:
            if not is_retryable_status(response.status_code) or attempt >= attempts:
                return response
            reason = f"HTTP {response.status_code}"
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                wait = min(retry_after, retry_after_cap)
            else:
                wait = compute_backoff(attempt, base_delay, max_delay)

        if on_retry:
            await on_retry(attempt, reason, wait)
        logger.warning(
            f"Transient error (attempt {attempt}/{attempts}) for {url}: {reason}. "
            f"Waiting {wait:.2f}s before retry..."
        )
        await asyncio.sleep(wait)

    # Loop always returns or raises on the final attempt
    raise RuntimeError("fetch_with_retries exited without a response")
