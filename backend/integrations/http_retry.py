"""Resilient outbound HTTP transport.

Every provider and price-oracle request goes through :func:`fetch_with_retry`,
which makes up to ``1 + max_retries`` sequential attempts, each bounded by
its own deadline. Attempt outcomes are classified into a closed set of
dataclasses and dispatched in one place:

- ``Success`` / ``TerminalResponse`` are returned immediately
- ``TerminalFault`` is re-raised immediately
- ``RetryableResponse`` (429, 5xx) and ``RetryableFault`` (timeouts,
  connection resets) sleep and try again

On exhaustion the last response is returned, or the last fault re-raised.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_TIMEOUT_MS = 10_000

# Exceptions worth another attempt. Anything else is a programming or
# configuration error and surfaces on the first attempt.
RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class Success:
    response: httpx.Response


@dataclass(frozen=True)
class RetryableResponse:
    response: httpx.Response


@dataclass(frozen=True)
class TerminalResponse:
    response: httpx.Response


@dataclass(frozen=True)
class RetryableFault:
    error: Exception


@dataclass(frozen=True)
class TerminalFault:
    error: Exception


Outcome = Success | RetryableResponse | TerminalResponse | RetryableFault | TerminalFault


def classify_response(response: httpx.Response) -> Outcome:
    """Classify a completed HTTP response by status code."""
    status = response.status_code
    if status < 400:
        return Success(response)
    if status == 429 or status >= 500:
        return RetryableResponse(response)
    return TerminalResponse(response)


def classify_exception(exc: Exception) -> Outcome:
    """Classify an exception raised while making a request."""
    if isinstance(exc, RETRYABLE_EXCEPTIONS):
        return RetryableFault(exc)
    return TerminalFault(exc)


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header value into milliseconds.

    Accepts delta-seconds (``"2"`` -> 2000.0) or an HTTP-date, which is
    converted to the non-negative distance from ``now``.

    Returns:
        Delay in milliseconds, or None if the header is absent or unparseable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if seconds < 0:
            return None
        return seconds * 1000

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (retry_at - now).total_seconds() * 1000)


def compute_backoff_ms(attempt_index: int, base_delay_ms: float) -> float:
    """Exponential backoff with uniform jitter.

    ``attempt_index`` is 0 for the first retry.
    """
    return base_delay_ms * (2 ** attempt_index) + random.uniform(0, base_delay_ms)


def _retry_delay_ms(outcome: Outcome, attempt_index: int, base_delay_ms: float) -> float:
    if isinstance(outcome, RetryableResponse):
        override = parse_retry_after(outcome.response.headers.get("Retry-After"))
        if override is not None:
            return override
    return compute_backoff_ms(attempt_index, base_delay_ms)


def _describe(outcome: Outcome) -> str:
    if isinstance(outcome, RetryableResponse):
        return f"HTTP {outcome.response.status_code}"
    if isinstance(outcome, RetryableFault):
        return type(outcome.error).__name__
    return type(outcome).__name__


async def fetch_with_retry(
    method: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    label: str | None = None,
    **request_kwargs,
) -> httpx.Response:
    """Perform an HTTP request with bounded retries.

    Args:
        method: HTTP method.
        url: Absolute URL, or a path relative to ``client.base_url``.
        client: Shared ``httpx.AsyncClient``. A short-lived client is
                created (and closed) when omitted.
        max_retries: Retries after the first attempt.
        base_delay_ms: Base of the exponential backoff.
        timeout_ms: Deadline for each individual attempt.
        label: Name used in retry log lines (defaults to the URL).
        **request_kwargs: Passed through to ``client.request``. ``timeout``
                defaults to ``timeout_ms`` so httpx never gives up first.

    Returns:
        The first success or terminal response, or the last retryable
        response once retries are exhausted.

    Raises:
        Exception: A terminal fault immediately, or the last retryable
            fault once retries are exhausted.
    """
    # httpx's own 5s default would otherwise cut attempts short
    request_kwargs.setdefault("timeout", timeout_ms / 1000)
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout_ms / 1000)
    total_attempts = max_retries + 1
    label = label or url

    try:
        last: Outcome | None = None
        for attempt in range(total_attempts):
            try:
                response = await asyncio.wait_for(
                    client.request(method, url, **request_kwargs),
                    timeout=timeout_ms / 1000,
                )
                outcome = classify_response(response)
            except Exception as exc:
                outcome = classify_exception(exc)

            if isinstance(outcome, (Success, TerminalResponse)):
                return outcome.response
            if isinstance(outcome, TerminalFault):
                raise outcome.error

            last = outcome
            if attempt == max_retries:
                break

            delay_ms = _retry_delay_ms(outcome, attempt, base_delay_ms)
            logger.warning(
                "%s: %s, retrying in %.0fms (attempt %d/%d)",
                label, _describe(outcome), delay_ms, attempt + 1, total_attempts,
            )
            await asyncio.sleep(delay_ms / 1000)

        logger.warning("%s: giving up after %d attempts (%s)", label, total_attempts, _describe(last))
        if isinstance(last, RetryableResponse):
            return last.response
        raise last.error
    finally:
        if owns_client:
            await client.aclose()
