"""Outbound HTTP calls with bounded exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
BASE_DELAY_MS = 1000
MAX_DELAY_MS = 8000

Sleeper = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int) -> float:
    """Return the wait in seconds after the given 1-based attempt."""
    return min(BASE_DELAY_MS * 2 ** (attempt - 1), MAX_DELAY_MS) / 1000


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    sleep: Sleeper = asyncio.sleep,
    **request_kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transport failures and non-success responses.

    Returns the first successful response. On the last attempt the response is
    returned whatever its status, so callers must check ``response.is_success``
    themselves. A transport error on the last attempt is re-raised.

    Args:
        client: Shared async HTTP client
        method: HTTP method
        url: Absolute request URL
        max_attempts: Total number of attempts, at least 1
        sleep: Awaitable used for the backoff wait
        **request_kwargs: Passed through to ``client.request``

    Returns:
        The upstream response
    """
    max_attempts = max(1, max_attempts)

    for attempt in range(1, max_attempts + 1):
        last_attempt = attempt == max_attempts
        try:
            response = await client.request(method, url, **request_kwargs)
        except httpx.TransportError as e:
            if last_attempt:
                logger.error(f"{method} {url} failed after {attempt} attempts: {e}")
                raise
            logger.warning(f"{method} {url} attempt {attempt} failed: {e}")
        else:
            if response.is_success or last_attempt:
                return response
            logger.warning(f"{method} {url} attempt {attempt} returned {response.status_code}")

        delay = backoff_delay(attempt)
        logger.info(f"Retrying {method} {url} in {delay:.1f}s")
        await sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
