"""
Bounded retry for calls to third-party HTTP services.

Retries transport failures (connection errors, timeouts) and responses
with a retryable status. Other responses are returned as-is for the
caller to inspect.
"""

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int = 1,
    backoff: float = 0.5,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    Args:
        client: Client used for every attempt
        method: HTTP method
        url: Request URL
        retries: Extra attempts after the first (0 disables retry)
        backoff: Base delay in seconds, doubled after each attempt
        **kwargs: Passed to client.request

    Returns:
        The last response received

    Raises:
        httpx.TransportError: If the final attempt fails at transport level
    """
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if attempt >= retries:
                raise
            logger.warning(
                "%s %s failed (%s), retry %d/%d", method, url, type(e).__name__, attempt + 1, retries
            )
        else:
            if response.status_code not in RETRYABLE_STATUS_CODES or attempt >= retries:
                return response
            logger.warning(
                "%s %s returned %d, retry %d/%d",
                method,
                url,
                response.status_code,
                attempt + 1,
                retries,
            )

        await asyncio.sleep(backoff * (2**attempt))
        attempt += 1
