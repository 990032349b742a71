"""Base client utilities: logging, retry with backoff."""

import asyncio
import logging

from hotel_api.config import MAX_RETRIES, RETRY_BASE_DELAY, RETRY_MAX_DELAY
from hotel_api.exceptions import ApiRequestError

# Structured logger for all remote calls
logger = logging.getLogger("ipro")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s [%(name)s] %(levelname)s: %(message)s'))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def backoff_delay(attempt: int) -> float:
    """Delay before retry number `attempt` (1-based), doubling up to the cap."""
    return min(RETRY_BASE_DELAY * 2 ** (attempt - 1), RETRY_MAX_DELAY)


async def retry_with_backoff(coro_factory, description: str = "request", max_attempts: int = MAX_RETRIES):
    """Retry an async operation with exponential backoff.

    coro_factory: a callable that returns a new coroutine each call.
    Only retryable ApiRequestErrors are retried; anything else propagates
    on the first failure.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await coro_factory()
        except ApiRequestError as e:
            if not e.retryable or attempt == max_attempts:
                if attempt > 1:
                    logger.error("[%s] All %d attempts failed. Last error: %s", description, attempt, e)
                raise
            wait = backoff_delay(attempt)
            logger.warning("[%s] Attempt %d failed: %s. Retrying in %ss...", description, attempt, e, wait)
            await asyncio.sleep(wait)
