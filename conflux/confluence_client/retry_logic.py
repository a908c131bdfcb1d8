"""Retry with exponential backoff for Confluence rate limiting.

Only HTTP 429 responses are retried. Any other error propagates on the first
attempt so the caller's error translation sees it unchanged.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from .errors import APIAccessError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3
MAX_RETRY_AFTER = 30


def retry_on_rate_limit(
    func: Callable[[], T],
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call func, retrying on rate limit with 1s, 2s, 4s... backoff.

    A Retry-After header on the 429 response overrides the computed delay
    (capped at MAX_RETRY_AFTER seconds).

    Args:
        func: Zero-argument callable performing the API request
        max_retries: Number of retries after the first attempt
        sleep: Sleep function (injectable for tests)

    Returns:
        The return value of func

    Raises:
        APIAccessError: If the rate limit persists after max_retries
    """
    for attempt in range(max_retries + 1):
        try:
            return func()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise

            if attempt >= max_retries:
                logger.error(f"Rate limit persisted after {max_retries} retries, giving up")
                raise APIAccessError(
                    f"Confluence API failure (after {max_retries} retries)"
                ) from e

            wait_time = _retry_after(e)
            if wait_time is None:
                wait_time = 2 ** attempt
            logger.info(
                f"Rate limit hit, retrying in {wait_time}s "
                f"(retry {attempt + 1}/{max_retries})"
            )
            sleep(wait_time)

    raise APIAccessError(f"Confluence API failure (after {max_retries} retries)")


def _status_code(exception: Exception) -> Optional[int]:
    status = getattr(exception, 'status_code', None)
    if isinstance(status, int):
        return status
    response = getattr(exception, 'response', None)
    status = getattr(response, 'status_code', None)
    if isinstance(status, int):
        return status
    return None


def _retry_after(exception: Exception) -> Optional[float]:
    """Read a numeric Retry-After header from the failed response, if any."""
    response = getattr(exception, 'response', None)
    headers = getattr(response, 'headers', None)
    if not isinstance(headers, dict) and not hasattr(headers, 'get'):
        return None
    value = headers.get('Retry-After') if headers is not None else None
    if value is None:
        return None
    try:
        return min(float(value), MAX_RETRY_AFTER)
    except (TypeError, ValueError):
        return None


def is_rate_limit_error(exception: Exception) -> bool:
    """Check if an exception represents an HTTP 429 response."""
    if _status_code(exception) == 429:
        return True

    error_msg = str(exception).lower()
    return any(pattern in error_msg for pattern in (
        '429',
        'too many requests',
        'rate limit exceeded',
        'rate limited',
    ))
