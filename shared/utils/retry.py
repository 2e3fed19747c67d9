"""Exponential backoff for flaky HTTP calls, honoring HTTP 429 Retry-After."""

import functools
import logging
import random
import time
from typing import Callable, Tuple, Type

logger = logging.getLogger(__name__)


def _retry_after_seconds(exc: Exception):
    """Return the Retry-After delay carried by an HTTP 429 response, if any."""
    response = getattr(exc, "response", None)
    if response is None or getattr(response, "status_code", None) != 429:
        return None
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Retry the wrapped function on the given exceptions.

    Args:
        max_retries: Attempts after the first failure
        base_delay: Delay before the first retry, doubled each time
        max_delay: Upper bound on any single delay
        exceptions: Exception types that trigger a retry
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        logger.error(f"{func.__name__} failed after {attempt + 1} attempts: {e}")
                        raise
                    delay = _retry_after_seconds(e)
                    if delay is None:
                        delay = base_delay * (2 ** attempt) + random.uniform(0, base_delay / 2)
                    delay = min(delay, max_delay)
                    attempt += 1
                    logger.warning(
                        f"{func.__name__} failed ({e}); retry {attempt}/{max_retries} in {delay:.1f}s"
                    )
                    time.sleep(delay)

        return wrapper

    return decorator
