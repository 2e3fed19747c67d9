"""Shared utility modules.

- retry: Exponential backoff with HTTP 429 Retry-After support
- logging: JSON-formatted logging utilities
"""

from .retry import retry_with_backoff
from .logging import JSONFormatter, setup_logging

__all__ = [
    "retry_with_backoff",
    "JSONFormatter",
    "setup_logging",
]
