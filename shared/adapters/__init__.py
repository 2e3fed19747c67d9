"""HTTP adapters for external services."""

from .api_adapter import TriviaApiAdapter

__all__ = ["TriviaApiAdapter"]
