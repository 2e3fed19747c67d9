"""Shared infrastructure for Pit Trivia.

- adapters: REST adapter for the trivia backend
- utils: Common utilities (retry, logging)
"""

__version__ = "0.2.0"
