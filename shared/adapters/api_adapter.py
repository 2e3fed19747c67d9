"""REST adapter for the trivia backend.

Wraps the two endpoints the game needs:
- ``GET /categories`` returning ``{"categories": [...]}``
- ``POST /game-sessions`` and ``PATCH /game-sessions/{id}`` for session snapshots
"""

import logging
import os
from typing import Any, Dict, List, Optional

import requests

from ..utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api"


def _get_base_url() -> str:
    """Get API base URL from environment, falling back to the local dev server."""
    return os.getenv("TRIVIA_API_BASE_URL", DEFAULT_BASE_URL)


class TriviaApiAdapter:
    """Stateful client holding the base URL, bearer token and an HTTP session."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or _get_base_url()).rstrip("/")
        self.token = token if token is not None else os.getenv("TRIVIA_API_TOKEN")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json; charset=utf-8",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @retry_with_backoff(max_retries=3, base_delay=1.0, exceptions=(requests.RequestException,))
    def _request(self, method: str, endpoint: str, payload: Optional[Dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"API request: {method} {url} (token: {bool(self.token)})")

        response = self.session.request(
            method, url, json=payload, headers=self._headers(), timeout=self.timeout
        )
        logger.debug(f"API response: {response.status_code} for {method} {endpoint}")

        if not response.ok:
            try:
                error_msg = response.json().get("error", "")
            except ValueError:
                error_msg = response.text
            if error_msg:
                logger.error(f"API error {response.status_code} on {endpoint}: {error_msg}")
        response.raise_for_status()

        if not response.content:
            return {}
        return response.json()

    def get_categories(self) -> List[Dict[str, Any]]:
        """Fetch raw category records."""
        data = self._request("GET", "/categories")
        categories = data.get("categories") or []
        logger.info(f"Fetched {len(categories)} categories from {self.base_url}")
        return categories

    def create_game_session(self, snapshot: Dict[str, Any]) -> str:
        """Create a session and return its id."""
        data = self._request("POST", "/game-sessions", snapshot)
        session_id = data.get("sessionId") or snapshot.get("sessionId")
        if not session_id:
            raise ValueError("Backend did not return a sessionId")
        return session_id

    def update_game_session(self, session_id: str, snapshot: Dict[str, Any]) -> None:
        self._request("PATCH", f"/game-sessions/{session_id}", snapshot)
