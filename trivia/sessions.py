"""Sinks that receive game session snapshots.

A snapshot is the plain dict produced by ``TriviaGame.snapshot()``. Sinks
do not interpret it.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from shared.adapters.api_adapter import TriviaApiAdapter

logger = logging.getLogger(__name__)


class SessionSink(Protocol):
    def save(self, snapshot: Dict[str, Any]) -> None: ...


class JsonlSessionSink:
    """Append each snapshot as one JSON line."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, snapshot: Dict[str, Any]) -> None:
        record = {"savedAt": datetime.now(timezone.utc).isoformat(), **snapshot}
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        logger.debug(f"Saved session {snapshot.get('sessionId')} to {self.path}")

    def load_all(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


class ApiSessionSink:
    """Create the session on first save, then patch it."""

    def __init__(self, adapter: TriviaApiAdapter):
        self.adapter = adapter
        self.remote_id: Optional[str] = None

    def save(self, snapshot: Dict[str, Any]) -> None:
        if self.remote_id is None:
            self.remote_id = self.adapter.create_game_session(snapshot)
            logger.info(f"Created remote game session {self.remote_id}")
        else:
            self.adapter.update_game_session(self.remote_id, snapshot)
