"""JSON-formatted logging for the trivia CLI."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from rich.logging import RichHandler

LOG_FILE_NAME = "trivia.log"


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(log_dir: Path, verbose: bool = False) -> logging.Logger:
    """Send all logs to log_dir/trivia.log as JSON lines, and to the console when verbose.

    Safe to call more than once; previous handlers on the root logger are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    file_handler.setFormatter(JSONFormatter())
    file_handler.setLevel(logging.DEBUG)
    root.addHandler(file_handler)

    if verbose:
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setLevel(logging.DEBUG)
        root.addHandler(console_handler)

    root.setLevel(logging.DEBUG)
    return root
