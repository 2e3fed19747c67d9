"""Game settings loaded from YAML with environment overrides."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


def _get_inputs_path() -> Path:
    """Get path to trivia/inputs directory."""
    return Path(__file__).parent / "inputs"


@dataclass
class GameSettings:
    """Tunable game rules and service endpoints."""
    answer_seconds: int = 30
    expiry_grace: float = 0.5
    pit_unlock_solved: int = 4
    board_categories: int = 6
    language: str = "en"
    api_base_url: str = "http://localhost:3000/api"
    api_token: Optional[str] = None


# Environment variable -> settings field
ENV_OVERRIDES = {
    "TRIVIA_API_BASE_URL": "api_base_url",
    "TRIVIA_API_TOKEN": "api_token",
    "TRIVIA_LANGUAGE": "language",
}


def load_settings(settings_file: Optional[Path] = None) -> GameSettings:
    """Load settings from YAML, then apply environment overrides.

    A missing file is not an error; defaults are used.
    """
    if settings_file is None:
        settings_file = _get_inputs_path() / "settings.yaml"

    data = {}
    try:
        with open(settings_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file not found: {settings_file}, using defaults")

    known = {f.name: f for f in fields(GameSettings)}
    values = {}
    for key, value in data.get("game", data).items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting: {key}")
            continue
        values[key] = value

    for env_var, key in ENV_OVERRIDES.items():
        env_value = os.getenv(env_var)
        if env_value:
            values[key] = env_value

    settings = GameSettings(**values)
    logger.debug(f"Loaded settings: {settings}")
    return settings
