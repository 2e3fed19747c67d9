"""Localized strings for the trivia host."""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

# Cache for loaded translation files (keyed by file path)
_STRINGS_CACHE: Dict[str, Dict[str, Dict[str, str]]] = {}


def load_strings(translations_file: Optional[Path] = None) -> Dict[str, Dict[str, str]]:
    """Load the language -> key -> text table from YAML (cached)."""
    if translations_file is None:
        translations_file = Path(__file__).parent / "inputs" / "translations.yaml"

    cache_key = str(translations_file)
    if cache_key in _STRINGS_CACHE:
        return _STRINGS_CACHE[cache_key]

    with open(translations_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    _STRINGS_CACHE[cache_key] = data
    logger.debug(f"Loaded translations for {sorted(data)} from {translations_file}")
    return data


class Translator:
    """Lookup object handed to the host for every user-facing string."""

    def __init__(self, language: str = DEFAULT_LANGUAGE, strings: Optional[Dict[str, Dict[str, str]]] = None):
        self.strings = strings if strings is not None else load_strings()
        if language not in self.strings:
            logger.warning(f"No translations for '{language}', using {DEFAULT_LANGUAGE}")
            language = DEFAULT_LANGUAGE
        self.language = language

    def t(self, key: str, **fmt) -> str:
        """Translate key, falling back to English and then to the key itself."""
        text = self.strings.get(self.language, {}).get(key)
        if text is None:
            text = self.strings.get(DEFAULT_LANGUAGE, {}).get(key, key)
        if fmt:
            try:
                return text.format(**fmt)
            except (KeyError, IndexError):
                logger.debug(f"Missing format arguments for '{key}'")
        return text

    __call__ = t
