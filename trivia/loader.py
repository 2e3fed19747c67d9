"""Category loading for Pit Trivia.

Supports two sources with the same record shape (``{categories: [...]}``):
- Local YAML file (default: the bundled sample bank)
- The backend REST API through ``TriviaApiAdapter``

Usage:
    loader = CategoryLoader()
    categories = loader.load()
    chosen = loader.select(["science", "history"])
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from shared.adapters.api_adapter import TriviaApiAdapter
from trivia.models import Category, Question

logger = logging.getLogger(__name__)


def _default_categories_file() -> Path:
    return Path(__file__).parent / "inputs" / "categories.yaml"


def parse_category(record: Dict[str, Any]) -> Optional[Category]:
    """Parse one category record, dropping malformed questions. Returns None if unusable."""
    try:
        category = Category.from_dict({**record, "questions": []})
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed category {record.get('id')!r}: {e}")
        return None

    for raw in record.get("questions") or []:
        try:
            category.questions.append(Question.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping question {raw.get('id')!r} in {category.id}: {e}")
    return category


class CategoryLoader:
    """Load enabled categories from a YAML bank or the backend."""

    def __init__(
        self,
        categories_file: Optional[str] = None,
        adapter: Optional[TriviaApiAdapter] = None,
    ):
        self.categories_file = Path(categories_file) if categories_file else _default_categories_file()
        self.adapter = adapter

        # Cached data
        self._categories: Optional[List[Category]] = None

    def _load_records(self) -> List[Dict[str, Any]]:
        if self.adapter is not None:
            return self.adapter.get_categories()

        try:
            with open(self.categories_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.error(f"Categories file not found: {self.categories_file}")
            raise
        return data.get("categories") or []

    def load(self) -> List[Category]:
        """Return enabled categories ordered by sort order (stable)."""
        if self._categories is not None:
            return self._categories

        parsed = [parse_category(record) for record in self._load_records()]
        categories = [c for c in parsed if c is not None and c.enabled]
        categories.sort(key=lambda c: c.sort_order)

        source = "API" if self.adapter is not None else str(self.categories_file)
        logger.info(f"Loaded {len(categories)} enabled categories from {source}")
        self._categories = categories
        return categories

    def select(self, category_ids: Sequence[str]) -> List[Category]:
        """Pick categories by id, in the order given."""
        by_id = {c.id: c for c in self.load()}
        missing = [cid for cid in category_ids if cid not in by_id]
        if missing:
            raise KeyError(f"Unknown categories: {', '.join(missing)}")
        return [by_id[cid] for cid in category_ids]
