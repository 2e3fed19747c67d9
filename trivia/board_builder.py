"""Board generation for Pit Trivia.

Turns the caller's category selection into a playable board: six questions
per category, two at each point tier. Categories that cannot fill every tier
fall back to six random questions whose points are assigned by position.

The random source is injectable so tests can pass a fixed-sequence stub:

    board = build_board(categories, rng=random.Random(42))
"""

import logging
import random
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence, TypeVar

from trivia.models import (
    BOARD_CATEGORIES,
    QUESTIONS_PER_CATEGORY,
    QUESTIONS_PER_TIER,
    TIERS,
    Category,
    Question,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything with a ``random()`` returning a float in [0, 1)."""

    def random(self) -> float: ...


def pick_n(items: Sequence[T], n: int, rng: Optional[RandomSource] = None) -> List[T]:
    """Pick n random elements (Fisher-Yates shuffle of a copy, then take the first n)."""
    rng = rng or random.Random()
    pool = list(items)
    for i in range(len(pool) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:n]


def tier_for_position(index: int) -> int:
    """Point value forced onto the nth fallback question (0-1 -> 200, 2-3 -> 400, 4-5 -> 600)."""
    return TIERS[min(index // QUESTIONS_PER_TIER, len(TIERS) - 1)]


def build_category(category: Category, rng: Optional[RandomSource] = None) -> Category:
    """Choose the six cells for one category. The source category is not modified."""
    rng = rng or random.Random()
    reset = [replace(q, is_solved=False) for q in category.questions]

    buckets = {tier: [q for q in reset if q.points == tier] for tier in TIERS}

    chosen: List[Question]
    if all(len(bucket) >= QUESTIONS_PER_TIER for bucket in buckets.values()):
        chosen = []
        for tier in TIERS:
            chosen.extend(pick_n(buckets[tier], QUESTIONS_PER_TIER, rng))
        logger.info(f"Category {category.id}: picked {QUESTIONS_PER_TIER} per tier")
    else:
        picked = pick_n(reset, QUESTIONS_PER_CATEGORY, rng)
        chosen = [replace(q, points=tier_for_position(i)) for i, q in enumerate(picked)]
        counts = {tier: len(bucket) for tier, bucket in buckets.items()}
        logger.info(
            f"Category {category.id}: tiers short {counts}, "
            f"fell back to {len(chosen)} random questions with positional points"
        )
        if len(chosen) < QUESTIONS_PER_CATEGORY:
            logger.warning(
                f"Category {category.id} only has {len(chosen)} questions; "
                f"board column will be short"
            )

    return replace(category, questions=chosen)


def build_board(
    source_categories: Sequence[Category],
    count: int = BOARD_CATEGORIES,
    rng: Optional[RandomSource] = None,
) -> List[Category]:
    """Build a board from the caller's categories, preserving their order.

    Args:
        source_categories: Categories chosen by the players (disabled ones are skipped)
        count: Number of categories on the board
        rng: Random source; defaults to a fresh ``random.Random()``

    Returns:
        New Category objects holding the chosen, unsolved questions

    Raises:
        ValueError: If fewer than ``count`` enabled categories were supplied
    """
    rng = rng or random.Random()
    enabled = [c for c in source_categories if c.enabled]
    if len(enabled) < count:
        raise ValueError(f"Need {count} enabled categories, got {len(enabled)}")

    board = [build_category(category, rng) for category in enabled[:count]]
    logger.info(f"Board built: {len(board)} categories, {sum(len(c.questions) for c in board)} cells")
    return board
