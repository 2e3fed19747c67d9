"""Scoring and turn resolution for Pit Trivia.

This is the single place where points move. ``resolve`` is pure: it takes
the current board and teams and returns new snapshots, leaving its inputs
untouched, so the host commits the result in one step.

Rules:
- The credited team gains the question's points.
- If the Pit was armed and its owner is the credited team, the other team
  loses the same points (the only way a score goes negative).
- The cell is marked solved whoever answered, including nobody.
- The turn always passes to the other team.
- The game is over once every existing cell is solved.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from trivia.models import (
    TEAM_IDS,
    ActiveQuestionRef,
    Category,
    Question,
    Team,
    copy_board,
    find_cell,
    other_team,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreDelta:
    """One score change, in the order the host should animate them."""
    team_id: int
    amount: int
    reason: str  # "award" or "pit"


@dataclass
class ResolveResult:
    """Outcome of resolving one question."""
    board: List[Category]
    teams: List[Team]
    next_turn: int
    game_over: bool
    resolved: bool = True
    deltas: List[ScoreDelta] = field(default_factory=list)
    question: Optional[Question] = None


def solved_count(board: Sequence[Category]) -> int:
    return sum(1 for category in board for q in category.questions if q.is_solved)


def is_board_complete(board: Sequence[Category]) -> bool:
    """True when every existing cell is solved (short categories are fine)."""
    return all(q.is_solved for category in board for q in category.questions)


def determine_winner(teams: Sequence[Team]) -> Optional[Team]:
    """Higher score wins; equal scores are a tie (None)."""
    first, second = teams[0], teams[1]
    if first.score > second.score:
        return first
    if second.score > first.score:
        return second
    return None


def _rejected(board, teams, current_turn: int) -> ResolveResult:
    return ResolveResult(
        board=copy_board(board),
        teams=[t.copy() for t in teams],
        next_turn=current_turn,
        game_over=is_board_complete(board),
        resolved=False,
    )


def resolve(
    board: Sequence[Category],
    teams: Sequence[Team],
    active_ref: Optional[ActiveQuestionRef],
    attribution: Optional[int],
    pit_active: bool = False,
    pit_owner_id: Optional[int] = None,
    current_turn: int = 0,
) -> ResolveResult:
    """Apply the outcome of one question.

    Args:
        board: Current board
        teams: The two teams, indexed by id
        active_ref: Cell being resolved
        attribution: Team credited with the answer, or None for nobody
        pit_active: Whether the Pit was armed for this question
        pit_owner_id: Team that armed the Pit
        current_turn: Team whose turn it was

    Returns:
        ResolveResult with new board/team snapshots. Invalid input (unknown
        cell, already solved cell, attribution outside 0/1/None) yields an
        unchanged snapshot with ``resolved=False``.
    """
    if active_ref is None:
        logger.debug("Resolve called with no active question")
        return _rejected(board, teams, current_turn)
    if attribution is not None and attribution not in TEAM_IDS:
        logger.debug(f"Rejecting attribution to unknown team {attribution!r}")
        return _rejected(board, teams, current_turn)

    new_board = copy_board(board)
    question = find_cell(new_board, active_ref)
    if question is None:
        logger.debug(f"No cell {active_ref.category_id}/{active_ref.question_id} on the board")
        return _rejected(board, teams, current_turn)
    if question.is_solved:
        logger.debug(f"Cell {active_ref.question_id} already solved")
        return _rejected(board, teams, current_turn)

    new_teams = [t.copy() for t in teams]
    deltas: List[ScoreDelta] = []

    if attribution is not None:
        new_teams[attribution].score += question.points
        deltas.append(ScoreDelta(attribution, question.points, "award"))

        if pit_active and pit_owner_id is not None and attribution == pit_owner_id:
            victim = other_team(pit_owner_id)
            new_teams[victim].score -= question.points
            deltas.append(ScoreDelta(victim, -question.points, "pit"))

    question.is_solved = True
    game_over = is_board_complete(new_board)
    next_turn = other_team(current_turn)

    logger.info(
        f"Resolved {question.id} ({question.points}): credited={attribution}, pit={pit_active}, "
        f"scores={[t.score for t in new_teams]}, next_turn={next_turn}, game_over={game_over}"
    )

    return ResolveResult(
        board=new_board,
        teams=new_teams,
        next_turn=next_turn,
        game_over=game_over,
        deltas=deltas,
        question=question,
    )
