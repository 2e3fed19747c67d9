"""Game state holder for a Pit Trivia match.

``TriviaGame`` is the single writer for the board and the teams. It opens a
``QuestionRound`` when a cell is picked, feeds the round's attribution into
``resolve`` and commits the returned snapshot. Everything the host renders
is read from here.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from trivia.config import GameSettings
from trivia.i18n import Translator
from trivia.models import ActiveQuestionRef, Category, PerkType, Team, find_cell
from trivia.resolver import (
    ResolveResult,
    determine_winner,
    is_board_complete,
    resolve,
    solved_count,
)
from trivia.round_engine import QuestionRound, RoundPhase
from trivia.sessions import SessionSink
from trivia.timer import CountdownTimer

logger = logging.getLogger(__name__)


class TriviaGame:
    """A two-team match on one board."""

    VERSION = "1.0.0"

    def __init__(
        self,
        board: List[Category],
        team_names: Sequence[str] = ("Team A", "Team B"),
        settings: Optional[GameSettings] = None,
        translator: Optional[Translator] = None,
        session_sink: Optional[SessionSink] = None,
    ):
        if len(team_names) != 2:
            raise ValueError(f"Exactly two teams are required, got {len(team_names)}")

        self.settings = settings or GameSettings()
        self.translator = translator
        self.session_sink = session_sink

        self.board: List[Category] = board
        self.teams: List[Team] = [Team(id=i, name=name) for i, name in enumerate(team_names)]
        self.current_turn = 0
        self.active_question: Optional[ActiveQuestionRef] = None
        self.current_round: Optional[QuestionRound] = None
        # A board without any cells has nothing left to play
        self.game_over = is_board_complete(board)
        self.abandoned = False
        self.moves_log: List[Dict[str, Any]] = []

        self.timer = CountdownTimer(
            name="answer", interval=1.0, grace=self.settings.expiry_grace
        )
        self._pit_notice_shown = False
        self._pit_notice_pending = False

        self.game_id = str(uuid.uuid4())[:8]
        logger.info(
            f"Game {self.game_id} started: {self.teams[0].name} vs {self.teams[1].name}, "
            f"{len(board)} categories, {self.total_cells} cells"
        )
        self._save_session()

    @property
    def language(self) -> str:
        return self.translator.language if self.translator else self.settings.language

    @property
    def total_cells(self) -> int:
        return sum(len(c.questions) for c in self.board)

    @property
    def solved_count(self) -> int:
        return solved_count(self.board)

    @property
    def acting_team(self) -> Team:
        return self.teams[self.current_turn]

    @property
    def pit_unlocked(self) -> bool:
        return self.solved_count >= self.settings.pit_unlock_solved

    # Question selection

    def select_question(self, category_id: str, question_id: str) -> Optional[QuestionRound]:
        """Open a round for a cell. Ignored while another question is open or the game is over."""
        if self.game_over or self.abandoned:
            logger.debug("Game finished, ignoring cell selection")
            return None
        if self.active_question is not None:
            logger.debug(f"Question {self.active_question.question_id} still active")
            return None

        ref = ActiveQuestionRef(category_id, question_id)
        question = find_cell(self.board, ref)
        if question is None or question.is_solved:
            logger.debug(f"Cell {category_id}/{question_id} is not playable")
            return None

        self.active_question = ref
        self.current_round = QuestionRound(
            question,
            self.acting_team,
            self.solved_count,
            settings=self.settings,
            on_perk_used=self.mark_perk_used,
            on_phase_change=self._on_phase_change,
        )
        return self.current_round

    def mark_perk_used(self, team_id: int, perk: PerkType) -> None:
        """Record a consumed perk on the team (idempotent)."""
        self.teams[team_id].perks_used.mark_used(perk)
        logger.info(f"Team {team_id} used {perk.value}")
        self._save_session()

    # Countdown

    def start_countdown(self, on_tick=None, on_expire=None):
        """Start the answer countdown for the open round. Needs a running event loop."""
        round_ = self.current_round
        if round_ is None or round_.phase is not RoundPhase.ANSWERING:
            logger.debug("No question is being answered, countdown not started")
            return None

        def _tick(remaining: int):
            round_.tick()
            if on_tick is not None:
                return on_tick(remaining)

        def _expire():
            if round_.expire() and on_expire is not None:
                return on_expire()

        return self.timer.start(round_.time_left, on_tick=_tick, on_expire=_expire)

    def _on_phase_change(self, previous: RoundPhase, current: RoundPhase) -> None:
        if previous is RoundPhase.ANSWERING and self.timer.cancel():
            logger.debug(f"Countdown stopped on {current.value}")

    # Resolution

    def answer(self, attribution: Optional[int]) -> Optional[ResolveResult]:
        """Attribute the open question and commit the scoring result."""
        round_ = self.current_round
        if round_ is None:
            logger.debug("No question to attribute")
            return None

        resolution = round_.select_team(attribution)
        if resolution is None:
            return None

        result = resolve(
            self.board,
            self.teams,
            self.active_question,
            resolution.scoring_team_id,
            pit_active=resolution.pit_active,
            pit_owner_id=resolution.pit_owner_id,
            current_turn=self.current_turn,
        )
        if not result.resolved:
            logger.warning(f"Resolution of {self.active_question} was rejected")
            self._close_round()
            return result

        result.teams[self.current_turn].turns_taken += 1
        self.moves_log.append({
            "turn": len(self.moves_log) + 1,
            "team": self.current_turn,
            "category_id": self.active_question.category_id,
            "question_id": self.active_question.question_id,
            "points": result.question.points,
            "credited": resolution.scoring_team_id,
            "pit": resolution.pit_active,
            "deltas": [(d.team_id, d.amount, d.reason) for d in result.deltas],
        })

        self.board = result.board
        self.teams = result.teams
        self.current_turn = result.next_turn
        self.game_over = result.game_over
        self._close_round()

        if not self._pit_notice_shown and self.pit_unlocked:
            self._pit_notice_shown = True
            self._pit_notice_pending = True

        if self.game_over:
            winner = self.winner()
            logger.info(f"Game {self.game_id} over, winner: {winner.name if winner else 'tie'}")
        self._save_session(status="completed" if self.game_over else "active")
        return result

    def _close_round(self) -> None:
        self.timer.cancel()
        self.active_question = None
        self.current_round = None

    def close_question(self) -> bool:
        """Close the open question without scoring it.

        The cell stays unsolved and can be picked again, the turn does not pass
        and perks spent during the question stay spent.
        """
        round_ = self.current_round
        if round_ is None:
            logger.debug("No question to close")
            return False

        ref = self.active_question
        round_.abandon()
        self._close_round()
        logger.info(f"Question {ref.question_id} closed without attribution")
        self._save_session()
        return True

    def consume_pit_notice(self) -> bool:
        """True exactly once, after the Pit first unlocks."""
        if self._pit_notice_pending and self.active_question is None:
            self._pit_notice_pending = False
            return True
        return False

    def abandon(self) -> None:
        """Exit the game, discarding any open question."""
        if self.current_round is not None:
            self.current_round.abandon()
        self._close_round()
        self.abandoned = True
        logger.info(f"Game {self.game_id} abandoned")
        self._save_session(status="abandoned")

    def winner(self) -> Optional[Team]:
        return determine_winner(self.teams)

    # Persistence

    def snapshot(self, status: str = "active") -> Dict[str, Any]:
        """Plain-data view of the session, in the backend's wire format."""
        return {
            "sessionId": self.game_id,
            "players": [t.to_dict() for t in self.teams],
            "currentTurn": self.current_turn,
            "categories": [c.to_dict() for c in self.board],
            "activeQuestion": self.active_question.to_dict() if self.active_question else None,
            "language": self.language,
            "status": status,
        }

    def _save_session(self, status: str = "active") -> None:
        if self.session_sink is None:
            return
        try:
            self.session_sink.save(self.snapshot(status))
        except Exception as e:
            logger.warning(f"Error saving session {self.game_id}: {e}")
