"""Tests for the TriviaGame state holder."""

import asyncio
from unittest.mock import Mock

import pytest

from trivia.config import GameSettings
from trivia.game import TriviaGame
from trivia.models import Category, PerkType, Question
from trivia.round_engine import RoundPhase


def make_board(n_categories: int = 2, per_category: int = 3):
    points = [200, 400, 600]
    return [
        Category(
            id=f"c{c}",
            name=f"Category {c}",
            questions=[
                Question(
                    id=f"c{c}q{i}",
                    text=f"Question {c}/{i}",
                    options=["right", "wrong", "other"],
                    correct_index=0,
                    points=points[i % 3],
                )
                for i in range(per_category)
            ],
        )
        for c in range(n_categories)
    ]


def play_cell(game: TriviaGame, cat_id: str, q_id: str, attribution, use_pit: bool = False):
    """Run one question from selection to attribution."""
    round_ = game.select_question(cat_id, q_id)
    assert round_ is not None
    if round_.phase is RoundPhase.PRE_QUESTION:
        if use_pit:
            round_.use_pit()
        else:
            round_.decline_pit()
    round_.mark_answered()
    round_.reveal_attribution()
    return game.answer(attribution)


class TestTriviaGame:
    """Test cases for TriviaGame."""

    def setup_method(self):
        self.sink = Mock()
        self.game = TriviaGame(make_board(), ("Falcons", "Eagles"), session_sink=self.sink)

    def test_initial_state(self):
        assert [t.name for t in self.game.teams] == ["Falcons", "Eagles"]
        assert [t.score for t in self.game.teams] == [0, 0]
        assert self.game.current_turn == 0
        assert self.game.active_question is None
        assert not self.game.game_over
        assert self.game.total_cells == 6
        assert len(self.game.game_id) == 8
        self.sink.save.assert_called_once()

    def test_requires_two_teams(self):
        with pytest.raises(ValueError):
            TriviaGame(make_board(), ("Solo",))

    def test_select_question(self):
        round_ = self.game.select_question("c0", "c0q1")
        assert round_ is self.game.current_round
        assert round_.question.points == 400
        assert round_.acting_team is self.game.teams[0]
        assert self.game.active_question.question_id == "c0q1"

    def test_select_while_active_ignored(self):
        self.game.select_question("c0", "c0q0")
        assert self.game.select_question("c1", "c1q0") is None
        assert self.game.active_question.question_id == "c0q0"

    def test_select_unknown_cell(self):
        assert self.game.select_question("c0", "nope") is None
        assert self.game.select_question("zz", "c0q0") is None
        assert self.game.active_question is None

    def test_select_solved_cell(self):
        play_cell(self.game, "c0", "c0q0", 0)
        assert self.game.select_question("c0", "c0q0") is None

    def test_answer_commits_result(self):
        result = play_cell(self.game, "c0", "c0q2", 0)
        assert result.resolved
        assert [t.score for t in self.game.teams] == [600, 0]
        assert self.game.board[0].questions[2].is_solved
        assert self.game.current_turn == 1
        assert self.game.active_question is None
        assert self.game.current_round is None
        assert self.game.teams[0].turns_taken == 1

    def test_steal(self):
        play_cell(self.game, "c0", "c0q1", 1)
        assert [t.score for t in self.game.teams] == [0, 400]
        assert self.game.current_turn == 1

    def test_turn_alternates(self):
        turns = []
        for q_id in ("c0q0", "c0q1", "c0q2"):
            turns.append(self.game.current_turn)
            play_cell(self.game, "c0", q_id, None)
        assert turns == [0, 1, 0]
        assert self.game.current_turn == 1

    def test_answer_is_one_shot(self):
        round_ = self.game.select_question("c0", "c0q0")
        round_.mark_answered()
        round_.reveal_attribution()
        assert self.game.answer(0) is not None
        assert self.game.answer(1) is None
        assert [t.score for t in self.game.teams] == [200, 0]

    def test_answer_without_round(self):
        assert self.game.answer(0) is None

    def test_answer_before_reveal_ignored(self):
        self.game.select_question("c0", "c0q0")
        assert self.game.answer(0) is None
        assert self.game.active_question is not None

    def test_moves_log(self):
        play_cell(self.game, "c0", "c0q0", 1)
        move = self.game.moves_log[0]
        assert move["turn"] == 1
        assert move["team"] == 0
        assert move["credited"] == 1
        assert move["points"] == 200
        assert move["deltas"] == [(1, 200, "award")]

    def test_full_game(self):
        cells = [(c.id, q.id) for c in self.game.board for q in c.questions]
        for i, (cat_id, q_id) in enumerate(cells):
            assert not self.game.game_over
            play_cell(self.game, cat_id, q_id, 0 if i % 3 else None)
        assert self.game.game_over
        assert self.game.winner() is self.game.teams[0]
        assert self.game.select_question("c0", "c0q0") is None
        assert self.sink.save.call_args.args[0]["status"] == "completed"

    def test_tie(self):
        play_cell(self.game, "c0", "c0q1", 0)
        play_cell(self.game, "c1", "c1q1", 1)
        assert self.game.winner() is None

    def test_perks_persist_across_questions(self):
        round_ = self.game.select_question("c0", "c0q0")
        assert round_.use_show_options()
        round_.mark_answered()
        round_.reveal_attribution()
        self.game.answer(0)
        assert self.game.teams[0].perks_used.show_options

        play_cell(self.game, "c0", "c0q1", None)  # team 1's turn
        round_ = self.game.select_question("c0", "c0q2")
        assert round_.acting_team is self.game.teams[0]
        assert not round_.use_show_options()
        assert round_.use_two_answers()

    def test_mark_perk_used_idempotent(self):
        self.game.mark_perk_used(1, PerkType.TWO_ANSWERS)
        self.game.mark_perk_used(1, PerkType.TWO_ANSWERS)
        assert self.game.teams[1].perks_used.two_answers
        assert not self.game.teams[0].perks_used.two_answers


class TestPitFlow:
    """Test cases for the Pit across a whole game."""

    def setup_method(self):
        self.game = TriviaGame(make_board(n_categories=3), ("A", "B"))

    def _solve_four(self):
        for q_id in ("c0q0", "c0q1", "c0q2"):
            play_cell(self.game, "c0", q_id, None)
        play_cell(self.game, "c1", "c1q0", None)

    def test_not_offered_early(self):
        round_ = self.game.select_question("c0", "c0q0")
        assert round_.phase is RoundPhase.ANSWERING

    def test_notice_once_after_unlock(self):
        assert not self.game.consume_pit_notice()
        self._solve_four()
        assert self.game.pit_unlocked
        assert self.game.consume_pit_notice()
        assert not self.game.consume_pit_notice()
        play_cell(self.game, "c1", "c1q1", None)
        assert not self.game.consume_pit_notice()

    def test_pit_deduction(self):
        self._solve_four()
        assert self.game.current_turn == 0
        play_cell(self.game, "c1", "c1q2", 0, use_pit=True)
        assert [t.score for t in self.game.teams] == [600, -600]
        assert self.game.teams[0].perks_used.the_pit
        assert self.game.moves_log[-1]["pit"]

    def test_pit_offered_to_each_team_once(self):
        self._solve_four()
        play_cell(self.game, "c1", "c1q1", None, use_pit=True)
        round_ = self.game.select_question("c1", "c1q2")
        assert round_.phase is RoundPhase.PRE_QUESTION  # team 1 still holds it
        round_.use_pit()
        round_.mark_answered()
        round_.reveal_attribution()
        self.game.answer(0)
        assert [t.score for t in self.game.teams] == [600, 0]

        round_ = self.game.select_question("c2", "c2q0")
        assert round_.acting_team.id == 0
        assert round_.phase is RoundPhase.ANSWERING


class TestGameLifecycle:
    """Abandon, snapshots and session persistence."""

    def test_abandon(self):
        sink = Mock()
        game = TriviaGame(make_board(), session_sink=sink)
        round_ = game.select_question("c0", "c0q0")
        game.abandon()
        assert round_.is_closed
        assert game.abandoned
        assert game.active_question is None
        assert game.select_question("c0", "c0q1") is None
        assert sink.save.call_args.args[0]["status"] == "abandoned"

    def test_snapshot(self):
        game = TriviaGame(make_board(), ("A", "B"), settings=GameSettings(language="ar"))
        game.select_question("c1", "c1q2")
        snap = game.snapshot()
        assert snap["sessionId"] == game.game_id
        assert snap["currentTurn"] == 0
        assert snap["activeQuestion"] == {"categoryId": "c1", "questionId": "c1q2"}
        assert snap["language"] == "ar"
        assert snap["status"] == "active"
        assert snap["players"][0]["perksUsed"] == {"show_options": False, "two_answers": False, "the_pit": False}
        assert len(snap["categories"]) == 2

    def test_sink_failure_does_not_break_game(self):
        sink = Mock()
        sink.save.side_effect = RuntimeError("backend down")
        game = TriviaGame(make_board(), session_sink=sink)
        result = play_cell(game, "c0", "c0q0", 0)
        assert result.resolved
        assert game.teams[0].score == 200

    def test_saves_after_each_answer(self):
        sink = Mock()
        game = TriviaGame(make_board(), session_sink=sink)
        play_cell(game, "c0", "c0q0", 0)
        saved = sink.save.call_args.args[0]
        assert saved["players"][0]["score"] == 200
        assert saved["currentTurn"] == 1


class TestCountdown:
    """Countdown wiring between the game, its round and the timer."""

    def _game(self, seconds: int = 2) -> TriviaGame:
        game = TriviaGame(make_board(), settings=GameSettings(answer_seconds=seconds, expiry_grace=0.01))
        game.timer.interval = 0.01
        return game

    def test_expiry_moves_to_show_answer(self):
        game = self._game()
        round_ = game.select_question("c0", "c0q0")
        expired = []

        async def scenario():
            task = game.start_countdown(on_expire=lambda: expired.append(True))
            await task

        asyncio.run(scenario())
        assert expired == [True]
        assert round_.time_left == 0
        assert round_.phase is RoundPhase.SHOW_ANSWER
        assert not round_.team_answered

    def test_answering_stops_countdown(self):
        game = self._game(seconds=30)
        round_ = game.select_question("c0", "c0q0")
        expired = []

        async def scenario():
            task = game.start_countdown(on_expire=lambda: expired.append(True))
            await asyncio.sleep(0.03)
            round_.mark_answered()
            await asyncio.sleep(0.02)
            return task

        task = asyncio.run(scenario())
        assert task.cancelled()
        assert expired == []
        assert 0 < round_.time_left < 30

    def test_no_countdown_outside_answering(self):
        game = TriviaGame(make_board(), settings=GameSettings(pit_unlock_solved=0))
        game.select_question("c0", "c0q0")
        assert game.current_round.phase is RoundPhase.PRE_QUESTION
        assert game.start_countdown() is None


class TestCloseQuestion:
    """Closing a question without scoring it."""

    def setup_method(self):
        self.sink = Mock()
        self.game = TriviaGame(make_board(), ("A", "B"), session_sink=self.sink)

    def test_cell_stays_playable(self):
        round_ = self.game.select_question("c0", "c0q0")
        assert self.game.close_question()
        assert round_.is_closed
        assert self.game.active_question is None
        assert self.game.current_round is None
        assert not self.game.board[0].questions[0].is_solved
        assert self.game.select_question("c0", "c0q0") is not None

    def test_turn_and_scores_unchanged(self):
        self.game.select_question("c0", "c0q2")
        self.game.close_question()
        assert self.game.current_turn == 0
        assert [t.score for t in self.game.teams] == [0, 0]
        assert self.game.moves_log == []
        assert self.sink.save.call_args.args[0]["activeQuestion"] is None

    def test_spent_perks_stay_spent(self):
        round_ = self.game.select_question("c0", "c0q0")
        round_.use_show_options()
        self.game.close_question()
        round_ = self.game.select_question("c0", "c0q0")
        assert self.game.teams[0].perks_used.show_options
        assert not round_.use_show_options()

    def test_nothing_to_close(self):
        assert not self.game.close_question()

    def test_cancels_countdown(self):
        game = TriviaGame(make_board(), settings=GameSettings(answer_seconds=30))
        game.timer.interval = 0.01
        game.select_question("c0", "c0q0")

        async def scenario():
            task = game.start_countdown()
            await asyncio.sleep(0.02)
            game.close_question()
            await asyncio.sleep(0.02)
            return task

        task = asyncio.run(scenario())
        assert task.cancelled()
        assert not game.timer.is_running
        assert game.select_question("c0", "c0q0") is not None


class TestEmptyBoard:
    """A board without cells cannot be played."""

    def test_game_over_at_start(self):
        board = [Category(id=f"c{i}", name=f"Empty {i}") for i in range(2)]
        game = TriviaGame(board)
        assert game.game_over
        assert game.total_cells == 0
        assert game.winner() is None

    def test_regular_board_not_over(self):
        assert not TriviaGame(make_board()).game_over
