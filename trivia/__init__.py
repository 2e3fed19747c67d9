"""Pit Trivia: a two-team board quiz.

- Board: 6 categories x 6 questions, two at each of 200/400/600 points
- Teams alternate picking cells; every cell is played once
- A 30 second countdown runs while the acting team answers
- Perks, once per team per game: show options, two answers, the Pit
- The Pit unlocks after 4 solved cells: if its owner answers correctly,
  the other team loses the same points
- Winner: higher score once every cell is solved (equal scores tie)
"""

__version__ = "1.0.0"

from trivia.board_builder import build_board
from trivia.game import TriviaGame
from trivia.resolver import resolve

__all__ = ["TriviaGame", "build_board", "resolve"]
