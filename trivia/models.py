"""Data model for Pit Trivia boards, teams and questions."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

# Board shape
TIERS = (200, 400, 600)
QUESTIONS_PER_TIER = 2
QUESTIONS_PER_CATEGORY = len(TIERS) * QUESTIONS_PER_TIER
BOARD_CATEGORIES = 6

TEAM_IDS = (0, 1)


class PerkType(Enum):
    """Once-per-game perks available to each team."""
    SHOW_OPTIONS = "show_options"
    TWO_ANSWERS = "two_answers"
    THE_PIT = "the_pit"


@dataclass
class Question:
    """A single board cell."""
    id: str
    text: str
    options: List[str]
    correct_index: int
    points: int
    is_solved: bool = False

    def __post_init__(self):
        if len(self.options) < 2:
            raise ValueError(f"Question {self.id} needs at least 2 options, got {len(self.options)}")
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"Question {self.id} has correct_index {self.correct_index} "
                f"outside 0..{len(self.options) - 1}"
            )

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """Create a Question from a backend record (camelCase or snake_case keys)."""
        correct_index = data.get("correctIndex", data.get("correct_index"))
        if correct_index is None:
            raise ValueError(f"Question {data.get('id')} is missing correctIndex")
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            options=[str(o) for o in data.get("options", [])],
            correct_index=int(correct_index),
            points=int(data.get("points", 0)),
            is_solved=bool(data.get("isSolved", data.get("is_solved", False))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correctIndex": self.correct_index,
            "points": self.points,
            "isSolved": self.is_solved,
        }


@dataclass
class Category:
    """A named bank of questions. On a live board it holds six cells."""
    id: str
    name: str
    questions: List[Question] = field(default_factory=list)
    name_ar: Optional[str] = None
    enabled: bool = True
    sort_order: int = 0

    def display_name(self, language: str = "en") -> str:
        if language == "ar" and self.name_ar:
            return self.name_ar
        return self.name or self.name_ar or self.id

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def copy(self) -> "Category":
        """Copy the category and its questions (option lists are shared, they never change)."""
        return replace(self, questions=[replace(q) for q in self.questions])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        """Create a Category from a backend record. Questions are parsed strictly."""
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            name_ar=data.get("nameAr", data.get("name_ar")),
            enabled=bool(data.get("enabled", True)),
            sort_order=int(data.get("sortOrder", data.get("sort_order", 0)) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "sortOrder": self.sort_order,
            "questions": [q.to_dict() for q in self.questions],
        }
        if self.name_ar:
            data["nameAr"] = self.name_ar
        return data


@dataclass
class PerksUsed:
    """Per-team perk flags. A flag flips to True once and never resets within a game."""
    show_options: bool = False
    two_answers: bool = False
    the_pit: bool = False

    def is_used(self, perk: PerkType) -> bool:
        return getattr(self, perk.value)

    def mark_used(self, perk: PerkType) -> bool:
        """Mark a perk as used. Returns True only on the first call."""
        if self.is_used(perk):
            return False
        setattr(self, perk.value, True)
        return True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "show_options": self.show_options,
            "two_answers": self.two_answers,
            "the_pit": self.the_pit,
        }


@dataclass
class Team:
    """One of the two competing teams (a "player" in the app)."""
    id: int
    name: str
    score: int = 0
    perks_used: PerksUsed = field(default_factory=PerksUsed)
    turns_taken: int = 0

    def copy(self) -> "Team":
        return replace(self, perks_used=replace(self.perks_used))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "turnsTaken": self.turns_taken,
            "perksUsed": self.perks_used.to_dict(),
        }


@dataclass(frozen=True)
class ActiveQuestionRef:
    """Pointer to the cell currently in play."""
    category_id: str
    question_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"categoryId": self.category_id, "questionId": self.question_id}


def other_team(team_id: int) -> int:
    return 1 if team_id == 0 else 0


def copy_board(board: List[Category]) -> List[Category]:
    return [category.copy() for category in board]


def find_cell(board: List[Category], ref: ActiveQuestionRef) -> Optional[Question]:
    """Look up the question a ref points at, or None if the cell does not exist."""
    for category in board:
        if category.id == ref.category_id:
            return category.find_question(ref.question_id)
    return None
