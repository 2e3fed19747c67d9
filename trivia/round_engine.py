"""Per-question phase machine for Pit Trivia.

A question runs through these phases:

    PRE_QUESTION --use_pit/decline_pit--> ANSWERING
    ANSWERING --answered/timer_expired--> SHOW_ANSWER
    SHOW_ANSWER --reveal_attribution--> SELECT_TEAM
    SELECT_TEAM --attribute--> CLOSED

PRE_QUESTION is only entered when the acting team still holds the Pit and
enough cells have been solved to unlock it. Any phase can be abandoned.

The transition table is a pure function (``next_phase``); ``QuestionRound``
wraps it with the per-question data: timer value, perk flags and the
one-shot attribution latch. Calls that are not valid in the current phase
are ignored rather than raised, since the host is expected to guard them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from trivia.config import GameSettings
from trivia.models import TEAM_IDS, PerkType, Question, Team

logger = logging.getLogger(__name__)


class RoundPhase(Enum):
    PRE_QUESTION = "preQuestion"
    ANSWERING = "answering"
    SHOW_ANSWER = "showAnswer"
    SELECT_TEAM = "selectTeam"
    CLOSED = "closed"


class RoundEvent(Enum):
    USE_PIT = "use_pit"
    DECLINE_PIT = "decline_pit"
    ANSWERED = "answered"
    TIMER_EXPIRED = "timer_expired"
    REVEAL_ATTRIBUTION = "reveal_attribution"
    ATTRIBUTE = "attribute"
    ABANDON = "abandon"


_TRANSITIONS: Dict[Tuple[RoundPhase, RoundEvent], RoundPhase] = {
    (RoundPhase.PRE_QUESTION, RoundEvent.USE_PIT): RoundPhase.ANSWERING,
    (RoundPhase.PRE_QUESTION, RoundEvent.DECLINE_PIT): RoundPhase.ANSWERING,
    (RoundPhase.ANSWERING, RoundEvent.ANSWERED): RoundPhase.SHOW_ANSWER,
    (RoundPhase.ANSWERING, RoundEvent.TIMER_EXPIRED): RoundPhase.SHOW_ANSWER,
    (RoundPhase.SHOW_ANSWER, RoundEvent.REVEAL_ATTRIBUTION): RoundPhase.SELECT_TEAM,
    (RoundPhase.SELECT_TEAM, RoundEvent.ATTRIBUTE): RoundPhase.CLOSED,
}


def next_phase(phase: RoundPhase, event: RoundEvent) -> Optional[RoundPhase]:
    """Return the phase reached by applying event, or None if the event is not valid there."""
    if event is RoundEvent.ABANDON:
        return None if phase is RoundPhase.CLOSED else RoundPhase.CLOSED
    return _TRANSITIONS.get((phase, event))


def pit_available(team: Team, solved_count: int, unlock_threshold: int) -> bool:
    """The Pit is offered while the team still holds it and enough cells are solved."""
    return not team.perks_used.the_pit and solved_count >= unlock_threshold


@dataclass(frozen=True)
class RoundResolution:
    """What the operator decided when closing a question."""
    scoring_team_id: Optional[int]
    pit_active: bool
    pit_owner_id: Optional[int]


class QuestionRound:
    """State for the one question currently in play."""

    def __init__(
        self,
        question: Question,
        acting_team: Team,
        solved_count: int,
        settings: Optional[GameSettings] = None,
        on_perk_used: Optional[Callable[[int, PerkType], None]] = None,
        on_phase_change: Optional[Callable[[RoundPhase, RoundPhase], None]] = None,
    ):
        self.question = question
        self.acting_team = acting_team
        self.settings = settings or GameSettings()
        self._on_perk_used = on_perk_used
        self._on_phase_change = on_phase_change

        self.time_left = self.settings.answer_seconds
        self.team_answered = False
        self.options_visible = False
        self.two_answers_active = False
        self.pit_active = False
        self.pit_owner_id: Optional[int] = None
        self.resolution: Optional[RoundResolution] = None

        self.pit_offered = pit_available(acting_team, solved_count, self.settings.pit_unlock_solved)
        self.phase = RoundPhase.PRE_QUESTION if self.pit_offered else RoundPhase.ANSWERING
        logger.info(
            f"Question {question.id} ({question.points}) opened for team {acting_team.id}, "
            f"phase {self.phase.value}"
        )

    @property
    def is_closed(self) -> bool:
        return self.phase is RoundPhase.CLOSED

    def _apply(self, event: RoundEvent) -> bool:
        target = next_phase(self.phase, event)
        if target is None:
            logger.debug(f"Ignoring {event.value} in phase {self.phase.value}")
            return False
        logger.info(f"Question {self.question.id}: {self.phase.value} -> {target.value} ({event.value})")
        previous, self.phase = self.phase, target
        if self._on_phase_change is not None:
            self._on_phase_change(previous, target)
        return True

    def _consume_perk(self, perk: PerkType) -> bool:
        if not self.acting_team.perks_used.mark_used(perk):
            logger.debug(f"Team {self.acting_team.id} already used {perk.value}")
            return False
        if self._on_perk_used is not None:
            self._on_perk_used(self.acting_team.id, perk)
        return True

    # Pre-question

    def use_pit(self) -> bool:
        """Arm the Pit for this question and start answering."""
        if self.phase is not RoundPhase.PRE_QUESTION or not self.pit_offered:
            logger.debug(f"Pit not available in phase {self.phase.value}")
            return False
        if not self._consume_perk(PerkType.THE_PIT):
            return False
        self.pit_active = True
        self.pit_owner_id = self.acting_team.id
        return self._apply(RoundEvent.USE_PIT)

    def decline_pit(self) -> bool:
        return self._apply(RoundEvent.DECLINE_PIT)

    # Answering

    def _reveal_perk_allowed(self, perk: PerkType) -> bool:
        if self.phase is not RoundPhase.ANSWERING:
            logger.debug(f"{perk.value} only usable while answering, phase is {self.phase.value}")
            return False
        if self.options_visible or self.two_answers_active:
            logger.debug(f"A reveal perk was already used on question {self.question.id}")
            return False
        return True

    def use_show_options(self) -> bool:
        """Reveal all options for the rest of this question."""
        if not self._reveal_perk_allowed(PerkType.SHOW_OPTIONS):
            return False
        if not self._consume_perk(PerkType.SHOW_OPTIONS):
            return False
        self.options_visible = True
        return True

    def use_two_answers(self) -> bool:
        """Allow the acting team two guesses. Advisory only; scoring is unchanged."""
        if not self._reveal_perk_allowed(PerkType.TWO_ANSWERS):
            return False
        if not self._consume_perk(PerkType.TWO_ANSWERS):
            return False
        self.two_answers_active = True
        return True

    def tick(self) -> int:
        """Count down one time unit. Returns the time left."""
        if self.phase is RoundPhase.ANSWERING and self.time_left > 0:
            self.time_left -= 1
        return self.time_left

    def expire(self) -> bool:
        """Move to the answer once the countdown has run out."""
        if self.time_left > 0:
            logger.debug(f"Expire ignored with {self.time_left} left")
            return False
        return self._apply(RoundEvent.TIMER_EXPIRED)

    def mark_answered(self) -> bool:
        if not self._apply(RoundEvent.ANSWERED):
            return False
        self.team_answered = True
        return True

    # Reveal and attribution

    def reveal_attribution(self) -> bool:
        return self._apply(RoundEvent.REVEAL_ATTRIBUTION)

    def select_team(self, team_id: Optional[int]) -> Optional[RoundResolution]:
        """Credit a team (or nobody). Only the first valid call has any effect."""
        if self.resolution is not None:
            logger.debug(f"Question {self.question.id} already attributed")
            return None
        if team_id is not None and team_id not in TEAM_IDS:
            logger.debug(f"Ignoring invalid attribution target {team_id!r}")
            return None
        if not self._apply(RoundEvent.ATTRIBUTE):
            return None
        self.resolution = RoundResolution(
            scoring_team_id=team_id,
            pit_active=self.pit_active,
            pit_owner_id=self.pit_owner_id if self.pit_active else None,
        )
        return self.resolution

    def abandon(self) -> bool:
        return self._apply(RoundEvent.ABANDON)

    def visible_options(self) -> List[str]:
        """Options the host should show in the current phase."""
        if self.phase in (RoundPhase.SHOW_ANSWER, RoundPhase.SELECT_TEAM):
            return [self.question.correct_answer]
        if self.phase is RoundPhase.ANSWERING and self.options_visible:
            return list(self.question.options)
        return []
