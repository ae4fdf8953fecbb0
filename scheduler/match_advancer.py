"""
Bracket match scoring and winner propagation.

Every match moves through Empty -> Scheduled -> Scored -> Propagated. The
state is derived from the match row and its parent row, never stored, so a
rescore is just another 'score' transition, guarded by the state machine
until the parent is decided or the consolante has been drawn.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from shared.errors import LockedStateError, SequenceError, ValidationError
from shared.state_machine import GuardError, MatchState, MatchStateMachine, TransitionError, rescore_context
from .bracket_builder import parent_slot
from .models import db, Bracket, BracketMatch

logger = logging.getLogger(__name__)


def validate_scores(team1_score, team2_score):
    """Scores are non-negative integers and a game cannot end level."""
    for field, value in (('team1_score', team1_score), ('team2_score', team2_score)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must be an integer", field=field, value=value)
        if value < 0:
            raise ValidationError(f"{field} cannot be negative", field=field, value=value)
    if team1_score == team2_score:
        raise ValidationError(
            "Scores cannot be equal, a game must have a winner",
            team1_score=team1_score,
            team2_score=team2_score,
        )


@dataclass
class AdvanceResult:
    match: BracketMatch
    winner_id: str
    bracket_completed: bool = False
    consolante: Optional[Bracket] = None


class MatchAdvancer:
    def __init__(self, consolante_spinner=None):
        self.consolante_spinner = consolante_spinner

    def determine_winner(self, match: BracketMatch, team1_score: int, team2_score: int) -> str:
        validate_scores(team1_score, team2_score)
        if match.is_bye:
            raise ValidationError("Bye matches are resolved automatically", match_id=match.id)
        return match.team1_id if team1_score > team2_score else match.team2_id

    def submit_score(self, match: BracketMatch, team1_score: int, team2_score: int) -> AdvanceResult:
        """
        Record a result, push the winner into the parent slot, then update
        bracket completion and, for round 1 of a main bracket, try to spin
        the consolante.
        """
        bracket = match.bracket
        parent = db.session.get(BracketMatch, match.next_match_id) if match.next_match_id else None
        winner_id = self.determine_winner(match, team1_score, team2_score)

        machine = MatchStateMachine.from_match(match, parent)
        consolante_drawn = match.round_number == 1 and self._consolante_exists(bracket)
        try:
            machine.transition('score', rescore_context(parent, consolante_drawn))
        except GuardError as e:
            raise self._locked(match, parent, bracket, e)
        except TransitionError as e:
            raise SequenceError(
                "Both teams must be known before the match can be scored",
                match_id=match.id,
                round=match.round_number,
                state=e.from_state,
            )

        match.team1_score = team1_score
        match.team2_score = team2_score
        match.winner_id = winner_id

        if parent is not None:
            self._propagate(match, parent, winner_id)
        machine.transition('propagate')

        db.session.flush()
        logger.info(f"Match {match.id} ({bracket.name} R{match.round_number}) won by {winner_id}")

        result = AdvanceResult(match=match, winner_id=winner_id)
        result.bracket_completed = self.check_completion(bracket)

        if match.round_number == 1 and not bracket.is_consolante and self.consolante_spinner:
            result.consolante = self.consolante_spinner.maybe_spin(bracket)

        return result

    @staticmethod
    def _locked(match, parent, bracket, error: GuardError) -> LockedStateError:
        if error.context.get('parent_decided'):
            return LockedStateError(
                "Cannot rescore a match whose next match is already decided",
                match_id=match.id,
                next_match_id=parent.id,
            )
        return LockedStateError(
            "Cannot rescore a first-round match once the consolante has been drawn",
            match_id=match.id,
            bracket=bracket.name,
        )

    def _propagate(self, match: BracketMatch, parent: BracketMatch, winner_id: str):
        parent_machine = MatchStateMachine.from_match(parent)
        setattr(parent, parent_slot(match.match_number), winner_id)

        filled = parent.team1_id is not None and parent.team2_id is not None
        action = 'fill' if parent_machine.state == MatchState.EMPTY and filled else 'assign'
        try:
            parent_machine.transition(action)
        except TransitionError as e:
            raise SequenceError(e.reason, match_id=parent.id, state=parent_machine.state.value)

    @staticmethod
    def check_completion(bracket: Bracket) -> bool:
        bracket.is_complete = any(
            m.next_match_id is None and m.winner_id is not None for m in bracket.matches
        )
        return bracket.is_complete

    @staticmethod
    def _consolante_exists(bracket: Bracket) -> bool:
        if bracket.is_consolante:
            return False
        return Bracket.query.filter_by(
            tournament_id=bracket.tournament_id, name=f"{bracket.name}A"
        ).first() is not None
