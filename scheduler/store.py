import logging
import threading
from contextlib import contextmanager

from .models import db, Bracket, BracketMatch

logger = logging.getLogger(__name__)

# Every mutating operation runs under this lock so two operations never
# interleave against the same tournament's rows.
_store_lock = threading.RLock()


@contextmanager
def atomic():
    """
    Run a block as one transaction under the store lock.

    Commits when the block finishes, rolls back and re-raises on any error
    so no partial round or bracket is ever visible.
    """
    with _store_lock:
        try:
            yield db.session
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Transaction rolled back: {e}")
            raise


def save_bracket_plan(tournament_id: str, name: str, plan, position: int,
                      is_consolante: bool = False) -> Bracket:
    """
    Insert a planned bracket and all of its matches.

    Matches are added final first so every next_match_id already points at a
    stored row when its child is inserted.
    """
    bracket = Bracket(
        tournament_id=tournament_id,
        name=name,
        is_consolante=is_consolante,
        size=plan.dimensions.team_count,
        position=position,
    )
    db.session.add(bracket)
    db.session.flush()

    for round_matches in reversed(plan.rounds):
        for planned in round_matches:
            db.session.add(BracketMatch(
                id=planned.id,
                bracket_id=bracket.id,
                round_number=planned.round_number,
                match_number=planned.match_number,
                court_number=planned.court_number,
                team1_id=planned.team1_id,
                team2_id=planned.team2_id,
                team1_score=planned.team1_score,
                team2_score=planned.team2_score,
                winner_id=planned.winner_id,
                next_match_id=planned.next_match_id,
                is_bye=planned.is_bye,
            ))
    db.session.flush()
    db.session.expire(bracket, ['matches'])
    return bracket
