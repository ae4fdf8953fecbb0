import logging
import random
from typing import List, Optional

from .bracket_builder import BracketBuilder
from .models import Bracket
from .store import save_bracket_plan

logger = logging.getLogger(__name__)


def consolante_name(bracket_name: str) -> str:
    return f"{bracket_name}A"


class ConsolanteSpinner:
    """
    Draws the consolation bracket for a main bracket once its first round
    is played. The losers are shuffled without seeding.
    """

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def maybe_spin(self, bracket: Bracket) -> Optional[Bracket]:
        if bracket.is_consolante:
            return None

        tournament = bracket.tournament
        if not tournament.has_consolante:
            return None

        name = consolante_name(bracket.name)
        if Bracket.query.filter_by(tournament_id=bracket.tournament_id, name=name).first():
            return None

        first_round = self.first_round_matches(bracket)
        if any(m.winner_id is None for m in first_round):
            return None

        losers = self.collect_losers(bracket)
        if len(losers) < 2:
            logger.info(f"No consolante for {bracket.name}: only {len(losers)} first-round loser(s)")
            return None

        plan = BracketBuilder(self.rng).build(losers, tournament.number_of_courts, shuffle_all=True)
        consolante = save_bracket_plan(
            bracket.tournament_id, name, plan, bracket.position + 1, is_consolante=True
        )
        logger.info(f"Created consolante {name} with {len(losers)} teams")
        return consolante

    @staticmethod
    def first_round_matches(bracket: Bracket) -> List:
        return [m for m in bracket.matches if m.round_number == 1 and not m.is_bye]

    def collect_losers(self, bracket: Bracket) -> List[str]:
        return [m.loser_id for m in self.first_round_matches(bracket) if m.loser_id]
