"""
Standings ranking.

Two tiebreak chains are available. Both rewrite every standing's scores and
its dense 1-based rank in one pass. Exact ties are settled by a random token
drawn fresh on every pass, so tied teams can swap places between passes.
"""
import logging
import random
from enum import Enum
from typing import Dict, List, Sequence

from .pairing_engine import PairingDiscipline

logger = logging.getLogger(__name__)

INFINITE_QUOTIENT = float('inf')


class RankingMethod(str, Enum):
    BUCHHOLZ = "buchholz"
    POINT_QUOTIENT = "point_quotient"


def point_quotient(points_for: int, points_against: int) -> float:
    if points_against == 0:
        return INFINITE_QUOTIENT if points_for > 0 else 1.0
    return points_for / points_against


class RankingStrategy:
    method: RankingMethod = None

    def rank(self, standings: Sequence, opponents: Dict[str, List[str]],
             rng: random.Random) -> List:
        """
        Update scores and rank on every standing and return them in rank order.

        Args:
            standings: objects exposing team_id, wins, differential, points_for,
                points_against and the writable score/rank fields
            opponents: team id -> opponent ids, one entry per game played
            rng: source for the last-resort tie token
        """
        self.score(standings, opponents)
        tokens = {s.team_id: rng.random() for s in standings}
        ordered = sorted(standings, key=lambda s: self.sort_key(s, tokens[s.team_id]), reverse=True)
        for position, standing in enumerate(ordered, start=1):
            standing.rank = position
        logger.debug(f"Ranked {len(ordered)} teams by {self.method.value}")
        return ordered

    def score(self, standings: Sequence, opponents: Dict[str, List[str]]):
        raise NotImplementedError

    def sort_key(self, standing, token: float) -> tuple:
        raise NotImplementedError


class BuchholzRanking(RankingStrategy):
    """wins, Buchholz, Fine-Buchholz, differential, token."""
    method = RankingMethod.BUCHHOLZ

    def score(self, standings: Sequence, opponents: Dict[str, List[str]]):
        wins = {s.team_id: s.wins for s in standings}
        buchholz = {
            s.team_id: float(sum(wins.get(o, 0) for o in opponents.get(s.team_id, [])))
            for s in standings
        }
        for s in standings:
            s.buchholz_score = buchholz[s.team_id]
            s.fine_buchholz_score = float(sum(buchholz.get(o, 0.0) for o in opponents.get(s.team_id, [])))

    def sort_key(self, standing, token: float) -> tuple:
        return (standing.wins, standing.buchholz_score, standing.fine_buchholz_score,
                standing.differential, token)


class PointQuotientRanking(RankingStrategy):
    """wins, differential, points for / points against, token."""
    method = RankingMethod.POINT_QUOTIENT

    def score(self, standings: Sequence, opponents: Dict[str, List[str]]):
        for s in standings:
            s.point_quotient = point_quotient(s.points_for, s.points_against)

    def sort_key(self, standing, token: float) -> tuple:
        return standing.wins, standing.differential, standing.point_quotient, token


RANKING_FOR_DISCIPLINE = {
    PairingDiscipline.SWISS: BuchholzRanking(),
    PairingDiscipline.SWISS_HOTEL: PointQuotientRanking(),
    PairingDiscipline.ROUND_ROBIN: PointQuotientRanking(),
    PairingDiscipline.POOL_PLAY: PointQuotientRanking(),
}


def get_ranking_strategy(discipline) -> RankingStrategy:
    if not isinstance(discipline, PairingDiscipline):
        discipline = PairingDiscipline.parse(discipline)
    return RANKING_FOR_DISCIPLINE[discipline]
