"""
Qualifying round pairing.

Each discipline is a PairingStrategy. Swiss, Swiss-Hotel and Pool-Play share
a greedy three-pass matcher that relaxes its constraints pass by pass, so it
always terminates but may produce a rematch when nothing else is left.
"""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from shared.errors import ValidationError
from .history import PairingHistory

logger = logging.getLogger(__name__)

POOL_PLAY_ROUNDS = 3


class PairingDiscipline(str, Enum):
    SWISS = "swiss"
    SWISS_HOTEL = "swissHotel"
    ROUND_ROBIN = "roundRobin"
    POOL_PLAY = "poolPlay"

    @property
    def requires_completed_rounds(self) -> bool:
        """Next round depends on the previous round's results."""
        return self in (PairingDiscipline.SWISS, PairingDiscipline.POOL_PLAY)

    @property
    def max_rounds(self) -> Optional[int]:
        return POOL_PLAY_ROUNDS if self is PairingDiscipline.POOL_PLAY else None

    @classmethod
    def parse(cls, value: str) -> "PairingDiscipline":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                f"Unknown pairing discipline '{value}'",
                field='pairing_method',
                value=value,
                allowed=[d.value for d in cls],
            )


class Pairing(NamedTuple):
    team1_id: str
    team2_id: Optional[str] = None

    @property
    def is_bye(self) -> bool:
        return self.team2_id is None


@dataclass
class RoundRequest:
    """Everything a strategy needs to pair one round."""
    teams: Sequence
    round_number: int
    standings: Dict[str, object] = field(default_factory=dict)
    history: PairingHistory = field(default_factory=PairingHistory)
    region_avoidance: bool = False
    rng: random.Random = field(default_factory=random.Random)

    def region_of(self, team) -> Optional[str]:
        region = getattr(team, 'region', None)
        return region.strip() if region and region.strip() else None

    def record_of(self, team_id: str):
        """(wins, losses) from standings, zeros for a team with no row yet."""
        standing = self.standings.get(team_id)
        if standing is None:
            return 0, 0
        return standing.wins, standing.losses


class PairingStrategy:
    discipline: PairingDiscipline = None

    def pair(self, request: RoundRequest) -> List[Pairing]:
        raise NotImplementedError

    def _match_greedily(self, ordered_teams: Sequence, request: RoundRequest) -> List[Pairing]:
        """
        Walk the ordered teams and pair each unpaired team with the first
        later team that satisfies the strictest pass possible:

        1. not yet played and not from the same region (region avoidance on)
        2. not yet played
        3. anyone still unpaired

        A team left without an opponent receives a bye.
        """
        passes: List[Callable] = [
            lambda a, b: not request.history.have_played(a.id, b.id) and not self._same_region(a, b, request),
            lambda a, b: not request.history.have_played(a.id, b.id),
            lambda a, b: True,
        ]

        pairings: List[Pairing] = []
        paired = set()

        for i, team in enumerate(ordered_teams):
            if team.id in paired:
                continue

            opponent = None
            for pass_number, allowed in enumerate(passes, start=1):
                opponent = next(
                    (other for other in ordered_teams[i + 1:]
                     if other.id not in paired and allowed(team, other)),
                    None
                )
                if opponent is not None:
                    meetings = request.history.times_played(team.id, opponent.id)
                    if pass_number == 3 and meetings:
                        logger.warning(
                            f"Forced rematch {team.id} vs {opponent.id} in round {request.round_number} "
                            f"(meeting {meetings + 1})"
                        )
                    elif pass_number > 1:
                        logger.debug(f"{team.id} paired on pass {pass_number}")
                    break

            paired.add(team.id)
            if opponent is None:
                pairings.append(Pairing(team.id, None))
            else:
                paired.add(opponent.id)
                pairings.append(Pairing(team.id, opponent.id))

        return pairings

    def _same_region(self, team_a, team_b, request: RoundRequest) -> bool:
        if not request.region_avoidance:
            return False
        region_a = request.region_of(team_a)
        region_b = request.region_of(team_b)
        return region_a is not None and region_a == region_b


class SwissPairing(PairingStrategy):
    """Pair by standing, strongest first, then hide rank order from the courts."""
    discipline = PairingDiscipline.SWISS

    def pair(self, request: RoundRequest) -> List[Pairing]:
        def sort_key(team):
            standing = request.standings.get(team.id)
            if standing is None:
                return 0, 0, 0
            return standing.wins, standing.differential, standing.points_for

        ordered = sorted(request.teams, key=sort_key, reverse=True)
        pairings = self._match_greedily(ordered, request)
        request.rng.shuffle(pairings)
        return pairings


class SwissHotelPairing(PairingStrategy):
    """Swiss matching over a random order, detached from the standings."""
    discipline = PairingDiscipline.SWISS_HOTEL

    def pair(self, request: RoundRequest) -> List[Pairing]:
        ordered = list(request.teams)
        request.rng.shuffle(ordered)
        return self._match_greedily(ordered, request)


class RoundRobinPairing(PairingStrategy):
    """Circle method: the first team is fixed, the others rotate one step per round."""
    discipline = PairingDiscipline.ROUND_ROBIN

    def pair(self, request: RoundRequest) -> List[Pairing]:
        team_ids: List[Optional[str]] = [t.id for t in request.teams]
        if len(team_ids) < 2:
            raise ValidationError(
                "Need at least 2 teams for round-robin",
                team_count=len(team_ids),
            )

        if len(team_ids) % 2 == 1:
            team_ids.append(None)

        total = len(team_ids)
        shift = (request.round_number - 1) % (total - 1)
        rotated = [team_ids[0]] + [
            team_ids[1 + (i - 1 + shift) % (total - 1)] for i in range(1, total)
        ]

        pairings = []
        for i in range(total // 2):
            t1 = rotated[i]
            t2 = rotated[total - 1 - i]
            if t1 is None:
                pairings.append(Pairing(t2, None))
            elif t2 is None:
                pairings.append(Pairing(t1, None))
            else:
                pairings.append(Pairing(t1, t2))
        return pairings


class PoolPlayPairing(PairingStrategy):
    """
    Three fixed rounds.

    Round 1 is a Swiss-Hotel draw. Round 2 pairs winners with winners and
    the rest with the rest. Round 3 is played only by 1-1 teams; 2-0 teams
    are through and 0-2 teams are out.
    """
    discipline = PairingDiscipline.POOL_PLAY

    def pair(self, request: RoundRequest) -> List[Pairing]:
        if request.round_number < 1 or request.round_number > POOL_PLAY_ROUNDS:
            raise ValidationError(
                f"Pool play has only {POOL_PLAY_ROUNDS} rounds",
                round_number=request.round_number,
            )

        if request.round_number == 1:
            return SwissHotelPairing().pair(request)

        if request.round_number == 2:
            winners, rest = [], []
            for team in request.teams:
                wins, losses = request.record_of(team.id)
                (winners if wins > losses else rest).append(team)
            return self._pair_group(winners, request) + self._pair_group(rest, request)

        one_and_one = [t for t in request.teams if request.record_of(t.id) == (1, 1)]
        return self._pair_group(one_and_one, request)

    def _pair_group(self, group: List, request: RoundRequest) -> List[Pairing]:
        group = list(group)
        request.rng.shuffle(group)
        return self._match_greedily(group, request)


STRATEGIES: Dict[PairingDiscipline, PairingStrategy] = {
    PairingDiscipline.SWISS: SwissPairing(),
    PairingDiscipline.SWISS_HOTEL: SwissHotelPairing(),
    PairingDiscipline.ROUND_ROBIN: RoundRobinPairing(),
    PairingDiscipline.POOL_PLAY: PoolPlayPairing(),
}


def get_pairing_strategy(discipline) -> PairingStrategy:
    if not isinstance(discipline, PairingDiscipline):
        discipline = PairingDiscipline.parse(discipline)
    return STRATEGIES[discipline]


def generate_round(discipline, request: RoundRequest) -> List[Pairing]:
    """Pairings for one round; a Pairing without team2 is a bye."""
    if not request.teams:
        raise ValidationError("No teams registered for this tournament", round_number=request.round_number)
    return get_pairing_strategy(discipline).pair(request)
