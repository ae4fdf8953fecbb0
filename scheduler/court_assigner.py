from typing import List, NamedTuple, Optional, Sequence

from shared.errors import ValidationError
from .history import CourtHistory
from .pairing_engine import Pairing


class AssignedGame(NamedTuple):
    court_number: int
    team1_id: str
    team2_id: Optional[str]

    @property
    def is_bye(self) -> bool:
        return self.team2_id is None


class CourtRotationStrategy:
    """Chooses a court for the pairing at a given position in the round."""

    def choose(self, index: int, pairing: Pairing, number_of_courts: int,
               court_history: CourtHistory) -> int:
        raise NotImplementedError


class CyclicCourtStrategy(CourtRotationStrategy):
    """Courts 1..N in order, wrapping around. Court history is not consulted yet."""

    def choose(self, index: int, pairing: Pairing, number_of_courts: int,
               court_history: CourtHistory) -> int:
        return index % number_of_courts + 1


class CourtAssigner:
    def __init__(self, number_of_courts: int, strategy: CourtRotationStrategy = None):
        if number_of_courts is None or number_of_courts < 1:
            raise ValidationError(
                "Number of courts must be at least 1",
                field='number_of_courts',
                value=number_of_courts,
            )
        self.number_of_courts = number_of_courts
        self.strategy = strategy or CyclicCourtStrategy()

    def assign(self, pairings: Sequence[Pairing], court_history: CourtHistory = None) -> List[AssignedGame]:
        """Attach a court to every pairing, keeping the pairing order."""
        court_history = court_history or CourtHistory()
        games = []
        for index, pairing in enumerate(pairings):
            court = self.strategy.choose(index, pairing, self.number_of_courts, court_history)
            games.append(AssignedGame(court, pairing.team1_id, pairing.team2_id))
        return games

    def court_for_index(self, index: int) -> int:
        return index % self.number_of_courts + 1
