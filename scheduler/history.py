from collections import Counter, defaultdict
from typing import Dict, FrozenSet, Iterable, List, Tuple


class PairingHistory:
    """Symmetric, append-only record of which teams have met."""

    def __init__(self, pairs: Iterable[Tuple[str, str]] = ()):
        self._pairs: Counter = Counter()
        for team1_id, team2_id in pairs:
            self.record(team1_id, team2_id)

    @staticmethod
    def _key(team1_id: str, team2_id: str) -> FrozenSet[str]:
        return frozenset((team1_id, team2_id))

    def record(self, team1_id: str, team2_id: str):
        self._pairs[self._key(team1_id, team2_id)] += 1

    def have_played(self, team1_id: str, team2_id: str) -> bool:
        return self._pairs[self._key(team1_id, team2_id)] > 0

    def times_played(self, team1_id: str, team2_id: str) -> int:
        return self._pairs[self._key(team1_id, team2_id)]

    def __len__(self) -> int:
        return sum(self._pairs.values())


class CourtHistory:
    """Courts each team has been assigned to, in round order."""

    def __init__(self, entries: Iterable[Tuple[str, int]] = ()):
        self._courts: Dict[str, List[int]] = defaultdict(list)
        for team_id, court_number in entries:
            self.record_court(team_id, court_number)

    def record_court(self, team_id: str, court_number: int):
        self._courts[team_id].append(court_number)

    def history(self, team_id: str) -> List[int]:
        return list(self._courts.get(team_id, []))

    def as_dict(self) -> Dict[str, List[int]]:
        return {team_id: list(courts) for team_id, courts in self._courts.items()}
