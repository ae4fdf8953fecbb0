"""
Single-elimination bracket construction.

The bracket is built as an arena of matches indexed by (round, index). A
match's parent sits at (round + 1, index // 2), so links are computed rather
than followed. Byes go to the first teams of the input list and are resolved
immediately with the fixed bye score.
"""
import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from shared.errors import ValidationError
from .court_assigner import CourtAssigner
from .models import generate_id

logger = logging.getLogger(__name__)

BYE_SCORE = (13, 7)


class BracketDimensions(NamedTuple):
    team_count: int
    padded_size: int
    byes: int
    rounds: int

    def matches_in_round(self, round_number: int) -> int:
        return self.padded_size >> round_number


def bracket_dimensions(team_count: int) -> BracketDimensions:
    if team_count < 2:
        raise ValidationError("Need at least 2 teams for a bracket", team_count=team_count)
    padded_size = 2 ** math.ceil(math.log2(team_count))
    return BracketDimensions(
        team_count=team_count,
        padded_size=padded_size,
        byes=padded_size - team_count,
        rounds=int(math.log2(padded_size)),
    )


def parent_slot(match_number: int) -> str:
    """Slot a match's winner takes in its parent: odd numbers feed team1."""
    return 'team1_id' if match_number % 2 == 1 else 'team2_id'


@dataclass
class PlannedMatch:
    id: str
    round_number: int
    match_number: int
    court_number: int
    team1_id: Optional[str] = None
    team2_id: Optional[str] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_id: Optional[str] = None
    next_match_id: Optional[str] = None
    is_bye: bool = False

    @property
    def index(self) -> int:
        return self.match_number - 1


@dataclass
class BracketPlan:
    dimensions: BracketDimensions
    rounds: List[List[PlannedMatch]] = field(default_factory=list)

    def match_at(self, round_number: int, index: int) -> PlannedMatch:
        return self.rounds[round_number - 1][index]

    @staticmethod
    def parent_position(round_number: int, index: int) -> Tuple[int, int]:
        return round_number + 1, index // 2

    def parent_of(self, match: PlannedMatch) -> Optional[PlannedMatch]:
        if match.round_number >= self.dimensions.rounds:
            return None
        return self.match_at(*self.parent_position(match.round_number, match.index))

    @property
    def final(self) -> PlannedMatch:
        return self.rounds[-1][0]

    def __iter__(self) -> Iterator[PlannedMatch]:
        for round_matches in self.rounds:
            yield from round_matches


class BracketBuilder:
    def __init__(self, rng: random.Random = None, id_factory: Callable[[], str] = None):
        self.rng = rng or random.Random()
        self.id_factory = id_factory or (lambda: generate_id('m'))

    def build(self, ordered_team_ids: Sequence[str], number_of_courts: int,
              shuffle_all: bool = False) -> BracketPlan:
        """
        Plan every match of a bracket for the given teams.

        Args:
            ordered_team_ids: teams by seed priority; the first ones get byes
            number_of_courts: courts are assigned cyclically within each round
            shuffle_all: shuffle the whole list first (no seeding, used for
                consolante brackets)
        """
        dims = bracket_dimensions(len(ordered_team_ids))
        courts = CourtAssigner(number_of_courts)

        team_ids = list(ordered_team_ids)
        if shuffle_all:
            self.rng.shuffle(team_ids)

        bye_teams = team_ids[:dims.byes]
        playing = team_ids[dims.byes:]
        self.rng.shuffle(playing)

        match_ids = [
            [self.id_factory() for _ in range(dims.matches_in_round(r))]
            for r in range(1, dims.rounds + 1)
        ]

        plan = BracketPlan(dimensions=dims)

        first_round = []
        for idx, match_id in enumerate(match_ids[0]):
            match = PlannedMatch(
                id=match_id,
                round_number=1,
                match_number=idx + 1,
                court_number=courts.court_for_index(idx),
            )
            if idx < dims.byes:
                match.team1_id = bye_teams[idx]
                match.is_bye = True
            else:
                offset = (idx - dims.byes) * 2
                match.team1_id, match.team2_id = playing[offset], playing[offset + 1]
            first_round.append(match)
        plan.rounds.append(first_round)

        for round_idx in range(1, dims.rounds):
            plan.rounds.append([
                PlannedMatch(
                    id=match_id,
                    round_number=round_idx + 1,
                    match_number=idx + 1,
                    court_number=courts.court_for_index(idx),
                )
                for idx, match_id in enumerate(match_ids[round_idx])
            ])

        for match in plan:
            parent = plan.parent_of(match)
            if parent is not None:
                match.next_match_id = parent.id

        for match in plan.rounds[0][:dims.byes]:
            self.resolve_bye(plan, match)

        logger.info(
            f"Planned bracket: {dims.team_count} teams, {dims.padded_size} slots, "
            f"{dims.byes} byes, {dims.rounds} rounds"
        )
        return plan

    @staticmethod
    def resolve_bye(plan: BracketPlan, match: PlannedMatch):
        match.winner_id = match.team1_id
        match.team1_score, match.team2_score = BYE_SCORE
        parent = plan.parent_of(match)
        if parent is not None:
            setattr(parent, 'team1_id' if match.index % 2 == 0 else 'team2_id', match.winner_id)
