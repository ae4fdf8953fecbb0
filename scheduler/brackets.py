import logging
import random
from typing import List

from shared.errors import LockedStateError, NotFoundError, SequenceError, ValidationError
from shared.events import bracket_created_event, match_result_event, bracket_completed_event
from shared.pubsub import PubSubClient
from .bracket_builder import BracketBuilder
from .consolante import ConsolanteSpinner
from .match_advancer import MatchAdvancer
from .models import db, Bracket, BracketMatch, QualifyingRound, Tournament
from .store import atomic, save_bracket_plan
from .tournament_registry import TournamentRegistry

logger = logging.getLogger(__name__)

BRACKET_LETTERS = 'ABCDEFGH'


def bracket_name(index: int) -> str:
    """A..H for the first eight brackets, then 'Bracket 9', 'Bracket 10', ..."""
    if index < len(BRACKET_LETTERS):
        return BRACKET_LETTERS[index]
    return f"Bracket {index + 1}"


class BracketService:
    def __init__(self, registry: TournamentRegistry, rng: random.Random = None,
                 pubsub: PubSubClient = None):
        self.registry = registry
        self.rng = rng or random.Random()
        self.pubsub = pubsub or PubSubClient()
        self.advancer = MatchAdvancer(ConsolanteSpinner(self.rng))

    def generate_brackets(self, tournament_id: str) -> List[Bracket]:
        """
        Seed the advancing teams by rank into brackets of bracket_size teams.

        Requires every qualifying round to be complete and no existing brackets.
        """
        with atomic():
            tournament = self.registry.get_tournament(tournament_id)
            self._check_can_generate(tournament)

            advancing = self.advancing_teams(tournament)
            chunks = [
                advancing[i:i + tournament.bracket_size]
                for i in range(0, len(advancing), tournament.bracket_size)
            ]
            if not chunks:
                raise ValidationError("No teams advance to the brackets", tournament_id=tournament_id)

            builder = BracketBuilder(self.rng)
            created = []
            for index, team_ids in enumerate(chunks):
                name = bracket_name(index)
                if len(team_ids) < 2:
                    raise ValidationError(
                        f"Bracket {name} would hold a single team",
                        tournament_id=tournament_id,
                        bracket=name,
                    )
                plan = builder.build(team_ids, tournament.number_of_courts)
                created.append(save_bracket_plan(tournament_id, name, plan, index * 2))

        logger.info(f"Generated {len(created)} brackets for {tournament_id} from {len(advancing)} teams")
        self.pubsub.publish_all(bracket_created_event(tournament_id, b.name, b.size) for b in created)
        return created

    def _check_can_generate(self, tournament: Tournament):
        if Bracket.query.filter_by(tournament_id=tournament.id).count():
            raise SequenceError(
                "Brackets already exist. Delete them before generating again.",
                tournament_id=tournament.id,
            )

        rounds = QualifyingRound.query.filter_by(tournament_id=tournament.id).all()
        if not rounds:
            raise SequenceError("No qualifying rounds have been played", tournament_id=tournament.id)

        pending = sorted(r.round_number for r in rounds if not r.is_complete)
        if pending:
            raise SequenceError(
                f"Round {pending[0]} must be completed before generating brackets",
                tournament_id=tournament.id,
                pending_rounds=pending,
            )

    def advancing_teams(self, tournament: Tournament) -> List[str]:
        """Team ids in rank order, eliminated teams skipped, cut to the advance count."""
        ranked = [
            s.team_id for s in self.registry.ranked_standings(tournament.id)
            if not s.is_eliminated
        ]
        if tournament.advance_all:
            return ranked
        return ranked[:tournament.advance_count or tournament.bracket_size]

    def submit_match_score(self, match_id: str, team1_score: int, team2_score: int) -> BracketMatch:
        with atomic():
            match = self.get_match(match_id)
            bracket = match.bracket
            result = self.advancer.submit_score(match, team1_score, team2_score)

            tournament_id = bracket.tournament_id
            events = [match_result_event(tournament_id, match.id, result.winner_id, match.round_number)]
            if result.bracket_completed:
                events.append(bracket_completed_event(tournament_id, bracket.name, result.winner_id))
            if result.consolante is not None:
                events.append(bracket_created_event(
                    tournament_id, result.consolante.name, result.consolante.size, is_consolante=True
                ))

        self.pubsub.publish_all(events)
        return match

    def delete_all_brackets(self, tournament_id: str) -> int:
        """Remove every bracket, consolantes included, until a real match has been played."""
        with atomic() as session:
            self.registry.get_tournament(tournament_id)
            brackets = Bracket.query.filter_by(tournament_id=tournament_id).all()

            played = [m.id for b in brackets for m in b.matches if not m.is_bye and m.winner_id]
            if played:
                raise LockedStateError(
                    "Cannot delete brackets once matches have been scored",
                    tournament_id=tournament_id,
                    scored_matches=len(played),
                )

            for bracket in brackets:
                for match in bracket.matches:
                    match.next_match_id = None
            session.flush()
            for bracket in brackets:
                session.delete(bracket)

        logger.info(f"Deleted {len(brackets)} brackets for {tournament_id}")
        return len(brackets)

    def list_brackets(self, tournament_id: str) -> List[Bracket]:
        return self.registry.get_tournament(tournament_id).brackets

    def get_bracket(self, bracket_id: str) -> Bracket:
        bracket = db.session.get(Bracket, bracket_id)
        if bracket is None:
            raise NotFoundError('bracket', bracket_id)
        return bracket

    def get_match(self, match_id: str) -> BracketMatch:
        match = db.session.get(BracketMatch, match_id)
        if match is None:
            raise NotFoundError('match', match_id)
        return match
