"""
Qualifying phase: round generation, game scores and round completion.

Each public method is one transaction. Events are published only after the
transaction has committed.
"""
import logging
import random
from collections import defaultdict
from typing import Dict, List

from shared.errors import LockedStateError, NotFoundError, SequenceError, ValidationError
from shared.events import round_generated_event, round_completed_event, game_scored_event
from shared.pubsub import PubSubClient
from .bracket_builder import BYE_SCORE
from .court_assigner import CourtAssigner
from .match_advancer import validate_scores
from .models import (
    db, Bracket, QualifyingRound, QualifyingGame,
    PairingHistoryRecord, CourtHistoryRecord,
)
from .pairing_engine import PairingDiscipline, RoundRequest, generate_round
from .ranking_engine import get_ranking_strategy
from .store import atomic
from .tournament_registry import TournamentRegistry, TournamentSettings

logger = logging.getLogger(__name__)

# Disciplines whose rounds do not depend on earlier results
BATCH_DISCIPLINES = (PairingDiscipline.SWISS_HOTEL, PairingDiscipline.ROUND_ROBIN)


class QualifyingService:
    def __init__(self, registry: TournamentRegistry, rng: random.Random = None,
                 pubsub: PubSubClient = None):
        self.registry = registry
        self.rng = rng or random.Random()
        self.pubsub = pubsub or PubSubClient()

    # ==================== Round generation ====================

    def generate_next_round(self, tournament_id: str) -> QualifyingRound:
        with atomic():
            settings = self.registry.get_settings(tournament_id)
            rounds = self._rounds(tournament_id)
            next_number = rounds[-1].round_number + 1 if rounds else 1
            self._check_can_generate(tournament_id, settings, rounds, next_number)
            qualifying_round = self._create_round(tournament_id, settings, next_number)

        self.pubsub.publish_tournament_event(
            tournament_id,
            round_generated_event(tournament_id, qualifying_round.round_number, len(qualifying_round.games)),
        )
        return qualifying_round

    def generate_all_remaining_rounds(self, tournament_id: str) -> List[QualifyingRound]:
        """
        Generate every round up to the configured count in one go. Only for
        disciplines that do not pair on results.
        """
        with atomic():
            settings = self.registry.get_settings(tournament_id)
            if settings.pairing_discipline not in BATCH_DISCIPLINES:
                raise SequenceError(
                    f"{settings.pairing_discipline.value} rounds depend on previous results "
                    f"and must be generated one at a time",
                    tournament_id=tournament_id,
                    pairing_method=settings.pairing_discipline.value,
                )

            rounds = self._rounds(tournament_id)
            next_number = rounds[-1].round_number + 1 if rounds else 1
            self._check_can_generate(tournament_id, settings, rounds, next_number)

            created = [
                self._create_round(tournament_id, settings, number)
                for number in range(next_number, settings.number_of_qualifying_rounds + 1)
            ]

        self.pubsub.publish_all(
            round_generated_event(tournament_id, r.round_number, len(r.games)) for r in created
        )
        logger.info(f"Generated rounds {next_number}-{settings.number_of_qualifying_rounds} for {tournament_id}")
        return created

    def _check_can_generate(self, tournament_id: str, settings: TournamentSettings,
                            rounds: List[QualifyingRound], next_number: int):
        if Bracket.query.filter_by(tournament_id=tournament_id).count():
            raise SequenceError(
                "Qualifying is closed once brackets have been generated",
                tournament_id=tournament_id,
            )

        # Pool play is a fixed three-round format whatever the configured count
        max_rounds = settings.pairing_discipline.max_rounds
        limit = max_rounds if max_rounds is not None else settings.number_of_qualifying_rounds
        if next_number > limit:
            raise SequenceError(
                f"All {limit} qualifying rounds have already been generated",
                tournament_id=tournament_id,
                round_number=next_number,
            )

        if settings.pairing_discipline.requires_completed_rounds:
            pending = [r.round_number for r in rounds if not r.is_complete]
            if pending:
                raise SequenceError(
                    f"Complete round {pending[0]} before generating the next round",
                    tournament_id=tournament_id,
                    pending_rounds=pending,
                )

    def _create_round(self, tournament_id: str, settings: TournamentSettings,
                      round_number: int) -> QualifyingRound:
        request = RoundRequest(
            teams=self.registry.list_teams(tournament_id),
            round_number=round_number,
            standings=self.registry.get_standings(tournament_id),
            history=self.registry.get_pairing_history(tournament_id),
            region_avoidance=settings.region_avoidance,
            rng=self.rng,
        )
        pairings = generate_round(settings.pairing_discipline, request)
        games = CourtAssigner(settings.number_of_courts).assign(
            pairings, self.registry.get_court_history(tournament_id)
        )

        qualifying_round = QualifyingRound(tournament_id=tournament_id, round_number=round_number)
        db.session.add(qualifying_round)
        db.session.flush()

        for assigned in games:
            game = QualifyingGame(
                round_id=qualifying_round.id,
                court_number=assigned.court_number,
                team1_id=assigned.team1_id,
                team2_id=assigned.team2_id,
                is_bye=assigned.is_bye,
            )
            if assigned.is_bye:
                game.team1_score, game.team2_score = BYE_SCORE
            else:
                db.session.add(PairingHistoryRecord(
                    tournament_id=tournament_id,
                    team1_id=assigned.team1_id,
                    team2_id=assigned.team2_id,
                    round_id=qualifying_round.id,
                ))
            db.session.add(game)

            for team_id in filter(None, (assigned.team1_id, assigned.team2_id)):
                db.session.add(CourtHistoryRecord(
                    tournament_id=tournament_id,
                    team_id=team_id,
                    court_number=assigned.court_number,
                    round_id=qualifying_round.id,
                ))

        db.session.flush()
        db.session.expire(qualifying_round, ['games'])

        byes = sum(1 for g in games if g.is_bye)
        logger.info(
            f"Generated round {round_number} for {tournament_id}: "
            f"{len(games)} games ({byes} byes), {settings.pairing_discipline.value}"
        )
        return qualifying_round

    # ==================== Scores ====================

    def submit_game_score(self, game_id: str, team1_score: int, team2_score: int) -> QualifyingGame:
        with atomic():
            game = self.get_game(game_id)
            if game.is_bye:
                raise ValidationError("Bye games are resolved automatically", game_id=game_id)
            if game.round.is_complete:
                raise LockedStateError(
                    f"Round {game.round.round_number} is already complete",
                    game_id=game_id,
                    round_id=game.round_id,
                )
            validate_scores(team1_score, team2_score)
            game.team1_score = team1_score
            game.team2_score = team2_score
            tournament_id = game.round.tournament_id

        self.pubsub.publish_tournament_event(
            tournament_id, game_scored_event(tournament_id, game_id, team1_score, team2_score)
        )
        return game

    def complete_round(self, round_id: str) -> QualifyingRound:
        """
        Fold the round's results into the standings, re-rank every team and
        mark the round complete. Completing the last pool-play round also
        eliminates teams with two or more losses.
        """
        with atomic():
            qualifying_round = self.get_round(round_id)
            tournament_id = qualifying_round.tournament_id

            if qualifying_round.is_complete:
                raise SequenceError(
                    f"Round {qualifying_round.round_number} is already complete",
                    round_id=round_id,
                )

            earlier_pending = QualifyingRound.query.filter(
                QualifyingRound.tournament_id == tournament_id,
                QualifyingRound.round_number < qualifying_round.round_number,
                QualifyingRound.is_complete.is_(False),
            ).count()
            if earlier_pending:
                raise SequenceError(
                    "Earlier rounds must be completed first",
                    round_id=round_id,
                    round_number=qualifying_round.round_number,
                )

            unscored = [g.id for g in qualifying_round.games if not g.is_bye and not g.is_scored]
            if unscored:
                raise ValidationError(
                    f"{len(unscored)} game(s) still need a score",
                    round_id=round_id,
                    unscored_games=unscored,
                )

            settings = self.registry.get_settings(tournament_id)
            standings = self.registry.get_standings(tournament_id)
            for game in qualifying_round.games:
                self._apply_result(standings, game)

            qualifying_round.is_complete = True
            db.session.flush()

            get_ranking_strategy(settings.pairing_discipline).rank(
                list(standings.values()), self._opponents(tournament_id), self.rng
            )

            discipline = settings.pairing_discipline
            if discipline is PairingDiscipline.POOL_PLAY and qualifying_round.round_number == discipline.max_rounds:
                eliminated = [s for s in standings.values() if s.losses >= 2]
                for standing in eliminated:
                    standing.is_eliminated = True
                logger.info(f"Pool play finished for {tournament_id}: {len(eliminated)} teams eliminated")

            round_number = qualifying_round.round_number

        self.pubsub.publish_tournament_event(tournament_id, round_completed_event(tournament_id, round_number))
        return qualifying_round

    @staticmethod
    def _apply_result(standings: Dict[str, object], game: QualifyingGame):
        sides = ((game.team1_id, game.team1_score, game.team2_score),
                 (game.team2_id, game.team2_score, game.team1_score))
        for team_id, scored, conceded in sides:
            standing = standings.get(team_id) if team_id else None
            if standing is None:
                continue
            standing.points_for += scored
            standing.points_against += conceded
            standing.differential = standing.points_for - standing.points_against
            if scored > conceded:
                standing.wins += 1
            else:
                standing.losses += 1

    @staticmethod
    def _opponents(tournament_id: str) -> Dict[str, List[str]]:
        """Opponents per team across every completed round, one entry per game."""
        games = (QualifyingGame.query
                 .join(QualifyingRound, QualifyingRound.id == QualifyingGame.round_id)
                 .filter(QualifyingRound.tournament_id == tournament_id,
                         QualifyingRound.is_complete.is_(True),
                         QualifyingGame.is_bye.is_(False))
                 .all())
        opponents = defaultdict(list)
        for game in games:
            opponents[game.team1_id].append(game.team2_id)
            opponents[game.team2_id].append(game.team1_id)
        return opponents

    # ==================== Reset ====================

    def delete_all_rounds(self, tournament_id: str) -> int:
        """Remove every round, its history and standings, until play has started."""
        with atomic() as session:
            self.registry.get_tournament(tournament_id)

            if Bracket.query.filter_by(tournament_id=tournament_id).count():
                raise LockedStateError(
                    "Delete the brackets before deleting qualifying rounds",
                    tournament_id=tournament_id,
                )

            rounds = self._rounds(tournament_id)
            scored = [g.id for r in rounds for g in r.games if not g.is_bye and g.is_scored]
            if scored:
                raise LockedStateError(
                    "Cannot delete rounds once games have been scored",
                    tournament_id=tournament_id,
                    scored_games=len(scored),
                )

            PairingHistoryRecord.query.filter_by(tournament_id=tournament_id).delete()
            CourtHistoryRecord.query.filter_by(tournament_id=tournament_id).delete()
            for qualifying_round in rounds:
                session.delete(qualifying_round)
            for standing in self.registry.get_standings(tournament_id).values():
                standing.reset()

        logger.info(f"Deleted {len(rounds)} rounds for {tournament_id}")
        return len(rounds)

    # ==================== Reads ====================

    def get_round(self, round_id: str) -> QualifyingRound:
        qualifying_round = db.session.get(QualifyingRound, round_id)
        if qualifying_round is None:
            raise NotFoundError('round', round_id)
        return qualifying_round

    def get_game(self, game_id: str) -> QualifyingGame:
        game = db.session.get(QualifyingGame, game_id)
        if game is None:
            raise NotFoundError('game', game_id)
        return game

    def list_rounds(self, tournament_id: str) -> List[QualifyingRound]:
        self.registry.get_tournament(tournament_id)
        return self._rounds(tournament_id)

    @staticmethod
    def _rounds(tournament_id: str) -> List[QualifyingRound]:
        return (QualifyingRound.query
                .filter_by(tournament_id=tournament_id)
                .order_by(QualifyingRound.round_number)
                .all())
