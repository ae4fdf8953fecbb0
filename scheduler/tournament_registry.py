import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from shared.errors import LockedStateError, NotFoundError, ValidationError
from .history import CourtHistory, PairingHistory
from .models import (
    db, Tournament, Team, TeamStanding, QualifyingRound,
    PairingHistoryRecord, CourtHistoryRecord,
)
from .pairing_engine import PairingDiscipline
from .store import atomic

logger = logging.getLogger(__name__)

# Settings that shape already generated rounds
LOCKED_AFTER_ROUNDS = ('number_of_courts', 'number_of_qualifying_rounds', 'pairing_method')

EDITABLE_FIELDS = (
    'name', 'pairing_method', 'number_of_courts', 'number_of_qualifying_rounds',
    'has_consolante', 'advance_all', 'advance_count', 'bracket_size', 'region_avoidance',
)

TEAM_FIELDS = ('captain', 'player2', 'player3', 'region', 'club')


@dataclass
class TournamentSettings:
    pairing_discipline: PairingDiscipline
    number_of_courts: int
    region_avoidance: bool
    has_consolante: bool
    advance_all: bool
    advance_count: Optional[int]
    bracket_size: int
    number_of_qualifying_rounds: int

    @classmethod
    def from_tournament(cls, tournament: Tournament) -> "TournamentSettings":
        return cls(
            pairing_discipline=PairingDiscipline.parse(tournament.pairing_method),
            number_of_courts=tournament.number_of_courts,
            region_avoidance=bool(tournament.region_avoidance),
            has_consolante=bool(tournament.has_consolante),
            advance_all=bool(tournament.advance_all),
            advance_count=tournament.advance_count,
            bracket_size=tournament.bracket_size,
            number_of_qualifying_rounds=tournament.number_of_qualifying_rounds,
        )

    @property
    def max_teams(self) -> int:
        return self.number_of_courts * 2


class TournamentRegistry:
    """
    Tournament and team records, plus the read views the engine consumes:
    settings, teams, standings, pairing history and court history.
    """

    # ==================== Tournaments ====================

    def create_tournament(self, name: str, **settings) -> Tournament:
        """Create a tournament with validated settings."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Tournament name is required", field='name')

        tournament = Tournament(name=name.strip())
        self._apply_settings(tournament, settings)

        with atomic() as session:
            session.add(tournament)

        logger.info(f"Created tournament {tournament.id} ({tournament.pairing_method})")
        return tournament

    def get_tournament(self, tournament_id: str) -> Tournament:
        tournament = db.session.get(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError('tournament', tournament_id)
        return tournament

    def list_tournaments(self, limit: int = 50, offset: int = 0) -> List[Tournament]:
        query = Tournament.query.order_by(Tournament.created_at.desc())
        return query.offset(offset).limit(limit).all()

    def update_tournament(self, tournament_id: str, **changes) -> Tournament:
        """
        Update settings. Courts, qualifying-round count and pairing method are
        locked once any qualifying round exists.
        """
        with atomic():
            tournament = self.get_tournament(tournament_id)

            if self.has_rounds(tournament_id):
                for field in LOCKED_AFTER_ROUNDS:
                    if field in changes and changes[field] != getattr(tournament, field):
                        raise LockedStateError(
                            f"Cannot change {field.replace('_', ' ')} after qualifying rounds "
                            f"have been generated. Delete all rounds first.",
                            tournament_id=tournament_id,
                            field=field,
                        )

            if 'name' in changes:
                if not isinstance(changes['name'], str) or not changes['name'].strip():
                    raise ValidationError("Tournament name is required", field='name')
                tournament.name = changes.pop('name').strip()
            self._apply_settings(tournament, changes)

        return tournament

    def delete_tournament(self, tournament_id: str):
        with atomic() as session:
            tournament = self.get_tournament(tournament_id)
            PairingHistoryRecord.query.filter_by(tournament_id=tournament_id).delete()
            CourtHistoryRecord.query.filter_by(tournament_id=tournament_id).delete()
            for bracket in tournament.brackets:
                for match in bracket.matches:
                    match.next_match_id = None
            session.flush()
            session.delete(tournament)
        logger.info(f"Deleted tournament {tournament_id}")

    def get_settings(self, tournament_id: str) -> TournamentSettings:
        return TournamentSettings.from_tournament(self.get_tournament(tournament_id))

    def _apply_settings(self, tournament: Tournament, settings: dict):
        unknown = set(settings) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}", fields=sorted(unknown))

        if 'pairing_method' in settings:
            tournament.pairing_method = PairingDiscipline.parse(settings['pairing_method']).value

        for field in ('number_of_courts', 'number_of_qualifying_rounds'):
            if field in settings:
                tournament.__setattr__(field, self._positive_int(field, settings[field], minimum=1))

        if 'bracket_size' in settings:
            tournament.bracket_size = self._positive_int('bracket_size', settings['bracket_size'], minimum=2)

        if 'advance_count' in settings:
            value = settings['advance_count']
            tournament.advance_count = None if value is None else self._positive_int('advance_count', value, minimum=2)

        for field in ('has_consolante', 'advance_all', 'region_avoidance'):
            if field in settings:
                tournament.__setattr__(field, bool(settings[field]))

    @staticmethod
    def _positive_int(field: str, value, minimum: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ValidationError(f"{field} must be an integer >= {minimum}", field=field, value=value)
        return value

    # ==================== Teams ====================

    def add_team(self, tournament_id: str, captain: str, player2: str, player3: str = None,
                 region: str = None, club: str = None) -> Team:
        """Register a team and its empty standing row."""
        with atomic():
            team = self._add_team(tournament_id, dict(
                captain=captain, player2=player2, player3=player3, region=region, club=club,
            ), incoming=1)
        logger.info(f"Registered team {team.id} in {tournament_id}")
        return team

    def import_teams(self, tournament_id: str, teams: List[dict]) -> List[Team]:
        """Register several teams at once; any invalid entry aborts the import."""
        with atomic():
            created = [
                self._add_team(tournament_id, data, incoming=len(teams) - i)
                for i, data in enumerate(teams)
            ]
        logger.info(f"Imported {len(created)} teams into {tournament_id}")
        return created

    def _add_team(self, tournament_id: str, data: dict, incoming: int) -> Team:
        tournament = self.get_tournament(tournament_id)

        if self.has_rounds(tournament_id):
            raise LockedStateError(
                "Cannot add teams after qualifying rounds have been generated. Delete all rounds first.",
                tournament_id=tournament_id,
            )

        if not isinstance(data, dict):
            raise ValidationError("Each team must be a JSON object", value=data)

        unknown = set(data) - set(TEAM_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown team fields: {', '.join(sorted(unknown))}", fields=sorted(unknown))

        for field in ('captain', 'player2'):
            if not data.get(field) or not str(data[field]).strip():
                raise ValidationError(f"Team {field} is required", field=field)

        max_teams = tournament.number_of_courts * 2
        current = Team.query.filter_by(tournament_id=tournament_id).count()
        if current + incoming > max_teams:
            raise ValidationError(
                f"Cannot add more teams. Maximum is {max_teams} teams "
                f"({tournament.number_of_courts} courts x 2).",
                tournament_id=tournament_id,
                max_teams=max_teams,
                current=current,
            )

        team = Team(tournament_id=tournament_id, **{k: v for k, v in data.items() if k in TEAM_FIELDS})
        team.standing = TeamStanding(tournament_id=tournament_id)
        db.session.add(team)
        db.session.flush()
        return team

    def get_team(self, team_id: str) -> Team:
        team = db.session.get(Team, team_id)
        if team is None:
            raise NotFoundError('team', team_id)
        return team

    def list_teams(self, tournament_id: str) -> List[Team]:
        self.get_tournament(tournament_id)
        return Team.query.filter_by(tournament_id=tournament_id).order_by(Team.created_at, Team.id).all()

    def delete_team(self, team_id: str):
        """Teams are fixed once qualifying has started."""
        with atomic() as session:
            team = self.get_team(team_id)
            if self.has_rounds(team.tournament_id):
                raise LockedStateError(
                    "Cannot delete teams after qualifying rounds have been generated. Delete all rounds first.",
                    team_id=team_id,
                    tournament_id=team.tournament_id,
                )
            session.delete(team)

    def update_team(self, team_id: str, **fields) -> Team:
        """Edit player names, region or club. Allowed at any stage."""
        with atomic():
            team = self.get_team(team_id)
            unknown = set(fields) - set(TEAM_FIELDS)
            if unknown:
                raise ValidationError(f"Unknown team fields: {', '.join(sorted(unknown))}", fields=sorted(unknown))
            for field in ('captain', 'player2'):
                if field in fields and (not fields[field] or not str(fields[field]).strip()):
                    raise ValidationError(f"Team {field} is required", field=field)
            for field, value in fields.items():
                setattr(team, field, value)
        logger.info(f"Updated team {team_id}: {', '.join(sorted(fields))}")
        return team

    def delete_all_teams(self, tournament_id: str) -> int:
        with atomic() as session:
            self.get_tournament(tournament_id)
            if self.has_rounds(tournament_id):
                raise LockedStateError(
                    "Cannot delete teams after qualifying rounds have been generated. Delete all rounds first.",
                    tournament_id=tournament_id,
                )
            teams = Team.query.filter_by(tournament_id=tournament_id).all()
            for team in teams:
                session.delete(team)
        logger.info(f"Deleted {len(teams)} teams from {tournament_id}")
        return len(teams)

    # ==================== Engine views ====================

    def has_rounds(self, tournament_id: str) -> bool:
        return QualifyingRound.query.filter_by(tournament_id=tournament_id).count() > 0

    def get_standings(self, tournament_id: str) -> Dict[str, TeamStanding]:
        rows = TeamStanding.query.filter_by(tournament_id=tournament_id).all()
        return {s.team_id: s for s in rows}

    def ranked_standings(self, tournament_id: str) -> List[TeamStanding]:
        self.get_tournament(tournament_id)
        return (TeamStanding.query
                .filter_by(tournament_id=tournament_id)
                .join(Team, Team.id == TeamStanding.team_id)
                .order_by(TeamStanding.rank, Team.created_at, Team.id)
                .all())

    def get_pairing_history(self, tournament_id: str) -> PairingHistory:
        rows = PairingHistoryRecord.query.filter_by(tournament_id=tournament_id).all()
        return PairingHistory((r.team1_id, r.team2_id) for r in rows)

    def get_court_history(self, tournament_id: str) -> CourtHistory:
        rows = (CourtHistoryRecord.query
                .filter_by(tournament_id=tournament_id)
                .join(QualifyingRound, QualifyingRound.id == CourtHistoryRecord.round_id)
                .order_by(QualifyingRound.round_number)
                .all())
        return CourtHistory((r.team_id, r.court_number) for r in rows)
