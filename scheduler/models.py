import math
import uuid
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def generate_id(prefix: str) -> str:
    """Public identifier in the form <prefix>_<12 hex chars>."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('t'))
    name = db.Column(db.String(200), nullable=False)
    pairing_method = db.Column(db.String(20), nullable=False, default='swiss')
    number_of_courts = db.Column(db.Integer, nullable=False, default=8)
    number_of_qualifying_rounds = db.Column(db.Integer, nullable=False, default=5)

    # Bracket settings
    has_consolante = db.Column(db.Boolean, default=False)
    advance_all = db.Column(db.Boolean, default=True)
    advance_count = db.Column(db.Integer, nullable=True)
    bracket_size = db.Column(db.Integer, nullable=False, default=16)

    region_avoidance = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    teams = db.relationship('Team', back_populates='tournament', cascade='all, delete-orphan')
    rounds = db.relationship('QualifyingRound', back_populates='tournament',
                             cascade='all, delete-orphan', order_by='QualifyingRound.round_number')
    brackets = db.relationship('Bracket', back_populates='tournament',
                               cascade='all, delete-orphan', order_by='Bracket.position')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'pairing_method': self.pairing_method,
            'number_of_courts': self.number_of_courts,
            'number_of_qualifying_rounds': self.number_of_qualifying_rounds,
            'has_consolante': self.has_consolante,
            'advance_all': self.advance_all,
            'advance_count': self.advance_count,
            'bracket_size': self.bracket_size,
            'region_avoidance': self.region_avoidance,
            'team_count': len(self.teams),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Team(db.Model):
    __tablename__ = 'teams'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('team'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    captain = db.Column(db.String(100), nullable=False)
    player2 = db.Column(db.String(100), nullable=False)
    player3 = db.Column(db.String(100), nullable=True)  # Triples only
    region = db.Column(db.String(100), nullable=True)
    club = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='teams')
    standing = db.relationship('TeamStanding', back_populates='team', uselist=False,
                               cascade='all, delete-orphan')

    @property
    def name(self) -> str:
        return self.captain

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'captain': self.captain,
            'player2': self.player2,
            'player3': self.player3,
            'region': self.region,
            'club': self.club,
        }


class TeamStanding(db.Model):
    __tablename__ = 'team_standings'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('st'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    team_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=False)
    wins = db.Column(db.Integer, nullable=False, default=0)
    losses = db.Column(db.Integer, nullable=False, default=0)
    points_for = db.Column(db.Integer, nullable=False, default=0)
    points_against = db.Column(db.Integer, nullable=False, default=0)
    differential = db.Column(db.Integer, nullable=False, default=0)
    buchholz_score = db.Column(db.Float, nullable=False, default=0.0)
    fine_buchholz_score = db.Column(db.Float, nullable=False, default=0.0)
    point_quotient = db.Column(db.Float, nullable=False, default=0.0)
    rank = db.Column(db.Integer, nullable=False, default=0)
    is_eliminated = db.Column(db.Boolean, nullable=False, default=False)

    team = db.relationship('Team', back_populates='standing')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'team_id', name='unique_standing_per_team'),
    )

    def reset(self):
        self.wins = 0
        self.losses = 0
        self.points_for = 0
        self.points_against = 0
        self.differential = 0
        self.buchholz_score = 0.0
        self.fine_buchholz_score = 0.0
        self.point_quotient = 0.0
        self.rank = 0
        self.is_eliminated = False

    def to_dict(self):
        quotient = self.point_quotient
        return {
            'team_id': self.team_id,
            'team': self.team.to_dict() if self.team else None,
            'wins': self.wins,
            'losses': self.losses,
            'points_for': self.points_for,
            'points_against': self.points_against,
            'differential': self.differential,
            'buchholz_score': self.buchholz_score,
            'fine_buchholz_score': self.fine_buchholz_score,
            # JSON has no infinity
            'point_quotient': 'inf' if quotient is not None and math.isinf(quotient) else quotient,
            'rank': self.rank,
            'is_eliminated': self.is_eliminated,
        }


class QualifyingRound(db.Model):
    __tablename__ = 'qualifying_rounds'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('r'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    is_complete = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='rounds')
    games = db.relationship('QualifyingGame', back_populates='round',
                            cascade='all, delete-orphan', order_by='QualifyingGame.court_number')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'round_number', name='unique_round_number'),
    )

    def to_dict(self, include_games: bool = False):
        data = {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'round_number': self.round_number,
            'is_complete': self.is_complete,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_games:
            data['games'] = [g.to_dict() for g in self.games]
        return data


class QualifyingGame(db.Model):
    __tablename__ = 'qualifying_games'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('g'))
    round_id = db.Column(db.String(50), db.ForeignKey('qualifying_rounds.id'), nullable=False, index=True)
    court_number = db.Column(db.Integer, nullable=False)
    team1_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=True)
    team2_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=True)
    team1_score = db.Column(db.Integer, nullable=True)
    team2_score = db.Column(db.Integer, nullable=True)
    is_bye = db.Column(db.Boolean, nullable=False, default=False)

    round = db.relationship('QualifyingRound', back_populates='games')

    @property
    def is_scored(self) -> bool:
        return self.team1_score is not None and self.team2_score is not None

    def to_dict(self):
        return {
            'id': self.id,
            'round_id': self.round_id,
            'court_number': self.court_number,
            'team1_id': self.team1_id,
            'team2_id': self.team2_id,
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'is_bye': self.is_bye,
        }


class PairingHistoryRecord(db.Model):
    __tablename__ = 'pairing_history'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('ph'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    team1_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=False)
    team2_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=False)
    round_id = db.Column(db.String(50), db.ForeignKey('qualifying_rounds.id'), nullable=False)


class CourtHistoryRecord(db.Model):
    __tablename__ = 'court_history'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('ch'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    team_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=False)
    court_number = db.Column(db.Integer, nullable=False)
    round_id = db.Column(db.String(50), db.ForeignKey('qualifying_rounds.id'), nullable=False)


class Bracket(db.Model):
    __tablename__ = 'brackets'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('b'))
    tournament_id = db.Column(db.String(50), db.ForeignKey('tournaments.id'), nullable=False, index=True)
    name = db.Column(db.String(50), nullable=False)
    is_consolante = db.Column(db.Boolean, nullable=False, default=False)
    size = db.Column(db.Integer, nullable=False)  # Real team count, not padded
    # Main brackets take even slots, each consolante the odd slot after its parent
    position = db.Column(db.Integer, nullable=False, default=0)
    is_complete = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='brackets')
    matches = db.relationship('BracketMatch', back_populates='bracket', cascade='all, delete-orphan',
                              order_by='[BracketMatch.round_number, BracketMatch.match_number]')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'name', name='unique_bracket_name'),
    )

    def to_dict(self, include_matches: bool = False):
        data = {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'name': self.name,
            'is_consolante': self.is_consolante,
            'size': self.size,
            'position': self.position,
            'is_complete': self.is_complete,
        }
        if include_matches:
            data['matches'] = [m.to_dict() for m in self.matches]
        return data


class BracketMatch(db.Model):
    __tablename__ = 'bracket_matches'

    id = db.Column(db.String(50), primary_key=True, default=lambda: generate_id('m'))
    bracket_id = db.Column(db.String(50), db.ForeignKey('brackets.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    match_number = db.Column(db.Integer, nullable=False)
    court_number = db.Column(db.Integer, nullable=True)

    team1_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=True)
    team2_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=True)
    team1_score = db.Column(db.Integer, nullable=True)
    team2_score = db.Column(db.Integer, nullable=True)
    winner_id = db.Column(db.String(50), db.ForeignKey('teams.id'), nullable=True)

    next_match_id = db.Column(db.String(50), db.ForeignKey('bracket_matches.id'), nullable=True)
    is_bye = db.Column(db.Boolean, nullable=False, default=False)

    bracket = db.relationship('Bracket', back_populates='matches')

    @property
    def loser_id(self):
        if self.winner_id is None or self.is_bye:
            return None
        return self.team2_id if self.winner_id == self.team1_id else self.team1_id

    def to_dict(self):
        return {
            'id': self.id,
            'bracket_id': self.bracket_id,
            'round': self.round_number,
            'match_number': self.match_number,
            'court_number': self.court_number,
            'team1': self.team1_id,
            'team2': self.team2_id,
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'winner': self.winner_id,
            'next_match_id': self.next_match_id,
            'is_bye': self.is_bye,
        }
