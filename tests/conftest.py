"""
Pytest configuration and fixtures for scheduler tests.
"""
import os
import random
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from scheduler.app import create_app
from scheduler.models import db
from scheduler.tournament_registry import TournamentRegistry
from scheduler.qualifying import QualifyingService
from scheduler.brackets import BracketService
from shared.pubsub import PubSubClient


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        # Clear all tables before each test
        db.session.remove()

        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def rng():
    """Seeded random source so draws are repeatable inside a test."""
    return random.Random(42)


@pytest.fixture
def registry():
    return TournamentRegistry()


@pytest.fixture
def pubsub():
    return PubSubClient()


@pytest.fixture
def qualifying(registry, rng, pubsub):
    return QualifyingService(registry, rng=rng, pubsub=pubsub)


@pytest.fixture
def brackets(registry, rng, pubsub):
    return BracketService(registry, rng=rng, pubsub=pubsub)


@pytest.fixture
def make_tournament(db_session, registry):
    """Factory: tournament with `team_count` registered teams."""
    def _make(team_count: int = 8, name: str = 'Test Open', regions=None, **settings):
        settings.setdefault('number_of_courts', max(1, (team_count + 1) // 2))
        tournament = registry.create_tournament(name, **settings)
        for i in range(team_count):
            registry.add_team(
                tournament.id,
                captain=f'Captain {i + 1}',
                player2=f'Player {i + 1}',
                region=regions[i] if regions else None,
            )
        return tournament
    return _make


@pytest.fixture
def sample_tournament(make_tournament):
    """Swiss tournament with 8 teams on 4 courts."""
    return make_tournament(8, pairing_method='swiss')


@pytest.fixture
def play_round():
    """Score every open game of a round, team1 winning 13-x unless told otherwise."""
    def _play(service, qualifying_round, loser_score: int = 5, winners=None):
        for game in qualifying_round.games:
            if game.is_bye:
                continue
            if winners and game.team2_id in winners:
                service.submit_game_score(game.id, loser_score, 13)
            else:
                service.submit_game_score(game.id, 13, loser_score)
        return service.complete_round(qualifying_round.id)
    return _play
