import logging
import os
import random

from flask import Flask, jsonify

from shared.errors import SchedulerError, HTTP_STATUS
from shared.pubsub import PubSubClient
from .brackets import BracketService
from .config import config
from .models import db
from .qualifying import QualifyingService
from .tournament_registry import TournamentRegistry

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory for the scheduler service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize extensions
    db.init_app(app)

    # Create tables
    with app.app_context():
        db.create_all()

    # One random source for every draw; seeded when RANDOM_SEED is set
    app.rng = random.Random(app.config.get('RANDOM_SEED'))
    app.pubsub = PubSubClient(app.config.get('REDIS_URL'))

    # Store services on app for access in routes
    app.registry = TournamentRegistry()
    app.qualifying = QualifyingService(app.registry, rng=app.rng, pubsub=app.pubsub)
    app.brackets = BracketService(app.registry, rng=app.rng, pubsub=app.pubsub)

    register_error_handlers(app)
    register_routes(app)

    from .routes import api
    app.register_blueprint(api.bp)

    logger.info(f"Scheduler started with '{config_name}' config")
    return app


def register_error_handlers(app: Flask):

    @app.errorhandler(SchedulerError)
    def handle_scheduler_error(error: SchedulerError):
        return jsonify(error.to_dict()), HTTP_STATUS[error.kind]


def register_routes(app: Flask):

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_ok = False

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503

        return jsonify({
            'status': status,
            'database': 'ok' if db_ok else 'error',
            'pubsub': 'local' if app.pubsub.is_local else 'redis',
        }), code
