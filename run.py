#!/usr/bin/env python3
"""
Entry point for the tournament scheduler.

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development, production or testing (default: development)
    PORT: Port to run on (default: 5000)
    DATABASE_URL: SQLAlchemy database URL (default: sqlite:///scheduler.db)
    REDIS_URL: Redis URL for event broadcast (optional)
    RANDOM_SEED: Seed for every random draw (optional)
"""
import os

from scheduler.app import create_app


def run_scheduler():
    """Run the scheduler API."""
    app = create_app()
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"Starting Scheduler on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


if __name__ == '__main__':
    run_scheduler()
