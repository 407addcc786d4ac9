"""
SkyTrack Flask Application.

Main entry point for the web application. Initializes:
- Position store and sighting aggregator
- Tile poller and its scheduler
- Upstream proxy cache
- API routes

Usage:
    python -m skytrack.app

Or with gunicorn (single worker, the poller lives in-process):
    gunicorn 'skytrack.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from skytrack.api import planes_bp, sightings_bp
from skytrack.cache import ResponseCache
from skytrack.config import config
from skytrack.ingestion import AdsbLolClient, PollScheduler, TilePoller
from skytrack.store import PositionStore, SightingAggregator

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    start_poller: Optional[bool] = None,
    position_store: Optional[PositionStore] = None,
    sighting_aggregator: Optional[SightingAggregator] = None,
    adsb_client: Optional[AdsbLolClient] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_poller: Whether to start the background poller.
                      Defaults to START_POLLER; set False for testing.
        position_store, sighting_aggregator, adsb_client: Injected
                      collaborators; built from configuration when None.

    Returns:
        Configured Flask application instance.
    """
    if start_poller is None:
        start_poller = config.start_poller

    app = Flask(__name__)
    app.config['SECRET_KEY'] = config.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    logger.info('Opening stores...')
    store = position_store or PositionStore.from_config()
    app.config['POSITION_STORE'] = store
    app.config['SIGHTING_AGGREGATOR'] = sighting_aggregator or SightingAggregator.from_config()
    app.config['ADSB_CLIENT'] = adsb_client or AdsbLolClient.from_config()
    app.config['PROXY_CACHE'] = ResponseCache()

    app.register_blueprint(planes_bp)
    app.register_blueprint(sightings_bp)

    app.config['POLLER'] = None
    app.config['SCHEDULER'] = None
    if start_poller:
        poller = TilePoller.from_config(store)
        scheduler = PollScheduler(poller)
        scheduler.start()
        app.config['POLLER'] = poller
        app.config['SCHEDULER'] = scheduler

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))
    logger.info(f'Starting SkyTrack on http://localhost:{port}')

    try:
        app.run(
            host='0.0.0.0',
            port=port,
            debug=config.debug,
            use_reloader=False,  # Reloader would start a second poller
        )
    finally:
        scheduler = app.config.get('SCHEDULER')
        if scheduler:
            scheduler.stop()


if __name__ == '__main__':
    run_development_server()
