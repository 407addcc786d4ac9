"""
Sighting API endpoints.

Provides endpoints for:
- POST /api/sightings - Report a batch of observed aircraft
- GET /api/history - Sighting episodes, most recent first
- GET /api/stats - Aggregate sighting statistics
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from skytrack.config import config

logger = logging.getLogger(__name__)

sightings_bp = Blueprint('sightings', __name__, url_prefix='/api')


@sightings_bp.route('/sightings', methods=['POST'])
def log_sightings():
    """
    Record a batch of sightings.

    Body: {"planes": [{"icao24": "a1b2c3", "callsign": "UAL1",
                       "origin_country": "United States",
                       "alt": 10000, "vel": 230, "lat": 40.1, "lon": -74.2}]}
    Entries without icao24 are ignored.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('planes'), list):
        return jsonify({'error': 'planes array required'}), 400

    aggregator = current_app.config['SIGHTING_AGGREGATOR']
    try:
        count = aggregator.upsert_sightings(data['planes'])
    except SQLAlchemyError as e:
        logger.error(f'Failed to log sightings: {e}')
        return jsonify({'error': 'Failed to log sightings'}), 500

    return jsonify({'ok': True, 'count': count})


@sightings_bp.route('/history', methods=['GET'])
def history():
    """
    Paginated sighting episodes.

    Query parameters:
    - limit: int, max results (default 50, max 200)
    - offset: int (default 0)
    """
    try:
        limit = min(int(request.args.get('limit', 50)), config.sightings.history_max_limit)
        offset = int(request.args.get('offset', 0))
    except ValueError:
        return jsonify({'error': 'limit and offset must be integers'}), 400

    if limit < 0 or offset < 0:
        return jsonify({'error': 'limit and offset must not be negative'}), 400

    aggregator = current_app.config['SIGHTING_AGGREGATOR']
    episodes = aggregator.get_history(limit=limit, offset=offset)

    return jsonify({'history': [s.to_dict() for s in episodes]})


@sightings_bp.route('/stats', methods=['GET'])
def stats():
    """Distinct aircraft counts and top origin countries."""
    aggregator = current_app.config['SIGHTING_AGGREGATOR']
    return jsonify(aggregator.get_stats())
