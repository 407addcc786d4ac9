"""
Aircraft position API endpoints.

Provides endpoints for:
- GET /api/planes - Upstream proxy, answered as OpenSky state vectors
- GET /api/live - Latest stored position per aircraft inside a box
- GET /api/trail/<icao24> - Stored trail for one aircraft
- GET /api/positions/stats - Position store and poller status
"""

import logging
import time
from typing import Optional, Tuple

import requests
from flask import Blueprint, current_app, jsonify, request

from skytrack.ingestion.adsb_client import MAX_RADIUS_NM
from skytrack.ingestion.state_vector import StateVector

logger = logging.getLogger(__name__)

planes_bp = Blueprint('planes', __name__, url_prefix='/api')

# Roughly 60 nm per degree; half the larger span gives the radius
NM_PER_DEG_HALF_SPAN = 30


def _parse_bbox() -> Optional[Tuple[float, float, float, float]]:
    """Read lamin/lamax/lomin/lomax from the query string."""
    raw = [request.args.get(k) for k in ('lamin', 'lamax', 'lomin', 'lomax')]
    if not all(raw):
        return None
    try:
        lamin, lamax, lomin, lomax = (float(v) for v in raw)
    except ValueError:
        return None
    return lamin, lamax, lomin, lomax


@planes_bp.route('/planes', methods=['GET'])
def proxy_planes():
    """
    Fetch live aircraft for a box straight from the upstream feed.

    The box is turned into a center point and radius for the point
    endpoint, and the answer is translated into OpenSky state vector
    arrays so index-based clients keep working. Cached per box.
    """
    bbox = _parse_bbox()
    if bbox is None:
        return jsonify({'error': 'lamin/lamax/lomin/lomax required'}), 400
    lamin, lamax, lomin, lomax = bbox

    cache = current_app.config['PROXY_CACHE']
    cache_key = f'{lamin},{lamax},{lomin},{lomax}'
    cached = cache.get(cache_key)
    if cached is not None:
        return jsonify(cached)

    lat = (lamin + lamax) / 2
    lon = (lomin + lomax) / 2
    radius = max(lamax - lamin, lomax - lomin) * NM_PER_DEG_HALF_SPAN
    radius = max(1, min(round(radius), MAX_RADIUS_NM))

    client = current_app.config['ADSB_CLIENT']
    try:
        aircraft = client.get_point(lat, lon, radius)
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else 502
        logger.warning(f'Upstream returned HTTP {status} for {cache_key}')
        return jsonify({'error': f'API error: {status}'}), status
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f'Upstream request failed for {cache_key}: {e}')
        return jsonify({'error': 'Failed to reach aircraft API'}), 502

    states = []
    for ac in aircraft:
        sv = StateVector.from_adsb(ac)
        if sv:
            states.append(sv.to_array())

    result = {'states': states}
    cache.set(cache_key, result)
    return jsonify(result)


@planes_bp.route('/live', methods=['GET'])
def live_positions():
    """
    Latest stored position per aircraft inside a box.

    Query parameters:
    - lamin, lamax, lomin, lomax: bounding box (required)
    - max_age: seconds since last sighting (default 180)
    """
    start_time = time.perf_counter()

    bbox = _parse_bbox()
    if bbox is None:
        return jsonify({'error': 'lamin/lamax/lomin/lomax required'}), 400
    lamin, lamax, lomin, lomax = bbox

    try:
        max_age = int(request.args['max_age']) if 'max_age' in request.args else None
    except ValueError:
        return jsonify({'error': 'max_age must be an integer'}), 400

    store = current_app.config['POSITION_STORE']
    planes = store.query_latest_in_bbox(lamin, lamax, lomin, lomax, max_age_seconds=max_age)

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'planes': [p.to_dict() for p in planes],
        'count': len(planes),
        'query_time_ms': round(query_time_ms, 2),
    })


@planes_bp.route('/trail/<icao24>', methods=['GET'])
def trail(icao24: str):
    """
    Position history for one aircraft.

    Query parameters:
    - since: unix timestamp (default: last 24 hours)
    """
    start_time = time.perf_counter()
    icao24 = icao24.lower()

    try:
        since = int(request.args['since']) if 'since' in request.args else None
    except ValueError:
        return jsonify({'error': 'since must be a unix timestamp'}), 400

    store = current_app.config['POSITION_STORE']
    points = store.query_trail(icao24, since_ts=since)

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'icao24': icao24,
        'trail': [p.to_trail_point() for p in points],
        'count': len(points),
        'query_time_ms': round(query_time_ms, 2),
    })


@planes_bp.route('/positions/stats', methods=['GET'])
def position_stats():
    """Position store size plus poller and proxy cache status."""
    store = current_app.config['POSITION_STORE']
    poller = current_app.config.get('POLLER')
    scheduler = current_app.config.get('SCHEDULER')

    return jsonify({
        'store': store.stats(),
        'poller': poller.stats if poller else None,
        'running': bool(scheduler and scheduler.running),
        'cache': current_app.config['PROXY_CACHE'].stats,
    })
