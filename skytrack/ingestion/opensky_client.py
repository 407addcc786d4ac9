"""
OpenSky Network API client (alternate source).

Handles communication with the OpenSky REST API, including:
- Authentication (optional but recommended for higher rate limits)
- Bounding box queries for each tile
- Rate limiting compliance
- Translation of state vectors into the primary feed's observation shape

OpenSky reports SI units (meters, m/s); observations handed to the poller
use the primary feed's units (feet, knots, feet per minute) so that both
sources write comparable rows.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from requests.auth import HTTPBasicAuth

from skytrack.config import config
from skytrack.geo import BoundingBox, Tile
from skytrack.ingestion.source import SourceClient
from skytrack.ingestion.state_vector import StateVector

logger = logging.getLogger(__name__)

FEET_PER_METER = 3.28084
KNOTS_PER_MPS = 1.94384
FPM_PER_MPS = 196.850394


def _scaled(value: Optional[float], factor: float) -> Optional[float]:
    if value is None:
        return None
    return value * factor


def state_to_observation(sv: StateVector) -> Dict[str, Any]:
    """Convert an OpenSky state vector into a primary-feed observation."""
    return {
        'hex': sv.icao24,
        'flight': sv.callsign,
        'lat': sv.latitude,
        'lon': sv.longitude,
        'alt_baro': _scaled(sv.baro_altitude, FEET_PER_METER),
        'alt_geom': _scaled(sv.geo_altitude, FEET_PER_METER),
        'gs': _scaled(sv.velocity, KNOTS_PER_MPS),
        'track': sv.true_track,
        'baro_rate': _scaled(sv.vertical_rate, FPM_PER_MPS),
        'squawk': sv.squawk,
        'origin_country': sv.origin_country,
    }


class OpenSkyClient(SourceClient):
    """
    Client for OpenSky Network API.

    Handles:
    - GET requests to /states/all endpoint
    - Optional authentication for higher rate limits
    - Rate limiting shared across concurrent tile fetches
    """

    name = 'opensky'

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        min_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(timeout=timeout, session=session)
        self.base_url = (base_url or config.source.opensky_base_url).rstrip('/')
        self.auth = None
        if username and password:
            self.auth = HTTPBasicAuth(username, password)
            logger.info('OpenSky client initialized with authentication')
        else:
            logger.warning('OpenSky client running without authentication (lower rate limits)')

        self.last_request_time: float = 0
        if min_interval is None:
            min_interval = 5.0 if self.auth else 10.0
        self._min_interval = min_interval
        self._rate_lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls) -> 'OpenSkyClient':
        """Create client from application configuration."""
        return cls(
            username=config.source.opensky_username,
            password=config.source.opensky_password,
            base_url=config.source.opensky_base_url,
            timeout=config.source.timeout_seconds,
        )

    def _wait_for_rate_limit(self) -> float:
        """
        Reserve the next request slot and sleep until it comes up.

        OpenSky rate limits:
        - Anonymous: ~10 seconds between requests
        - Authenticated: ~5 seconds between requests

        Concurrent tile fetches queue one interval apart. The wait counts
        against the request timeout: a slot that is timeout seconds or more
        away raises requests.Timeout, so that tile fails this cycle instead
        of holding up the others. Returns the seconds waited.
        """
        with self._rate_lock:
            now = self._clock()
            slot = max(now, self.last_request_time + self._min_interval)
            wait = slot - now
            if wait >= self.timeout:
                raise requests.exceptions.Timeout(
                    f'next request slot is {wait:.1f}s away (timeout {self.timeout:g}s)'
                )
            self.last_request_time = slot

        if wait > 0:
            logger.debug(f'Rate limiting: sleeping {wait:.1f}s')
            self._sleep(wait)
        return wait

    def get_states(self, bbox: BoundingBox) -> Tuple[int, List[StateVector]]:
        """
        Fetch current state vectors inside a bounding box.

        Returns:
            Tuple of (api_timestamp, list of StateVectors with positions)

        Raises:
            requests.RequestException on network/API errors
            ValueError when the body is not the expected JSON object
        """
        waited = self._wait_for_rate_limit()

        url = f'{self.base_url}/states/all'
        params = bbox.to_params()

        logger.debug(f'Fetching states: {url} params={params}')
        response = self.session.get(
            url,
            params=params,
            auth=self.auth,
            timeout=self.timeout - waited,
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f'expected JSON object, got {type(data).__name__}')

        api_time = data.get('time') or int(time.time())
        states_raw = data.get('states') or []

        states = []
        for arr in states_raw:
            sv = StateVector.from_array(arr)
            if sv and sv.has_position():
                states.append(sv)

        logger.debug(f'Parsed {len(states)} of {len(states_raw)} state vectors with positions')
        return api_time, states

    def _fetch(self, tile: Tile) -> List[Dict[str, Any]]:
        _, states = self.get_states(tile.bounding_box())
        # The bbox is a square around the tile circle; trim the corners
        return [
            state_to_observation(sv)
            for sv in states
            if tile.contains(sv.latitude, sv.longitude)
        ]
