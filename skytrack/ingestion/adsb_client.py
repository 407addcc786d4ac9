"""
adsb.lol API client.

The point endpoint returns every aircraft within a radius (nautical
miles) of a center point:

    GET {base_url}/v2/point/{lat}/{lon}/{radius_nm}
    -> {"ac": [{"hex": "a1b2c3", "flight": "UAL123 ", "lat": ..., ...}], ...}

Aircraft objects use readsb field names and units: alt_baro/alt_geom in
feet (alt_baro may be the string 'ground'), gs in knots, baro_rate and
geom_rate in feet per minute. Any field may be missing.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from skytrack.config import config
from skytrack.geo import Tile
from skytrack.ingestion.source import SourceClient

logger = logging.getLogger(__name__)

# Upper bound the point endpoint accepts
MAX_RADIUS_NM = 250


class AdsbLolClient(SourceClient):
    """Client for the adsb.lol point endpoint."""

    name = 'adsb.lol'

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(timeout=timeout, session=session)
        self.base_url = (base_url or config.source.adsb_base_url).rstrip('/')

    @classmethod
    def from_config(cls) -> 'AdsbLolClient':
        """Create client from application configuration."""
        return cls(
            base_url=config.source.adsb_base_url,
            timeout=config.source.timeout_seconds,
        )

    def get_point(self, lat: float, lon: float, radius_nm: float) -> List[Dict[str, Any]]:
        """
        Fetch aircraft around a point.

        Raises:
            requests.RequestException on network/API errors
            ValueError when the body is not the expected JSON object
        """
        radius = min(radius_nm, MAX_RADIUS_NM)
        url = f'{self.base_url}/v2/point/{lat:g}/{lon:g}/{radius:g}'

        logger.debug(f'Fetching aircraft: {url}')
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f'expected JSON object, got {type(data).__name__}')

        return [ac for ac in (data.get('ac') or []) if isinstance(ac, dict)]

    def _fetch(self, tile: Tile) -> List[Dict[str, Any]]:
        return self.get_point(tile.lat, tile.lon, tile.radius_nm)
