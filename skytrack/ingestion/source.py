"""
Common behaviour for upstream aircraft feeds.

A source client fetches raw aircraft observations for one tile. Failures
never reach the caller: timeouts, transport errors, non-2xx responses and
malformed payloads are logged and reported as an empty, failed result so
one bad tile cannot abort a poll cycle.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from skytrack.config import config
from skytrack.geo import Tile

logger = logging.getLogger(__name__)


@dataclass
class TileResult:
    """Outcome of fetching one tile."""
    tile: Tile
    aircraft: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SourceClient:
    """
    Base class for tile-based feeds.

    Subclasses implement _fetch(tile), which may raise any requests
    exception or ValueError; fetch_tile_result() turns those into a
    failed TileResult.
    """

    name = 'source'

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout if timeout is not None else config.source.timeout_seconds
        self.session = session or requests.Session()

    def _fetch(self, tile: Tile) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def fetch_tile_result(self, tile: Tile) -> TileResult:
        """Fetch one tile; never raises on upstream failure."""
        try:
            aircraft = self._fetch(tile)
        except requests.exceptions.Timeout:
            logger.warning(f'{self.name}: tile {tile} timed out after {self.timeout}s')
            return TileResult(tile, error='timeout')
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                logger.warning(f'{self.name}: rate limit exceeded for tile {tile}')
            else:
                logger.warning(f'{self.name}: tile {tile} returned HTTP {status}')
            return TileResult(tile, error=f'http {status}')
        except requests.exceptions.InvalidJSONError as e:
            logger.warning(f'{self.name}: tile {tile} returned a malformed payload: {e}')
            return TileResult(tile, error='malformed payload')
        except requests.exceptions.RequestException as e:
            logger.warning(f'{self.name}: tile {tile} request failed: {e}')
            return TileResult(tile, error='request failed')
        except ValueError as e:
            logger.warning(f'{self.name}: tile {tile} returned a malformed payload: {e}')
            return TileResult(tile, error='malformed payload')

        logger.debug(f'{self.name}: tile {tile} returned {len(aircraft)} aircraft')
        return TileResult(tile, aircraft=aircraft)

    def fetch_tile(self, tile: Tile) -> List[Dict[str, Any]]:
        """Raw observations for one tile, or an empty list on failure."""
        return self.fetch_tile_result(tile).aircraft
