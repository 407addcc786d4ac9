"""
Tile poller - one complete polling cycle across all tiles.

Pipeline stages:
1. Fetch: one request per tile, all tiles concurrently
2. Merge: walk results in configured tile order, drop observations
   without identity or position, keep the first occurrence of each
   aircraft
3. Stamp: every kept observation gets the same ingest timestamp
4. Append: bulk insert into the position store (one transaction)
5. Prune: delete positions older than the retention window

Overlapping tiles report the same aircraft more than once. The first
tile in configuration order wins, whichever request finished first, so a
cycle's output depends only on what each tile returned.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from skytrack.config import config
from skytrack.geo import Tile, build_tiles, coverage_gaps
from skytrack.ingestion.adsb_client import AdsbLolClient
from skytrack.ingestion.opensky_client import OpenSkyClient
from skytrack.ingestion.source import SourceClient, TileResult
from skytrack.ingestion.state_vector import as_float, baro_altitude_value
from skytrack.models.position import PositionRecord
from skytrack.store.positions import PositionStore

logger = logging.getLogger(__name__)

# Ground speed (knots) below which an aircraft counts as on the ground
ON_GROUND_SPEED_KTS = 5


@dataclass
class PollResult:
    """Summary of one polling cycle."""
    tiles_total: int
    tiles_ok: int = 0
    observations: int = 0
    inserted: int = 0
    pruned: int = 0
    timestamp: Optional[int] = None
    duration_ms: float = 0.0
    skipped: bool = False

    @property
    def all_failed(self) -> bool:
        return not self.skipped and self.tiles_total > 0 and self.tiles_ok == 0

    def to_dict(self) -> dict:
        return {
            'tiles_total': self.tiles_total,
            'tiles_ok': self.tiles_ok,
            'observations': self.observations,
            'inserted': self.inserted,
            'pruned': self.pruned,
            'timestamp': self.timestamp,
            'duration_ms': round(self.duration_ms, 1),
            'skipped': self.skipped,
        }


def _identity(ac: Mapping[str, Any]) -> Optional[str]:
    hex_code = ac.get('hex')
    if not hex_code or not isinstance(hex_code, str):
        return None
    return hex_code.strip().lower() or None


def merge_observations(results: Iterable[TileResult]) -> Dict[str, Mapping[str, Any]]:
    """
    Deduplicate observations across tiles.

    Results must be given in configured tile order. Observations without
    an identity or without a numeric lat/lon are dropped before
    deduplication; of the rest, the first occurrence of each icao24 wins
    and later ones are discarded.
    """
    seen: Dict[str, Mapping[str, Any]] = {}
    for result in results:
        for ac in result.aircraft:
            icao24 = _identity(ac)
            if icao24 is None or as_float(ac.get('lat')) is None or as_float(ac.get('lon')) is None:
                continue
            if icao24 not in seen:
                seen[icao24] = ac
    return seen


def to_position_record(icao24: str, ac: Mapping[str, Any], timestamp: int) -> PositionRecord:
    """
    Build a position row from a raw observation.

    Barometric altitude is preferred over geometric, barometric vertical
    rate over geometric.
    """
    altitude = baro_altitude_value(ac.get('alt_baro'))
    if altitude is None:
        altitude = baro_altitude_value(ac.get('alt_geom'))

    vertical_rate = as_float(ac.get('baro_rate'))
    if vertical_rate is None:
        vertical_rate = as_float(ac.get('geom_rate'))

    speed = as_float(ac.get('gs'))
    squawk = ac.get('squawk')

    return PositionRecord(
        icao24=icao24,
        callsign=str(ac.get('flight') or '').strip() or None,
        latitude=as_float(ac['lat']),
        longitude=as_float(ac['lon']),
        altitude=altitude,
        speed=speed,
        heading=as_float(ac.get('track')),
        vertical_rate=vertical_rate,
        squawk=str(squawk) if squawk is not None else None,
        on_ground=speed is not None and speed < ON_GROUND_SPEED_KTS,
        timestamp=timestamp,
    )


def log_coverage_gaps(tiles: Sequence[Tile], region: Tuple[float, float, float, float]) -> int:
    """Warn when the tiles leave parts of the target region uncovered."""
    gaps = coverage_gaps(tiles, region)
    if len(gaps):
        lat, lon = gaps[0]
        logger.warning(
            f'Tiles leave {len(gaps)} sample points of region {region} uncovered '
            f'(e.g. {lat:.1f},{lon:.1f})'
        )
    else:
        logger.info(f'Tiles cover target region {region}')
    return len(gaps)


class TilePoller:
    """
    Runs polling cycles over a fixed set of tiles.

    Only one cycle may be in flight; a call made while another cycle is
    running returns immediately with a skipped result.
    """

    def __init__(
        self,
        tiles: Sequence[Tile],
        client: SourceClient,
        store: PositionStore,
        retention_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.tiles: Tuple[Tile, ...] = tuple(tiles)
        self.client = client
        self.store = store
        if retention_seconds is None:
            retention_seconds = config.retention.seconds
        self.retention_seconds = retention_seconds
        self._clock = clock

        self._in_flight = threading.Lock()
        self._stats_lock = threading.Lock()
        self._cycle_count = 0
        self._skipped_count = 0
        self._error_count = 0
        self._last_poll_time: float = 0
        self._last_result: Optional[PollResult] = None

    @classmethod
    def from_config(cls, store: PositionStore) -> 'TilePoller':
        """Create poller, tiles and source client from application configuration."""
        tiles = build_tiles(config.poller.tiles, config.source.tile_radius_nm)
        if config.source.is_opensky:
            client: SourceClient = OpenSkyClient.from_config()
        else:
            client = AdsbLolClient.from_config()

        if config.poller.target_region:
            log_coverage_gaps(tiles, config.poller.target_region)

        return cls(tiles, client, store, retention_seconds=config.retention.seconds)

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    def _fetch_all(self) -> List[TileResult]:
        """Fetch every tile concurrently; results come back in tile order."""
        with ThreadPoolExecutor(max_workers=max(len(self.tiles), 1),
                                thread_name_prefix='tile-fetch') as pool:
            futures = [pool.submit(self.client.fetch_tile_result, tile) for tile in self.tiles]

            results = []
            for tile, future in zip(self.tiles, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f'Tile fetch crashed for {tile}: {e}')
                    results.append(TileResult(tile, error=str(e)))
        return results

    def poll_once(self) -> PollResult:
        """
        Perform one complete polling cycle.

        Storage errors propagate to the caller after the guard is released.
        """
        if not self._in_flight.acquire(blocking=False):
            with self._stats_lock:
                self._skipped_count += 1
            logger.warning('Previous poll still running - skipping this cycle')
            return PollResult(tiles_total=len(self.tiles), skipped=True)

        try:
            return self._run_cycle()
        except Exception:
            with self._stats_lock:
                self._error_count += 1
            raise
        finally:
            self._in_flight.release()

    def _run_cycle(self) -> PollResult:
        start = time.perf_counter()
        result = PollResult(tiles_total=len(self.tiles))

        tile_results = self._fetch_all()
        result.tiles_ok = sum(1 for r in tile_results if r.ok)
        if result.all_failed:
            logger.error(f'All {result.tiles_total} tiles failed; nothing to ingest this cycle')

        merged = merge_observations(tile_results)

        # One ingest timestamp for the whole batch
        result.timestamp = int(self._clock())
        records = [to_position_record(icao24, ac, result.timestamp) for icao24, ac in merged.items()]
        result.observations = len(records)

        if records:
            result.inserted = self.store.insert_positions(records)

        result.pruned = self.store.prune_old_positions(
            self.retention_seconds, now=result.timestamp,
        )

        result.duration_ms = (time.perf_counter() - start) * 1000
        with self._stats_lock:
            self._cycle_count += 1
            self._last_poll_time = time.time()
            self._last_result = result

        logger.info(
            f'Poll complete: {result.tiles_ok}/{result.tiles_total} tiles, '
            f'{result.observations} unique aircraft, {result.duration_ms:.0f}ms'
        )
        return result

    @property
    def stats(self) -> dict:
        """Get polling statistics."""
        with self._stats_lock:
            return {
                'cycle_count': self._cycle_count,
                'skipped_count': self._skipped_count,
                'error_count': self._error_count,
                'last_poll_time': self._last_poll_time,
                'last_result': self._last_result.to_dict() if self._last_result else None,
                'in_flight': self.in_flight,
                'tiles': len(self.tiles),
            }
