"""
Configuration management for SkyTrack.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


# 8 overlapping 250 nm circles across CONUS: (name, lat, lon)
CONUS_TILES: Tuple[Tuple[str, float, float], ...] = (
    ('pacific-northwest', 47.5, -122.5),
    ('northern-rockies', 47.5, -110.0),
    ('northern-plains', 47.5, -97.0),
    ('southwest', 34.0, -117.0),
    ('central', 36.0, -100.0),
    ('southeast', 32.0, -85.0),
    ('northeast', 42.0, -74.0),
    ('gulf-coast', 29.0, -90.0),
)


def _parse_tiles(value: str) -> Optional[Tuple[Tuple[str, float, float], ...]]:
    """Parse 'lat,lon;lat,lon' into tile tuples, or None if empty/invalid."""
    if not value:
        return None
    tiles = []
    try:
        for i, chunk in enumerate(value.split(';')):
            if not chunk.strip():
                continue
            lat, lon = chunk.split(',')
            tiles.append((f'tile-{i}', float(lat.strip()), float(lon.strip())))
    except (ValueError, AttributeError):
        return None
    return tuple(tiles) or None


def _parse_region(value: str) -> Optional[Tuple[float, float, float, float]]:
    """Parse 'lat_min,lat_max,lon_min,lon_max' string, or None if empty/invalid."""
    if not value:
        return None
    try:
        lat_min, lat_max, lon_min, lon_max = (float(v.strip()) for v in value.split(','))
    except (ValueError, AttributeError):
        return None
    return (lat_min, lat_max, lon_min, lon_max)


@dataclass(frozen=True)
class SourceConfig:
    """Upstream aircraft feed configuration."""
    kind: str = os.getenv('SOURCE', 'adsb').lower()
    adsb_base_url: str = os.getenv('ADSB_BASE_URL', 'https://api.adsb.lol')
    opensky_base_url: str = os.getenv('OPENSKY_BASE_URL', 'https://opensky-network.org/api')
    opensky_username: Optional[str] = os.getenv('OPENSKY_USERNAME') or None
    opensky_password: Optional[str] = os.getenv('OPENSKY_PASSWORD') or None
    timeout_seconds: float = float(os.getenv('SOURCE_TIMEOUT_SECONDS', '15'))
    tile_radius_nm: float = float(os.getenv('TILE_RADIUS_NM', '250'))

    @property
    def is_opensky(self) -> bool:
        return self.kind == 'opensky'


@dataclass(frozen=True)
class DatabaseConfig:
    """Database locations. Positions and sightings live in separate stores."""
    positions_url: str = os.getenv('POSITIONS_DB_URL', 'sqlite:///positions.db')
    sightings_url: str = os.getenv('SIGHTINGS_DB_URL', 'sqlite:///sightings.db')


@dataclass(frozen=True)
class PollerConfig:
    """Tile polling settings."""
    interval_seconds: float = float(os.getenv('POLL_INTERVAL_SECONDS', '60'))
    tiles: Tuple[Tuple[str, float, float], ...] = field(
        default_factory=lambda: _parse_tiles(os.getenv('TILES', '')) or CONUS_TILES
    )
    # None = skip the startup coverage check
    target_region: Optional[Tuple[float, float, float, float]] = field(
        default_factory=lambda: _parse_region(os.getenv('TARGET_REGION', ''))
    )


@dataclass(frozen=True)
class RetentionConfig:
    """Data retention policy for the position store."""
    hours: int = int(os.getenv('RETENTION_HOURS', '24'))

    @property
    def seconds(self) -> int:
        return self.hours * 3600


@dataclass(frozen=True)
class QueryConfig:
    """Defaults for position queries."""
    live_max_age_seconds: int = 180
    trail_window_seconds: int = 24 * 3600


@dataclass(frozen=True)
class SightingConfig:
    """Sighting episode settings."""
    stale_seconds: int = 600  # Gap that closes an episode
    stats_window_seconds: int = 24 * 3600
    top_countries: int = 5
    history_max_limit: int = 200


@dataclass(frozen=True)
class ProxyCacheConfig:
    """In-memory cache for the upstream proxy endpoint."""
    ttl_seconds: int = int(os.getenv('PROXY_CACHE_TTL_SECONDS', '30'))
    max_entries: int = 500


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    source: SourceConfig
    database: DatabaseConfig
    poller: PollerConfig
    retention: RetentionConfig
    query: QueryConfig
    sightings: SightingConfig
    proxy_cache: ProxyCacheConfig

    # Flask settings
    secret_key: str
    debug: bool
    start_poller: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        source=SourceConfig(),
        database=DatabaseConfig(),
        poller=PollerConfig(),
        retention=RetentionConfig(),
        query=QueryConfig(),
        sightings=SightingConfig(),
        proxy_cache=ProxyCacheConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        start_poller=os.getenv('START_POLLER', '1') == '1',
    )


# Singleton instance
config = load_config()
