"""
Geographic helpers: tiles, bounding boxes, distances, coverage.

A tile is a circle (center + radius in nautical miles) polled as one
unit. The tile set must cover the target region with no gaps; overlaps
are expected and handled by deduplication in the poller.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

EARTH_RADIUS_KM = 6371.0
KM_PER_NM = 1.852
EARTH_RADIUS_NM = EARTH_RADIUS_KM / KM_PER_NM

# One degree of latitude is 60 nautical miles
NM_PER_DEG_LAT = 60.0


@dataclass(frozen=True)
class Tile:
    """A geographic circle polled as one independent fetch unit."""
    lat: float
    lon: float
    radius_nm: float
    name: str = ''

    def __str__(self) -> str:
        label = f'{self.name} ' if self.name else ''
        return f'{label}({self.lat:.2f},{self.lon:.2f} r={self.radius_nm:g}nm)'

    def bounding_box(self) -> 'BoundingBox':
        return BoundingBox.from_center_radius(self.lat, self.lon, self.radius_nm)

    def contains(self, lat: float, lon: float) -> bool:
        return haversine_nm(self.lat, self.lon, lat, lon) <= self.radius_nm


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic bounding box.

    OpenSky expects: lamin, lomin, lamax, lomax
    (latitude min, longitude min, latitude max, longitude max)
    """
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    @classmethod
    def from_center_radius(
        cls,
        center_lat: float,
        center_lon: float,
        radius_nm: float,
    ) -> 'BoundingBox':
        """
        Create bounding box enclosing a circle.

        Adjusts longitude span for meridian convergence.
        """
        lat_delta = radius_nm / NM_PER_DEG_LAT
        lon_delta = radius_nm / max(NM_PER_DEG_LAT * math.cos(math.radians(center_lat)), 0.0001)

        return cls(
            lat_min=center_lat - lat_delta,
            lat_max=center_lat + lat_delta,
            lon_min=center_lon - lon_delta,
            lon_max=center_lon + lon_delta,
        )

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.lat_min + self.lat_max) / 2, (self.lon_min + self.lon_max) / 2)

    def to_params(self) -> dict:
        """Convert to OpenSky API query parameters."""
        return {
            'lamin': self.lat_min,
            'lamax': self.lat_max,
            'lomin': self.lon_min,
            'lomax': self.lon_max,
        }


def build_tiles(specs: Iterable[Tuple[str, float, float]], radius_nm: float) -> Tuple[Tile, ...]:
    """Build tiles from (name, lat, lon) triples sharing one radius."""
    return tuple(Tile(lat=lat, lon=lon, radius_nm=radius_nm, name=name) for name, lat, lon in specs)


def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in nautical miles.

    Uses the Haversine formula for accuracy over short to medium distances.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_NM * c


def coverage_gaps(
    tiles: Sequence[Tile],
    region: Tuple[float, float, float, float],
    step_deg: float = 0.5,
) -> np.ndarray:
    """
    Sample a grid over region and return points no tile covers.

    region is (lat_min, lat_max, lon_min, lon_max). Returns an (n, 2)
    array of (lat, lon) pairs; empty when the tiles cover every sample.
    Distances are computed for all points against all tiles at once.
    """
    lat_min, lat_max, lon_min, lon_max = region
    lats = np.arange(lat_min, lat_max + step_deg / 2, step_deg)
    lons = np.arange(lon_min, lon_max + step_deg / 2, step_deg)
    grid_lat, grid_lon = np.meshgrid(lats, lons, indexing='ij')
    points = np.column_stack([grid_lat.ravel(), grid_lon.ravel()])

    if not tiles:
        return points

    centers = np.radians(np.array([(t.lat, t.lon) for t in tiles], dtype=np.float64))
    radii = np.array([t.radius_nm for t in tiles], dtype=np.float64)

    # (points, 1) against (1, tiles) broadcasts to a full distance matrix
    p_lat = np.radians(points[:, 0])[:, np.newaxis]
    p_lon = np.radians(points[:, 1])[:, np.newaxis]
    t_lat = centers[:, 0][np.newaxis, :]
    t_lon = centers[:, 1][np.newaxis, :]

    a = (
        np.sin((t_lat - p_lat) / 2) ** 2 +
        np.cos(p_lat) * np.cos(t_lat) * np.sin((t_lon - p_lon) / 2) ** 2
    )
    distances = EARTH_RADIUS_NM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    covered = (distances <= radii[np.newaxis, :]).any(axis=1)
    return points[~covered]
