import pytest

from skytrack.config import CONUS_TILES
from skytrack.geo import BoundingBox, Tile, build_tiles, coverage_gaps, haversine_nm


def test_haversine_one_degree_of_latitude_is_sixty_nm():
    assert haversine_nm(40.0, -100.0, 41.0, -100.0) == pytest.approx(60.0, rel=0.01)


def test_tile_contains_points_inside_radius():
    tile = Tile(lat=40.0, lon=-100.0, radius_nm=100)

    assert tile.contains(40.0, -100.0)
    assert tile.contains(41.5, -100.0)
    assert not tile.contains(42.0, -100.0)


def test_bounding_box_encloses_tile():
    bbox = BoundingBox.from_center_radius(40.0, -100.0, 120)

    assert bbox.lat_min == pytest.approx(38.0)
    assert bbox.lat_max == pytest.approx(42.0)
    # Longitude degrees shrink away from the equator
    assert bbox.lon_max - bbox.lon_min > bbox.lat_max - bbox.lat_min
    assert bbox.center == pytest.approx((40.0, -100.0))
    assert set(bbox.to_params()) == {'lamin', 'lamax', 'lomin', 'lomax'}


def test_build_tiles_shares_radius():
    tiles = build_tiles(CONUS_TILES, 250)

    assert len(tiles) == 8
    assert all(t.radius_nm == 250 for t in tiles)
    assert tiles[0].name == 'pacific-northwest'


def test_coverage_gaps_empty_when_region_is_covered():
    tiles = [Tile(lat=40.0, lon=-100.0, radius_nm=300)]

    gaps = coverage_gaps(tiles, (39.0, 41.0, -101.0, -99.0))

    assert gaps.shape == (0, 2)


def test_coverage_gaps_reports_uncovered_points():
    tiles = [Tile(lat=40.0, lon=-100.0, radius_nm=30)]

    gaps = coverage_gaps(tiles, (39.0, 41.0, -101.0, -99.0))

    assert len(gaps) > 0
    for lat, lon in gaps:
        assert not tiles[0].contains(lat, lon)


def test_coverage_gaps_without_tiles_returns_whole_grid():
    gaps = coverage_gaps([], (0.0, 1.0, 0.0, 1.0), step_deg=0.5)

    assert gaps.shape == (9, 2)
