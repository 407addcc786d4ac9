import pytest
from sqlalchemy.exc import IntegrityError

from skytrack.models import PositionRecord

NOW = 1_700_000_000


def _record(icao24, ts, lat=40.0, lon=-100.0, **kwargs):
    return PositionRecord(icao24=icao24, latitude=lat, longitude=lon, timestamp=ts, **kwargs)


def test_latest_in_bbox_returns_most_recent_record(position_store):
    position_store.insert_positions([
        _record('abc123', NOW - 120, altitude=1000),
        _record('abc123', NOW - 60, altitude=2000),
        _record('abc123', NOW - 10, altitude=3000),
    ])

    planes = position_store.query_latest_in_bbox(30, 50, -110, -90, max_age_seconds=180, now=NOW)

    assert len(planes) == 1
    assert planes[0].timestamp == NOW - 10
    assert planes[0].altitude == 3000


def test_latest_in_bbox_one_row_per_aircraft_sorted_by_icao(position_store):
    position_store.insert_positions([
        _record('ccc333', NOW - 30),
        _record('aaa111', NOW - 30),
        _record('bbb222', NOW - 50),
        _record('bbb222', NOW - 20),
    ])

    planes = position_store.query_latest_in_bbox(30, 50, -110, -90, now=NOW)

    assert [p.icao24 for p in planes] == ['aaa111', 'bbb222', 'ccc333']
    assert planes[1].timestamp == NOW - 20


def test_latest_in_bbox_timestamp_tie_goes_to_last_inserted(position_store):
    position_store.insert_positions([_record('abc123', NOW, callsign='FIRST')])
    position_store.insert_positions([_record('abc123', NOW, callsign='SECOND')])

    planes = position_store.query_latest_in_bbox(30, 50, -110, -90, now=NOW)

    assert len(planes) == 1
    assert planes[0].callsign == 'SECOND'


def test_latest_in_bbox_filters_space_and_age(position_store):
    position_store.insert_positions([
        _record('inside', NOW - 10, lat=40.0, lon=-100.0),
        _record('outside', NOW - 10, lat=10.0, lon=-100.0),
        _record('stale', NOW - 600, lat=40.0, lon=-100.0),
    ])

    planes = position_store.query_latest_in_bbox(30, 50, -110, -90, max_age_seconds=180, now=NOW)

    assert [p.icao24 for p in planes] == ['inside']


def test_latest_in_bbox_uses_latest_position_inside_box(position_store):
    position_store.insert_positions([
        _record('abc123', NOW - 60, lat=40.0, lon=-100.0),
        _record('abc123', NOW - 10, lat=55.0, lon=-100.0),
    ])

    planes = position_store.query_latest_in_bbox(30, 50, -110, -90, now=NOW)

    assert len(planes) == 1
    assert planes[0].timestamp == NOW - 60


def test_prune_removes_only_expired_positions(position_store):
    position_store.insert_positions([
        _record('old', NOW - 90000),
        _record('recent', NOW - 1000),
    ])

    deleted = position_store.prune_old_positions(max_age_seconds=86400, now=NOW)

    assert deleted == 1
    remaining = position_store.query_latest_in_bbox(30, 50, -110, -90, max_age_seconds=100000, now=NOW)
    assert [p.icao24 for p in remaining] == ['recent']


def test_trail_is_ordered_oldest_first(position_store):
    position_store.insert_positions([
        _record('abc123', 300),
        _record('abc123', 100),
        _record('abc123', 200),
        _record('other1', 150),
    ])

    trail = position_store.query_trail('abc123', since_ts=0)

    assert [p.timestamp for p in trail] == [100, 200, 300]


def test_trail_respects_since_and_normalizes_identity(position_store):
    position_store.insert_positions([_record('abc123', 100), _record('abc123', 200)])

    trail = position_store.query_trail('ABC123', since_ts=150)

    assert [p.timestamp for p in trail] == [200]
    assert trail[0].to_trail_point() == {'lat': 40.0, 'lon': -100.0, 'alt': None, 'ts': 200}


def test_insert_is_all_or_nothing(position_store):
    rows = [
        {'icao24': 'good01', 'latitude': 40.0, 'longitude': -100.0, 'timestamp': NOW},
        {'icao24': 'bad001', 'latitude': None, 'longitude': -100.0, 'timestamp': NOW},
    ]

    with pytest.raises(IntegrityError):
        position_store.insert_positions(rows)

    assert position_store.stats()['row_count'] == 0


def test_insert_empty_batch_is_noop(position_store):
    assert position_store.insert_positions([]) == 0


def test_stats_reports_count_and_oldest(position_store):
    assert position_store.stats() == {'row_count': 0, 'oldest_ts': None}

    position_store.insert_positions([_record('a', 500), _record('b', 300)])

    assert position_store.stats() == {'row_count': 2, 'oldest_ts': 300}
