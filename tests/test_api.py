import time

import requests

from skytrack.ingestion import state_vector

from tests.conftest import make_response

BBOX = 'lamin=39&lamax=41&lomin=-101&lomax=-99'


def test_health(client):
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_unknown_route_returns_json_404(client):
    response = client.get('/api/nope')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}


def test_planes_requires_bbox(client):
    response = client.get('/api/planes?lamin=39&lamax=41')

    assert response.status_code == 400
    assert response.get_json() == {'error': 'lamin/lamax/lomin/lomax required'}


def test_planes_proxies_point_query_as_state_vectors(client, fake_upstream):
    fake_upstream.handler = lambda url, params: make_response(200, {'ac': [
        {'hex': 'A12345', 'flight': 'UAL9 ', 'lat': 40.2, 'lon': -100.3,
         'alt_baro': 31000, 'gs': 440, 'track': 45, 'baro_rate': 0},
    ]})

    response = client.get(f'/api/planes?{BBOX}')

    assert response.status_code == 200
    assert fake_upstream.calls[0]['url'] == 'https://example.test/v2/point/40/-100/60'
    [row] = response.get_json()['states']
    assert row[state_vector.ICAO24] == 'a12345'
    assert row[state_vector.CALLSIGN] == 'UAL9'
    assert row[state_vector.LATITUDE] == 40.2
    assert row[state_vector.LONGITUDE] == -100.3
    assert row[state_vector.BARO_ALTITUDE] == 31000


def test_planes_answers_repeat_boxes_from_cache(client, fake_upstream):
    client.get(f'/api/planes?{BBOX}')
    client.get(f'/api/planes?{BBOX}')

    assert len(fake_upstream.calls) == 1


def test_planes_passes_through_upstream_status(client, fake_upstream):
    fake_upstream.handler = lambda url, params: make_response(503, text='down')

    response = client.get(f'/api/planes?{BBOX}')

    assert response.status_code == 503
    assert response.get_json() == {'error': 'API error: 503'}


def test_planes_unreachable_upstream_is_502(client, fake_upstream):
    fake_upstream.handler = lambda url, params: requests.exceptions.ConnectionError('refused')

    response = client.get(f'/api/planes?{BBOX}')

    assert response.status_code == 502
    assert response.get_json() == {'error': 'Failed to reach aircraft API'}


def test_live_returns_latest_stored_positions(client, position_store):
    now = int(time.time())
    position_store.insert_positions([
        {'icao24': 'a00001', 'latitude': 40.0, 'longitude': -100.0, 'timestamp': now - 60, 'altitude': 1000.0},
        {'icao24': 'a00001', 'latitude': 40.1, 'longitude': -100.1, 'timestamp': now - 5, 'altitude': 1500.0},
    ])

    body = client.get(f'/api/live?{BBOX}').get_json()

    assert body['count'] == 1
    assert body['planes'][0]['alt'] == 1500.0
    assert body['planes'][0]['ts'] == now - 5


def test_live_rejects_bad_max_age(client):
    response = client.get(f'/api/live?{BBOX}&max_age=soon')

    assert response.status_code == 400


def test_trail_returns_points_in_time_order(client, position_store):
    position_store.insert_positions([
        {'icao24': 'a00001', 'latitude': 40.2, 'longitude': -100.0, 'timestamp': 200},
        {'icao24': 'a00001', 'latitude': 40.1, 'longitude': -100.0, 'timestamp': 100},
    ])

    body = client.get('/api/trail/A00001?since=0').get_json()

    assert body['icao24'] == 'a00001'
    assert [p['ts'] for p in body['trail']] == [100, 200]
    assert body['count'] == 2


def test_position_stats_without_poller(client):
    body = client.get('/api/positions/stats').get_json()

    assert body['store'] == {'row_count': 0, 'oldest_ts': None}
    assert body['poller'] is None
    assert body['running'] is False


def test_log_sightings_requires_planes_array(client):
    assert client.post('/api/sightings', json={}).status_code == 400
    assert client.post('/api/sightings', json={'planes': 'a00001'}).status_code == 400
    assert client.post('/api/sightings', data='not json').status_code == 400
    assert client.post('/api/sightings', json=[{'icao24': 'abc123'}]).status_code == 400
    assert client.post('/api/sightings', json='planes').status_code == 400


def test_log_sightings_then_read_history_and_stats(client):
    response = client.post('/api/sightings', json={'planes': [
        {'icao24': 'a00001', 'callsign': 'UAL1', 'origin_country': 'United States', 'alt': 10000, 'vel': 230},
        {'icao24': 'c00001', 'origin_country': 'Canada'},
        {'callsign': 'NOID'},
    ]})

    assert response.get_json() == {'ok': True, 'count': 2}

    history = client.get('/api/history?limit=10').get_json()['history']
    assert {h['icao24'] for h in history} == {'a00001', 'c00001'}

    stats = client.get('/api/stats').get_json()
    assert stats['total_unique'] == 2
    assert stats['recent_count'] == 2


def test_history_rejects_bad_paging(client):
    assert client.get('/api/history?limit=ten').status_code == 400
    assert client.get('/api/history?offset=-1').status_code == 400


def test_planes_tolerates_malformed_upstream_fields(client, fake_upstream):
    fake_upstream.handler = lambda url, params: make_response(200, {'ac': [
        {'hex': 'a00001', 'lat': 40.0, 'lon': -100.0, 'gs': 'n/a', 'alt_baro': 'ground'},
    ]})

    response = client.get(f'/api/planes?{BBOX}')

    assert response.status_code == 200
    [row] = response.get_json()['states']
    assert row[state_vector.VELOCITY] is None
    assert row[state_vector.ON_GROUND] is True
