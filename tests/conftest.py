"""
Shared pytest fixtures.

Stores are built on temporary SQLite files, upstream HTTP is replaced by
a fake requests session that hands back real requests.Response objects.
"""

import json
from typing import Any, Callable, List, Optional

import pytest
import requests

from skytrack.app import create_app
from skytrack.ingestion.adsb_client import AdsbLolClient
from skytrack.store import PositionStore, SightingAggregator


def make_response(status: int = 200, body: Any = None, text: Optional[str] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = 'https://example.test'
    response.encoding = 'utf-8'
    if body is not None:
        response._content = json.dumps(body).encode('utf-8')
    else:
        response._content = (text or '').encode('utf-8')
    return response


class FakeSession:
    """Stands in for requests.Session; handler(url, params) returns a Response or an exception."""

    def __init__(self, handler: Callable[[str, Optional[dict]], Any]):
        self.handler = handler
        self.calls: List[dict] = []

    def get(self, url, params=None, timeout=None, auth=None, **kwargs):
        self.calls.append({'url': url, 'params': params, 'timeout': timeout, 'auth': auth})
        result = self.handler(url, params)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def position_store(tmp_path):
    return PositionStore(url=f'sqlite:///{tmp_path}/positions.db')


@pytest.fixture
def sighting_aggregator(tmp_path):
    return SightingAggregator(url=f'sqlite:///{tmp_path}/sightings.db')


@pytest.fixture
def fake_upstream():
    """Mutable upstream: tests set .handler before making requests."""
    session = FakeSession(lambda url, params: make_response(200, {'ac': []}))
    return session


@pytest.fixture
def app(position_store, sighting_aggregator, fake_upstream):
    client = AdsbLolClient(base_url='https://example.test', timeout=1, session=fake_upstream)
    app = create_app(
        start_poller=False,
        position_store=position_store,
        sighting_aggregator=sighting_aggregator,
        adsb_client=client,
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
