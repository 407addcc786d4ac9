"""
Data ingestion module for SkyTrack.

Handles polling the upstream feeds tile by tile, merging and
deduplicating observations, and loading them into the position store.
"""

from skytrack.ingestion.adsb_client import AdsbLolClient
from skytrack.ingestion.opensky_client import OpenSkyClient
from skytrack.ingestion.poller import PollResult, TilePoller
from skytrack.ingestion.scheduler import PollScheduler
from skytrack.ingestion.source import SourceClient, TileResult
from skytrack.ingestion.state_vector import StateVector

__all__ = [
    'AdsbLolClient',
    'OpenSkyClient',
    'PollResult',
    'PollScheduler',
    'SourceClient',
    'StateVector',
    'TileResult',
    'TilePoller',
]
