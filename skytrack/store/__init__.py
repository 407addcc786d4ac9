"""
Persistent stores.

Each store owns its own database; nothing else writes to them.
"""

from skytrack.store.positions import PositionStore
from skytrack.store.sightings import SightingAggregator

__all__ = ['PositionStore', 'SightingAggregator']
