"""
Database models for SkyTrack.

Two independent stores:
1. positions - append-only time-series, one row per aircraft per poll
2. sightings - one mutable running-aggregate row per sighting episode
"""

from skytrack.models.base import (
    PositionsBase,
    SightingsBase,
    make_engine,
    make_session_factory,
    session_scope,
)
from skytrack.models.position import Position, PositionRecord
from skytrack.models.sighting import Sighting, SightingInput

__all__ = [
    'PositionsBase',
    'SightingsBase',
    'make_engine',
    'make_session_factory',
    'session_scope',
    'Position',
    'PositionRecord',
    'Sighting',
    'SightingInput',
]
