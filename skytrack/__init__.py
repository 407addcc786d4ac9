"""
SkyTrack Package.

Live aircraft telemetry ingestion and query service built with Flask,
SQLAlchemy, requests and NumPy.

Modules:
    ingestion/   Tile poller, scheduler and upstream feed clients
    store/       Position time-series store and sighting aggregator
    models/      SQLAlchemy ORM models (Position, Sighting)
    api/         REST endpoints over the stores and the upstream proxy
    geo.py       Tiles, bounding boxes and coverage checks
    cache.py     Thread-safe TTL cache for proxied responses
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
