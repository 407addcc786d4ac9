"""
API module for SkyTrack.

Provides REST endpoints for:
- Live and stored aircraft positions
- Sighting episodes and statistics
"""

from skytrack.api.planes import planes_bp
from skytrack.api.sightings import sightings_bp

__all__ = ['planes_bp', 'sightings_bp']
