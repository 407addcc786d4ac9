"""
Sighting model - one row per continuous observation episode.

Unlike positions, sighting rows are mutable running aggregates: while an
aircraft keeps being reported, its active episode is updated in place.
Once the aircraft goes quiet for longer than the staleness window the
episode is closed and the next report opens a new one.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import String, Float, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from skytrack.models.base import SightingsBase


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SightingInput:
    """An externally reported observation fed to the aggregator."""
    icao24: str
    callsign: Optional[str] = None
    origin_country: Optional[str] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    def __post_init__(self):
        # Episodes are keyed by lowercase icao24 whichever way the input was built
        object.__setattr__(self, 'icao24', self.icao24.strip().lower())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Optional['SightingInput']:
        """
        Build from a client payload.

        Accepts the short keys the web client posts (alt, vel) as well as
        the long names. Returns None when the aircraft identity is missing.
        """
        if not isinstance(data, Mapping):
            return None

        icao24 = _clean_text(data.get('icao24'))
        if not icao24:
            return None

        altitude = data.get('altitude', data.get('alt'))
        speed = data.get('speed', data.get('vel'))

        return cls(
            icao24=icao24.lower(),
            callsign=_clean_text(data.get('callsign')),
            origin_country=_clean_text(data.get('origin_country')),
            altitude=_as_float(altitude),
            speed=_as_float(speed),
            lat=_as_float(data.get('lat')),
            lon=_as_float(data.get('lon')),
        )


class Sighting(SightingsBase):
    """Running aggregate for one sighting episode of one aircraft."""

    __tablename__ = 'sightings'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    icao24: Mapped[str] = mapped_column(String(6), nullable=False)
    callsign: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    origin_country: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    first_seen: Mapped[int] = mapped_column(Integer, nullable=False)
    last_seen: Mapped[int] = mapped_column(Integer, nullable=False)

    # Running aggregates; NULL until the first non-null input
    min_altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Last reported position, overwritten on every update
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index('ix_sightings_icao24', 'icao24'),
        Index('ix_sightings_last_seen', 'last_seen'),
    )

    def __repr__(self) -> str:
        return f'<Sighting {self.icao24} {self.first_seen}-{self.last_seen}>'

    @property
    def duration_seconds(self) -> int:
        return self.last_seen - self.first_seen

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'icao24': self.icao24,
            'callsign': self.callsign,
            'origin_country': self.origin_country,
            'first_seen': self.first_seen,
            'last_seen': self.last_seen,
            'min_alt': self.min_altitude,
            'max_alt': self.max_altitude,
            'max_speed': self.max_speed,
            'lat': self.lat,
            'lon': self.lon,
        }
