"""
Position model - time-series telemetry storage.

Every aircraft observed in a poll cycle gets one row here. The table is
append-only: rows are never updated, only deleted by retention pruning.

Schema optimized for:
- Fast batch inserts (one transaction per poll cycle)
- "Latest position per aircraft inside a box" queries
- Full per-aircraft trails ordered by time
"""

from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy import String, Float, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from skytrack.models.base import PositionsBase


@dataclass(frozen=True)
class PositionRecord:
    """
    One aircraft at one instant, ready for insertion.

    Built by the poller from a raw feed observation. Units follow the
    primary feed: feet, knots, feet per minute.
    """
    icao24: str
    latitude: float
    longitude: float
    timestamp: int
    callsign: Optional[str] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    vertical_rate: Optional[float] = None
    squawk: Optional[str] = None
    on_ground: bool = False

    def as_row(self) -> dict:
        """Column mapping for a bulk insert."""
        return asdict(self)


class Position(PositionsBase):
    """
    Historical position for one aircraft at one poll timestamp.

    Multiple rows share an icao24 across time - that is the time-series.
    All rows written by one poll cycle share the same timestamp.
    """

    __tablename__ = 'positions'

    # Surrogate key; also the insertion order used to break timestamp ties
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    icao24: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
        comment='ICAO24 hex address, lowercase'
    )

    callsign: Mapped[Optional[str]] = mapped_column(
        String(8),
        nullable=True,
        comment='Callsign at time of observation'
    )

    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Latitude in decimal degrees'
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Longitude in decimal degrees'
    )

    altitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Barometric (else geometric) altitude in feet'
    )

    speed: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Ground speed in knots'
    )

    heading: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Track angle in degrees'
    )

    vertical_rate: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Vertical rate in feet per minute'
    )

    squawk: Mapped[Optional[str]] = mapped_column(
        String(4),
        nullable=True,
        comment='Transponder squawk code'
    )

    on_ground: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        comment='Derived: ground speed below 5 knots'
    )

    timestamp: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Unix timestamp of the poll cycle'
    )

    __table_args__ = (
        Index('ix_positions_icao24', 'icao24'),
        Index('ix_positions_timestamp', 'timestamp'),
        # Latest-in-bbox: range on lat/lon, then time window
        Index('ix_positions_bbox', 'latitude', 'longitude', 'timestamp'),
        # Trail: one aircraft, time ordered
        Index('ix_positions_icao_time', 'icao24', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<Position {self.icao24} @ {self.timestamp}>'

    def to_dict(self) -> dict:
        """JSON-serializable representation for API responses."""
        return {
            'icao24': self.icao24,
            'callsign': self.callsign,
            'lat': self.latitude,
            'lon': self.longitude,
            'alt': self.altitude,
            'speed': self.speed,
            'heading': self.heading,
            'vrate': self.vertical_rate,
            'squawk': self.squawk,
            'on_ground': self.on_ground,
            'ts': self.timestamp,
        }

    def to_trail_point(self) -> dict:
        """Compact representation used for drawing trails."""
        return {
            'lat': self.latitude,
            'lon': self.longitude,
            'alt': self.altitude,
            'ts': self.timestamp,
        }
