"""
OpenSky state-vector codec.

The OpenSky REST API encodes each aircraft as a flat array whose meaning
is fixed by position. Consumers (including the web client) index into
these arrays directly, so every slot below must keep its exact position
and meaning when translating from other feeds.

State vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude
8: on_ground       - Boolean
9: velocity        - Ground speed
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate
12: sensors        - Sensor IDs (array)
13: geo_altitude   - Geometric altitude
14: squawk         - Transponder code
15: spi            - Special position indicator
16: position_source - 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM
17: category       - Emitter category (extended responses only)
"""

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

ICAO24 = 0
CALLSIGN = 1
ORIGIN_COUNTRY = 2
TIME_POSITION = 3
LAST_CONTACT = 4
LONGITUDE = 5
LATITUDE = 6
BARO_ALTITUDE = 7
ON_GROUND = 8
VELOCITY = 9
TRUE_TRACK = 10
VERTICAL_RATE = 11
SENSORS = 12
GEO_ALTITUDE = 13
SQUAWK = 14
SPI = 15
POSITION_SOURCE = 16
CATEGORY = 17

# Minimum length of a standard response row; CATEGORY is optional
MIN_STATE_VECTOR_LENGTH = 17
STATE_VECTOR_LENGTH = 18

UNKNOWN_COUNTRY = 'Unknown'

# ICAO 24-bit address blocks: (first, last, country)
ICAO_ADDRESS_BLOCKS = (
    (0x008000, 0x00FFFF, 'South Africa'),
    (0x06A000, 0x06A3FF, 'Qatar'),
    (0x0AC000, 0x0ACFFF, 'Colombia'),
    (0x0D0000, 0x0D7FFF, 'Mexico'),
    (0x100000, 0x1FFFFF, 'Russia'),
    (0x300000, 0x33FFFF, 'Italy'),
    (0x340000, 0x37FFFF, 'Spain'),
    (0x380000, 0x3BFFFF, 'France'),
    (0x3C0000, 0x3FFFFF, 'Germany'),
    (0x400000, 0x43FFFF, 'United Kingdom'),
    (0x440000, 0x447FFF, 'Austria'),
    (0x448000, 0x44FFFF, 'Belgium'),
    (0x458000, 0x45FFFF, 'Denmark'),
    (0x460000, 0x467FFF, 'Finland'),
    (0x478000, 0x47FFFF, 'Norway'),
    (0x480000, 0x487FFF, 'Netherlands'),
    (0x488000, 0x48FFFF, 'Poland'),
    (0x490000, 0x497FFF, 'Portugal'),
    (0x4A8000, 0x4AFFFF, 'Sweden'),
    (0x4B0000, 0x4B7FFF, 'Switzerland'),
    (0x4B8000, 0x4BFFFF, 'Turkey'),
    (0x4CA000, 0x4CAFFF, 'Ireland'),
    (0x718000, 0x71FFFF, 'South Korea'),
    (0x738000, 0x73FFFF, 'Israel'),
    (0x750000, 0x757FFF, 'Malaysia'),
    (0x768000, 0x76FFFF, 'Singapore'),
    (0x780000, 0x7BFFFF, 'China'),
    (0x7C0000, 0x7FFFFF, 'Australia'),
    (0x800000, 0x83FFFF, 'India'),
    (0x840000, 0x87FFFF, 'Japan'),
    (0x896000, 0x896FFF, 'United Arab Emirates'),
    (0x899000, 0x8997FF, 'Taiwan'),
    (0xA00000, 0xAFFFFF, 'United States'),
    (0xC00000, 0xC3FFFF, 'Canada'),
    (0xC80000, 0xC87FFF, 'New Zealand'),
    (0xE00000, 0xE3FFFF, 'Argentina'),
    (0xE40000, 0xE7FFFF, 'Brazil'),
    (0xE80000, 0xE80FFF, 'Chile'),
)


def country_from_icao24(icao24: Optional[str]) -> str:
    """Country of registration derived from the ICAO24 address block."""
    if not icao24:
        return UNKNOWN_COUNTRY
    try:
        address = int(icao24.strip().lstrip('~'), 16)
    except ValueError:
        return UNKNOWN_COUNTRY

    for first, last, country in ICAO_ADDRESS_BLOCKS:
        if first <= address <= last:
            return country
    return UNKNOWN_COUNTRY


def as_float(value: Any) -> Optional[float]:
    """Finite float, or None for missing, non-numeric, NaN or infinite values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def baro_altitude_value(value: Any) -> Optional[float]:
    """
    Numeric barometric altitude.

    readsb-style feeds report the literal string 'ground' for aircraft on
    the surface; that maps to 0.
    """
    if isinstance(value, str) and value.strip().lower() == 'ground':
        return 0.0
    return as_float(value)


@dataclass
class StateVector:
    """
    Parsed state vector.

    Normalizes the raw array format into a typed dataclass.
    All values may be None if not reported by the aircraft.
    """
    icao24: str
    callsign: Optional[str] = None
    origin_country: Optional[str] = None
    time_position: Optional[int] = None
    last_contact: Optional[int] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    baro_altitude: Optional[float] = None
    on_ground: bool = False
    velocity: Optional[float] = None
    true_track: Optional[float] = None
    vertical_rate: Optional[float] = None
    sensors: Optional[List[int]] = None
    geo_altitude: Optional[float] = None
    squawk: Optional[str] = None
    spi: bool = False
    position_source: Optional[int] = None
    category: Optional[Any] = None

    @classmethod
    def from_array(cls, arr: List[Any]) -> Optional['StateVector']:
        """
        Parse a state vector array into a StateVector.

        Returns None if the array is malformed or has no icao24.
        """
        if not isinstance(arr, (list, tuple)) or len(arr) < MIN_STATE_VECTOR_LENGTH:
            return None

        icao24 = arr[ICAO24]
        if not icao24 or not isinstance(icao24, str):
            return None

        callsign = arr[CALLSIGN]
        if callsign:
            callsign = callsign.strip() or None

        return cls(
            icao24=icao24.lower(),
            callsign=callsign,
            origin_country=arr[ORIGIN_COUNTRY],
            time_position=arr[TIME_POSITION],
            last_contact=arr[LAST_CONTACT],
            longitude=arr[LONGITUDE],
            latitude=arr[LATITUDE],
            baro_altitude=arr[BARO_ALTITUDE],
            on_ground=bool(arr[ON_GROUND]),
            velocity=arr[VELOCITY],
            true_track=arr[TRUE_TRACK],
            vertical_rate=arr[VERTICAL_RATE],
            sensors=arr[SENSORS],
            geo_altitude=arr[GEO_ALTITUDE],
            squawk=arr[SQUAWK],
            spi=bool(arr[SPI]),
            position_source=arr[POSITION_SOURCE],
            category=arr[CATEGORY] if len(arr) > CATEGORY else None,
        )

    @classmethod
    def from_adsb(cls, ac: Mapping[str, Any]) -> Optional['StateVector']:
        """
        Translate an adsb.lol aircraft object into a state vector.

        Values are copied in the feed's own units (feet, knots, ft/min).
        Position and timestamps the feed does not carry stay None.
        """
        hex_code = ac.get('hex')
        if not hex_code or not isinstance(hex_code, str):
            return None

        callsign = str(ac.get('flight') or '').strip() or None
        baro_altitude = baro_altitude_value(ac.get('alt_baro'))
        speed = as_float(ac.get('gs'))
        vertical_rate = as_float(ac.get('baro_rate'))
        if vertical_rate is None:
            vertical_rate = as_float(ac.get('geom_rate'))

        return cls(
            icao24=hex_code.lower(),
            callsign=callsign,
            origin_country=country_from_icao24(hex_code),
            longitude=as_float(ac.get('lon')),
            latitude=as_float(ac.get('lat')),
            baro_altitude=baro_altitude,
            on_ground=baro_altitude == 0 or (speed is not None and speed < 5),
            velocity=speed,
            true_track=as_float(ac.get('track')),
            vertical_rate=vertical_rate,
            geo_altitude=as_float(ac.get('alt_geom')),
            squawk=ac.get('squawk'),
            spi=bool(ac.get('spi')),
            category=ac.get('category'),
        )

    def to_array(self) -> List[Any]:
        """Encode into the fixed-index array format."""
        arr: List[Any] = [None] * STATE_VECTOR_LENGTH
        arr[ICAO24] = self.icao24
        arr[CALLSIGN] = self.callsign
        arr[ORIGIN_COUNTRY] = self.origin_country
        arr[TIME_POSITION] = self.time_position
        arr[LAST_CONTACT] = self.last_contact
        arr[LONGITUDE] = self.longitude
        arr[LATITUDE] = self.latitude
        arr[BARO_ALTITUDE] = self.baro_altitude
        arr[ON_GROUND] = self.on_ground
        arr[VELOCITY] = self.velocity
        arr[TRUE_TRACK] = self.true_track
        arr[VERTICAL_RATE] = self.vertical_rate
        arr[SENSORS] = self.sensors
        arr[GEO_ALTITUDE] = self.geo_altitude
        arr[SQUAWK] = self.squawk
        arr[SPI] = self.spi
        arr[POSITION_SOURCE] = self.position_source
        arr[CATEGORY] = self.category
        return arr

    def has_position(self) -> bool:
        """Check if this state has valid position data."""
        return self.latitude is not None and self.longitude is not None
