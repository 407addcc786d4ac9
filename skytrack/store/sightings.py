"""
Sighting aggregator - running aggregates per sighting episode.

An episode is a continuous run of reports for one aircraft. Each upsert
either extends the aircraft's active episode (last seen within the
staleness window) or opens a new one. Extending an episode:

- last_seen moves to now
- min/max altitude and max speed are running bounds; a missing value
  never clears a bound
- lat/lon always take the latest report, even when it has no position
- callsign is only replaced by a non-empty value

Episodes are never merged after the fact: a gap longer than the
staleness window always produces a new row.
"""

import logging
import threading
import time
from typing import Any, Iterable, List, Mapping, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from skytrack.config import config
from skytrack.models.base import SightingsBase, make_engine, make_session_factory, session_scope
from skytrack.models.sighting import Sighting, SightingInput

logger = logging.getLogger(__name__)

ObservationLike = Union[SightingInput, Mapping[str, Any]]


def _running_min(current: Optional[float], value: Optional[float]) -> Optional[float]:
    if value is None:
        return current
    return value if current is None else min(current, value)


def _running_max(current: Optional[float], value: Optional[float]) -> Optional[float]:
    if value is None:
        return current
    return value if current is None else max(current, value)


class SightingAggregator:
    """
    Owns the sightings database.

    Upserts are serialized with a lock around each batch transaction, so
    two read-modify-write cycles for the same aircraft never interleave.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        stale_seconds: Optional[int] = None,
    ):
        self.engine = engine or make_engine(url or config.database.sightings_url)
        self._session_factory = make_session_factory(self.engine)
        if stale_seconds is None:
            stale_seconds = config.sightings.stale_seconds
        self.stale_seconds = stale_seconds
        self._lock = threading.Lock()
        SightingsBase.metadata.create_all(bind=self.engine)

    @classmethod
    def from_config(cls) -> 'SightingAggregator':
        """Create aggregator from application configuration."""
        return cls(engine=make_engine(config.database.sightings_url, echo=config.debug))

    def _active_episode(self, session, icao24: str, now: int) -> Optional[Sighting]:
        stmt = (
            select(Sighting)
            .where(Sighting.icao24 == icao24)
            .where(Sighting.last_seen > now - self.stale_seconds)
            .order_by(Sighting.last_seen.desc(), Sighting.id.desc())
            .limit(1)
        )
        return session.execute(stmt).scalars().first()

    def upsert_sightings(
        self,
        observations: Iterable[ObservationLike],
        now: Optional[int] = None,
    ) -> int:
        """
        Fold a batch of observations into sighting episodes.

        Observations without an aircraft identity are skipped.
        Returns the number of observations applied.
        """
        now = int(now if now is not None else time.time())
        applied = 0

        with self._lock, session_scope(self._session_factory) as session:
            for raw in observations:
                obs = raw if isinstance(raw, SightingInput) else SightingInput.from_dict(raw)
                if obs is None or not obs.icao24:
                    logger.debug(f'Skipping sighting without icao24: {raw!r}')
                    continue

                episode = self._active_episode(session, obs.icao24, now)
                if episode is not None:
                    episode.last_seen = now
                    episode.min_altitude = _running_min(episode.min_altitude, obs.altitude)
                    episode.max_altitude = _running_max(episode.max_altitude, obs.altitude)
                    episode.max_speed = _running_max(episode.max_speed, obs.speed)
                    episode.lat = obs.lat
                    episode.lon = obs.lon
                    if obs.callsign:
                        episode.callsign = obs.callsign
                else:
                    session.add(Sighting(
                        icao24=obs.icao24,
                        callsign=obs.callsign,
                        origin_country=obs.origin_country,
                        first_seen=now,
                        last_seen=now,
                        min_altitude=obs.altitude,
                        max_altitude=obs.altitude,
                        max_speed=obs.speed,
                        lat=obs.lat,
                        lon=obs.lon,
                    ))
                # Later observations of the same aircraft in this batch must see this one
                session.flush()
                applied += 1

        logger.debug(f'Upserted {applied} sightings')
        return applied

    def get_history(self, limit: int = 50, offset: int = 0) -> List[Sighting]:
        """Episodes, most recently seen first."""
        stmt = (
            select(Sighting)
            .order_by(Sighting.last_seen.desc(), Sighting.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def get_stats(self, now: Optional[int] = None) -> dict:
        """
        Aggregate sighting statistics.

        Returns:
            total_unique: distinct aircraft ever recorded
            recent_count: distinct aircraft seen in the stats window (24h)
            top_countries: up to 5 origin countries by distinct aircraft
        """
        now = int(now if now is not None else time.time())
        recent_cutoff = now - config.sightings.stats_window_seconds
        distinct_aircraft = func.count(func.distinct(Sighting.icao24))

        with session_scope(self._session_factory) as session:
            total_unique = session.execute(select(distinct_aircraft)).scalar_one()
            recent_count = session.execute(
                select(distinct_aircraft).where(Sighting.last_seen > recent_cutoff)
            ).scalar_one()
            countries = session.execute(
                select(Sighting.origin_country, distinct_aircraft.label('count'))
                .where(Sighting.origin_country.is_not(None))
                .group_by(Sighting.origin_country)
                .order_by(distinct_aircraft.desc(), Sighting.origin_country.asc())
                .limit(config.sightings.top_countries)
            ).all()

        return {
            'total_unique': total_unique,
            'recent_count': recent_count,
            'top_countries': [
                {'origin_country': country, 'count': count}
                for country, count in countries
            ],
        }
