"""
Position store - append-only aircraft time-series.

Owns the positions database exclusively. Writers (the poller) append whole
poll batches in one transaction and prune by age; readers ask for the
latest position per aircraft inside a box, or the full trail of one
aircraft.
"""

import logging
import time
from typing import Iterable, List, Mapping, Optional, Union

from sqlalchemy import delete, func, insert, select
from sqlalchemy.engine import Engine

from skytrack.config import config
from skytrack.models.base import PositionsBase, make_engine, make_session_factory, session_scope
from skytrack.models.position import Position, PositionRecord

logger = logging.getLogger(__name__)

RecordLike = Union[PositionRecord, Mapping]


def _now() -> int:
    return int(time.time())


class PositionStore:
    """
    Time-series store for aircraft positions.

    Rows are immutable once written. Storage errors (SQLAlchemyError)
    propagate to the caller; a failed batch leaves nothing behind.
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        self.engine = engine or make_engine(url or config.database.positions_url)
        self._session_factory = make_session_factory(self.engine)
        PositionsBase.metadata.create_all(bind=self.engine)

    @classmethod
    def from_config(cls) -> 'PositionStore':
        """Create store from application configuration."""
        return cls(engine=make_engine(config.database.positions_url, echo=config.debug))

    def insert_positions(self, records: Iterable[RecordLike]) -> int:
        """
        Append a batch of positions atomically.

        Either every record is written or none is.
        Returns the number of rows inserted.
        """
        rows = [r.as_row() if isinstance(r, PositionRecord) else dict(r) for r in records]
        if not rows:
            return 0

        with session_scope(self._session_factory) as session:
            session.execute(insert(Position), rows)

        logger.debug(f'Inserted {len(rows)} positions')
        return len(rows)

    def prune_old_positions(
        self,
        max_age_seconds: Optional[int] = None,
        now: Optional[int] = None,
    ) -> int:
        """
        Delete positions older than now - max_age_seconds.

        Returns the number of rows deleted.
        """
        if max_age_seconds is None:
            max_age_seconds = config.retention.seconds
        cutoff = (now if now is not None else _now()) - max_age_seconds

        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(Position).where(Position.timestamp < cutoff)
            )
            deleted = result.rowcount or 0

        if deleted:
            logger.info(f'Pruned {deleted} positions older than {cutoff}')
        return deleted

    def query_latest_in_bbox(
        self,
        lat_min: float,
        lat_max: float,
        lon_min: float,
        lon_max: float,
        max_age_seconds: Optional[int] = None,
        now: Optional[int] = None,
    ) -> List[Position]:
        """
        Latest position per aircraft inside a box, seen recently.

        For every aircraft with at least one in-box record newer than
        now - max_age_seconds, returns its most recent such record.
        Timestamp ties go to the row inserted last. Sorted by icao24.
        """
        if max_age_seconds is None:
            max_age_seconds = config.query.live_max_age_seconds
        min_ts = (now if now is not None else _now()) - max_age_seconds

        ranked = (
            select(
                Position.id.label('id'),
                func.row_number().over(
                    partition_by=Position.icao24,
                    order_by=(Position.timestamp.desc(), Position.id.desc()),
                ).label('rn'),
            )
            .where(Position.latitude.between(lat_min, lat_max))
            .where(Position.longitude.between(lon_min, lon_max))
            .where(Position.timestamp >= min_ts)
            .subquery()
        )

        stmt = (
            select(Position)
            .join(ranked, Position.id == ranked.c.id)
            .where(ranked.c.rn == 1)
            .order_by(Position.icao24)
        )

        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def query_trail(self, icao24: str, since_ts: Optional[int] = None) -> List[Position]:
        """
        Full position history for one aircraft since since_ts.

        Defaults to the trail window (24h). Ordered oldest to newest.
        """
        if since_ts is None:
            since_ts = _now() - config.query.trail_window_seconds

        stmt = (
            select(Position)
            .where(Position.icao24 == icao24.lower())
            .where(Position.timestamp >= since_ts)
            .order_by(Position.timestamp.asc(), Position.id.asc())
        )

        with session_scope(self._session_factory) as session:
            return list(session.execute(stmt).scalars().all())

    def stats(self) -> dict:
        """Row count and oldest timestamp, for observability."""
        with session_scope(self._session_factory) as session:
            row_count, oldest_ts = session.execute(
                select(func.count(Position.id), func.min(Position.timestamp))
            ).one()

        return {
            'row_count': row_count,
            'oldest_ts': oldest_ts,
        }
