"""
Poll scheduler - timer loop and lifecycle for the tile poller.

The first cycle runs as soon as the scheduler starts so the store has
data before the first query, then one cycle per interval. Each tick runs
its cycle on a separate thread: a cycle that overruns the interval makes
the next tick skip (the poller's in-flight guard) instead of delaying the
timer.
"""

import logging
import threading
from typing import Optional

from skytrack.config import config
from skytrack.ingestion.poller import TilePoller

logger = logging.getLogger(__name__)


class PollScheduler:
    """Owns the timer thread that drives a TilePoller."""

    def __init__(self, poller: TilePoller, interval: Optional[float] = None):
        self.poller = poller
        self.interval = interval if interval is not None else config.poller.interval_seconds

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a background thread. No-op if already running."""
        with self._lifecycle_lock:
            if self.running:
                logger.warning('Poll scheduler already running')
                return

            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name='poll-scheduler',
                daemon=True,
            )
            self._thread.start()

        logger.info(
            f'Poll scheduler started: interval={self.interval:g}s, '
            f'retention={self.poller.retention_seconds // 3600}h, tiles={len(self.poller.tiles)}'
        )

    def stop(self, timeout: float = 5) -> None:
        """Stop the timer. A cycle already in flight is left to finish."""
        with self._lifecycle_lock:
            self._stop_event.set()
            thread, self._thread = self._thread, None

        if thread:
            thread.join(timeout=timeout)
        logger.info('Poll scheduler stopped')

    def _run(self) -> None:
        self._dispatch()
        while not self._stop_event.wait(self.interval):
            self._dispatch()

    def _dispatch(self) -> None:
        threading.Thread(target=self.run_cycle, name='poll-cycle', daemon=True).start()

    def run_cycle(self) -> None:
        """Run one cycle, logging any failure so the timer keeps going."""
        try:
            self.poller.poll_once()
        except Exception as e:
            logger.error(f'Poll cycle failed: {e}')
