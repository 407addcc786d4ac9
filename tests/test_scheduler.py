import logging
import threading
from unittest.mock import MagicMock

from skytrack.ingestion.scheduler import PollScheduler


def _poller(side_effect=None):
    poller = MagicMock()
    poller.retention_seconds = 86400
    poller.tiles = ()
    poller.poll_once.side_effect = side_effect
    return poller


def test_first_cycle_runs_immediately_on_start():
    polled = threading.Event()
    poller = _poller(side_effect=lambda: polled.set())
    scheduler = PollScheduler(poller, interval=60)

    scheduler.start()
    try:
        assert polled.wait(2)
        assert scheduler.running
    finally:
        scheduler.stop()

    assert not scheduler.running


def test_cycles_repeat_on_interval():
    calls = []
    enough = threading.Event()

    def poll():
        calls.append(1)
        if len(calls) >= 3:
            enough.set()

    scheduler = PollScheduler(_poller(side_effect=poll), interval=0.01)
    scheduler.start()
    try:
        assert enough.wait(2)
    finally:
        scheduler.stop()


def test_failed_cycle_is_logged_and_timer_keeps_going(caplog):
    calls = []
    enough = threading.Event()

    def poll():
        calls.append(1)
        if len(calls) >= 2:
            enough.set()
        raise RuntimeError('database is locked')

    scheduler = PollScheduler(_poller(side_effect=poll), interval=0.01)
    with caplog.at_level(logging.ERROR, logger='skytrack.ingestion.scheduler'):
        scheduler.start()
        try:
            assert enough.wait(2)
        finally:
            scheduler.stop()

    assert any('database is locked' in r.message for r in caplog.records)


def test_start_twice_keeps_one_timer():
    scheduler = PollScheduler(_poller(), interval=60)
    scheduler.start()
    thread = scheduler._thread
    try:
        scheduler.start()
        assert scheduler._thread is thread
    finally:
        scheduler.stop()


def test_run_cycle_swallows_poll_errors():
    poller = _poller(side_effect=RuntimeError('boom'))

    PollScheduler(poller, interval=60).run_cycle()

    poller.poll_once.assert_called_once()
