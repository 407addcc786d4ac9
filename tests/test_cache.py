from skytrack.cache import ResponseCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=30, clock=clock)
    cache.set('box', {'states': []})

    clock.now += 29
    assert cache.get('box') == {'states': []}

    clock.now += 2
    assert cache.get('box') is None
    assert cache.stats['entries'] == 0


def test_stats_track_hits_and_misses():
    cache = ResponseCache(ttl_seconds=30)
    cache.get('missing')
    cache.set('box', 1)
    cache.get('box')

    stats = cache.stats

    assert stats['hits'] == 1
    assert stats['misses'] == 1
    assert stats['hit_rate'] == 0.5


def test_oldest_entries_evicted_over_capacity():
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=30, max_entries=3, clock=clock)
    for key in ('a', 'b', 'c', 'd'):
        cache.set(key, key)
        clock.now += 1

    assert cache.get('a') is None
    assert cache.get('d') == 'd'
    assert cache.stats['entries'] == 3


def test_clear_drops_everything():
    cache = ResponseCache(ttl_seconds=30)
    cache.set('box', 1)
    cache.clear()

    assert cache.get('box') is None


def test_zero_ttl_is_not_replaced_by_default():
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=0, clock=clock)
    cache.set('box', 1)

    assert cache.ttl_seconds == 0
    assert cache.get('box') is None
