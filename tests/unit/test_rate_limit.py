from chatbridge.middleware.rate_limit import FixedWindowCounter


def test_counter_allows_up_to_limit_then_blocks():
    counter = FixedWindowCounter(limit=2, window_seconds=60)
    assert counter.hit("1.2.3.4", now=100.0) == (True, 1, 60)
    assert counter.hit("1.2.3.4", now=110.0) == (True, 0, 50)
    assert counter.hit("1.2.3.4", now=120.0) == (False, 0, 40)


def test_counter_resets_after_window():
    counter = FixedWindowCounter(limit=1, window_seconds=60)
    counter.hit("ip", now=0.0)
    assert counter.hit("ip", now=59.0)[0] is False
    assert counter.hit("ip", now=60.0) == (True, 0, 60)


def test_counter_is_per_key():
    counter = FixedWindowCounter(limit=1)
    assert counter.hit("a", now=0.0)[0] is True
    assert counter.hit("b", now=0.0)[0] is True
    assert counter.hit("a", now=1.0)[0] is False


def test_expired_windows_are_dropped():
    counter = FixedWindowCounter(limit=5, window_seconds=60)
    for n in range(100):
        counter.hit(f"10.0.0.{n}", now=0.0)
    counter.hit("10.0.1.1", now=61.0)
    assert set(counter._windows) == {"10.0.1.1"}
