from __future__ import annotations

import logging
import threading
import time

import pytest

from graph_adapters.core import ErrorType, LimitBucket, QueryContext, QueryError


def test_bucket_starts_empty():
    assert LimitBucket(5, 5).tokens == 0


def test_refill_caps_at_capacity():
    bucket = LimitBucket(3, 2)

    assert bucket.refill() is False
    assert bucket.tokens == 2
    assert bucket.refill() is True
    assert bucket.tokens == 3
    assert bucket.refill() is True
    assert bucket.tokens == 3


def test_acquire_consumes_a_token():
    bucket = LimitBucket(2, 2)
    bucket.refill()

    waited = bucket.acquire()

    assert waited >= 0
    assert bucket.tokens == 1


def test_acquire_raises_timeout_when_context_cancelled():
    bucket = LimitBucket(1, 1)
    context = QueryContext()
    context.cancel()

    with pytest.raises(QueryError) as excinfo:
        bucket.acquire(context)

    assert excinfo.value.error_type is ErrorType.TIMEOUT


def test_acquire_gives_up_at_deadline():
    bucket = LimitBucket(1, 1)

    with pytest.raises(QueryError) as excinfo:
        bucket.acquire(QueryContext().with_timeout(0.05))

    assert excinfo.value.error_type is ErrorType.TIMEOUT


def test_at_most_capacity_acquisitions_per_window():
    bucket = LimitBucket(5, 5)
    bucket.refill()

    for _ in range(5):
        bucket.acquire(QueryContext().with_timeout(0.5))
    with pytest.raises(QueryError):
        bucket.acquire(QueryContext().with_timeout(0.05))


def test_refill_thread_limits_steady_state_throughput():
    bucket = LimitBucket(4, 4, refill_duration=0.1)
    lifetime = QueryContext()
    thread = bucket.start(lifetime)
    window = lifetime.with_timeout(0.35)
    completed = 0

    try:
        while True:
            try:
                bucket.acquire(window)
            except QueryError:
                break
            completed += 1
    finally:
        lifetime.cancel()

    thread.join(timeout=1.0)
    assert not thread.is_alive()
    # Ticks at 0.1, 0.2 and 0.3 seconds can each add at most four tokens.
    assert 0 < completed <= 12


def test_acquire_wakes_waiter_on_refill():
    bucket = LimitBucket(1, 1)
    results = []

    def _waiter() -> None:
        results.append(bucket.acquire(QueryContext().with_timeout(2.0)))

    waiter = threading.Thread(target=_waiter)
    waiter.start()
    time.sleep(0.05)
    bucket.refill()
    waiter.join(timeout=2.0)

    assert len(results) == 1
    assert bucket.tokens == 0


def test_late_acquisition_is_logged(caplog):
    ticks = iter([0.0, 0.5])
    bucket = LimitBucket(1, 1, clock=lambda: next(ticks))
    bucket.refill()
    caplog.set_level(logging.DEBUG, logger="graph_adapters.core.ratelimit")

    waited = bucket.acquire()

    assert waited == pytest.approx(0.5)
    assert "late rate-limit token" in caplog.text


@pytest.mark.parametrize(("capacity", "rate"), [(0, 1), (1, 0)])
def test_invalid_bucket_parameters(capacity, rate):
    with pytest.raises(ValueError):
        LimitBucket(capacity, rate)
