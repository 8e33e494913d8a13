"""
Token-bucket rate limiting shared by adapters that call the same upstream API.

The bucket mirrors how cloud providers throttle their control-plane APIs: a
fixed capacity that is topped up by ``refill_rate`` tokens every
``refill_duration`` seconds. Buckets start empty, so the first acquisitions wait
for the first refill tick.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .context import QueryContext, resolve_context
from .logging import get_logger, log_query

DEFAULT_REFILL_DURATION = 1.0
LATE_WAIT_THRESHOLD = 0.3
_POLL_INTERVAL = 0.05

LOGGER = get_logger(__name__)


class LimitBucket:
    """
    Thread-safe token bucket.

    Parameters
    ----------
    max_capacity:
        Maximum number of tokens held at any time.
    refill_rate:
        Tokens added per refill tick.
    refill_duration:
        Seconds between refill ticks.
    clock:
        Monotonic time source used to measure waits.
    """

    def __init__(
        self,
        max_capacity: int,
        refill_rate: int,
        refill_duration: float = DEFAULT_REFILL_DURATION,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_capacity < 1:
            raise ValueError("max_capacity must be >= 1")
        if refill_rate < 1:
            raise ValueError("refill_rate must be >= 1")
        if refill_duration <= 0:
            refill_duration = DEFAULT_REFILL_DURATION
        self.max_capacity = max_capacity
        self.refill_rate = refill_rate
        self.refill_duration = refill_duration
        self._clock = clock
        self._tokens = 0
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None

    @property
    def tokens(self) -> int:
        with self._condition:
            return self._tokens

    def start(self, context: QueryContext) -> threading.Thread:
        """
        Begin refilling in a daemon thread until ``context`` is cancelled.

        Calling ``start`` again while the refill thread is alive returns the
        existing thread.
        """

        if self._thread is not None and self._thread.is_alive():
            return self._thread

        def _run() -> None:
            while not context.wait(self.refill_duration):
                self.refill()

        thread = threading.Thread(target=_run, name="limit-bucket-refill", daemon=True)
        self._thread = thread
        thread.start()
        return thread

    def refill(self) -> bool:
        """Add one tick worth of tokens and return whether the bucket is now full."""

        with self._condition:
            room = self.max_capacity - self._tokens
            if room < self.refill_rate:
                added, full = room, True
            else:
                added, full = self.refill_rate, self._tokens + self.refill_rate == self.max_capacity
            self._tokens += added
            if added:
                self._condition.notify(added)
            return full

    def acquire(self, context: Optional[QueryContext] = None) -> float:
        """
        Block until a token is available and consume it.

        Returns the number of seconds spent waiting. Raises a ``TIMEOUT``
        :class:`~graph_adapters.core.errors.QueryError` if ``context`` is
        cancelled first.
        """

        ctx = resolve_context(context)
        started = self._clock()
        with self._condition:
            while True:
                ctx.raise_if_cancelled()
                if self._tokens > 0:
                    break
                timeout = _POLL_INTERVAL
                remaining = ctx.remaining()
                if remaining is not None:
                    timeout = min(timeout, remaining)
                self._condition.wait(timeout)
            self._tokens -= 1
        waited = self._clock() - started
        if waited > LATE_WAIT_THRESHOLD:
            log_query(LOGGER, "Waited for late rate-limit token", extra={"wait": waited})
        return waited

    def __repr__(self) -> str:
        return f"LimitBucket(max_capacity={self.max_capacity}, refill_rate={self.refill_rate}, refill_duration={self.refill_duration})"
