"""
Cancellation context threaded through every blocking engine operation.

A :class:`QueryContext` plays the role of an explicit cancellation token. It is
handed to collaborator functions, rate-limiter acquisitions and orchestrator
waits so a caller can abort a whole query tree at once. The engine never
invents a timeout on its own; callers derive deadlines with
:meth:`QueryContext.with_timeout`.
"""

from __future__ import annotations

import threading
import time
from typing import List, Optional

from .errors import ErrorType, QueryError


class QueryContext:
    """
    Cancellation token with optional deadline and parent/child propagation.

    Parameters
    ----------
    deadline:
        Absolute :func:`time.monotonic` timestamp after which the context counts
        as cancelled. ``None`` means no deadline.
    parent:
        Optional parent context. Cancelling the parent cancels this context.
    """

    __slots__ = ("deadline", "_event", "_children", "_lock", "_reason")

    def __init__(self, *, deadline: Optional[float] = None, parent: Optional["QueryContext"] = None) -> None:
        self._event = threading.Event()
        self._children: List[QueryContext] = []
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline
        if parent is not None:
            parent._adopt(self)

    @classmethod
    def background(cls) -> "QueryContext":
        """Return a context that is only cancelled explicitly."""

        return cls()

    def with_timeout(self, seconds: float) -> "QueryContext":
        """Create a child context that expires ``seconds`` from now."""

        return QueryContext(deadline=time.monotonic() + max(0.0, seconds), parent=self)

    def child(self) -> "QueryContext":
        """Create a child context sharing this context's deadline."""

        return QueryContext(parent=self)

    def _adopt(self, child: "QueryContext") -> None:
        with self._lock:
            self._children.append(child)
            cancelled = self._event.is_set()
        if cancelled:
            child.cancel(self._reason)

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel this context and every context derived from it."""

        with self._lock:
            if self._reason is None:
                self._reason = reason or "query cancelled"
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` when there is none."""

        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is cancelled or ``timeout`` seconds elapse.

        Returns ``True`` when the context is cancelled.
        """

        limit = timeout
        remaining = self.remaining()
        if remaining is not None:
            limit = remaining if limit is None else min(limit, remaining)
        self._event.wait(limit)
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        """Raise a ``TIMEOUT`` query error when the context is no longer live."""

        if not self.cancelled:
            return
        if self._event.is_set():
            raise QueryError(ErrorType.TIMEOUT, self._reason or "query cancelled")
        raise QueryError(ErrorType.TIMEOUT, "query deadline exceeded")

    def __repr__(self) -> str:
        return f"QueryContext(cancelled={self.cancelled}, deadline={self.deadline!r})"


def resolve_context(context: Optional[QueryContext]) -> QueryContext:
    """Return ``context`` or a fresh background context when it is ``None``."""

    return context if context is not None else QueryContext.background()
