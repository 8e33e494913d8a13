"""
Bounded-concurrency list-then-get fan-out.

Some provider APIs only return identifiers from their list calls, so every
listed resource needs a follow-up get. :func:`fan_out_gets` pages through the
list results on the caller's thread, runs the gets on a worker pool gated by a
semaphore, and gathers finished items on a collector thread. Items arrive in
completion order.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from logging import Logger, LoggerAdapter
from typing import Any, Callable, Iterable, List, Optional

from .context import QueryContext, resolve_context
from .logging import get_logger, log_query
from .models import Item
from .pagination import Paginator

DEFAULT_MAX_PARALLEL = 10
_PERMIT_POLL_INTERVAL = 0.05
_SENTINEL = object()

LOGGER = get_logger(__name__)

DescriptorMapper = Callable[[Any], Iterable[Any]]
GetDescriptor = Callable[[QueryContext, Any], Optional[Item]]


def resolve_max_parallel(value: Optional[int]) -> int:
    """Return ``value`` or :data:`DEFAULT_MAX_PARALLEL` when it is unset or not positive."""

    if not value or value < 1:
        return DEFAULT_MAX_PARALLEL
    return value


def _acquire_permit(permits: threading.Semaphore, context: QueryContext) -> None:
    while not permits.acquire(timeout=_PERMIT_POLL_INTERVAL):
        context.raise_if_cancelled()


def fan_out_gets(
    context: Optional[QueryContext],
    *,
    paginator: Paginator[Any],
    descriptor_mapper: DescriptorMapper,
    get: GetDescriptor,
    scope: str,
    max_parallel: Optional[int] = None,
    logger: Optional[LoggerAdapter | Logger] = None,
) -> List[Item]:
    """
    Page through ``paginator`` and run ``get`` for every descriptor it yields.

    Parameters
    ----------
    context:
        Cancellation token, checked between pages and while waiting for a permit.
    paginator:
        Source of list pages.
    descriptor_mapper:
        Maps one list page to the get descriptors it contains.
    get:
        ``get(context, descriptor)`` returning the detailed item.
    scope:
        Scope recorded alongside per-item failures.
    max_parallel:
        Maximum number of gets in flight. ``None`` or ``0`` means
        :data:`DEFAULT_MAX_PARALLEL`.
    logger:
        Logger used for per-item failures.

    Returns
    -------
    list[Item]
        Every item whose get succeeded. Failed gets are logged and omitted.

    Raises
    ------
    Exception
        Whatever the paginator or descriptor mapper raised. Pending gets are
        cancelled before the error propagates.
    QueryError
        ``TIMEOUT`` when ``context`` is cancelled before every get has finished,
        so a truncated result is never returned.
    """

    ctx = resolve_context(context)
    log = logger or LOGGER
    limit = resolve_max_parallel(max_parallel)
    permits = threading.BoundedSemaphore(limit)
    results: "queue.Queue[Any]" = queue.Queue()
    items: List[Item] = []
    collected = threading.Event()

    def _collect() -> None:
        while True:
            entry = results.get()
            if entry is _SENTINEL:
                break
            items.append(entry)
        collected.set()

    def _work(descriptor: Any) -> None:
        try:
            item = get(ctx, descriptor)
            if item is not None:
                results.put(item)
        except Exception as exc:
            log_query(
                log,
                "Error running get for list item",
                scope=scope,
                level=logging.ERROR,
                extra={"error": str(exc), "input": repr(descriptor)},
            )
        finally:
            permits.release()

    collector = threading.Thread(target=_collect, name="fanout-collector", daemon=True)
    collector.start()
    executor = ThreadPoolExecutor(max_workers=limit, thread_name_prefix="fanout-get")
    try:
        while paginator.has_more_pages():
            ctx.raise_if_cancelled()
            page = paginator.next_page(ctx)
            for descriptor in descriptor_mapper(page):
                _acquire_permit(permits, ctx)
                executor.submit(_work, descriptor)
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        results.put(_SENTINEL)
        raise

    executor.shutdown(wait=True)
    results.put(_SENTINEL)
    collected.wait()
    # Gets cancelled in flight were dropped as per-item failures.
    ctx.raise_if_cancelled()
    return items
