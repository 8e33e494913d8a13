"""
Pagination primitives used by list operations.

Adapters never page through provider results themselves; they are handed a
:class:`Paginator` and drive it until :meth:`Paginator.has_more_pages` reports
``False``.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Iterable, List, Optional, Protocol, Tuple, TypeVar, runtime_checkable

from .context import QueryContext

PageT = TypeVar("PageT")
PageT_co = TypeVar("PageT_co", covariant=True)

TokenFetch = Callable[[QueryContext, Optional[str]], Tuple[Any, Optional[str]]]


@runtime_checkable
class Paginator(Protocol[PageT_co]):
    """Sequential page source."""

    def has_more_pages(self) -> bool:
        ...

    def next_page(self, context: QueryContext) -> PageT_co:
        ...


class PagePaginator(Generic[PageT]):
    """Paginator over a fixed, already materialised list of pages."""

    def __init__(self, pages: Iterable[PageT]) -> None:
        self._pages: List[PageT] = list(pages)
        self._index = 0

    def has_more_pages(self) -> bool:
        return self._index < len(self._pages)

    def next_page(self, context: QueryContext) -> PageT:
        context.raise_if_cancelled()
        if not self.has_more_pages():
            raise StopIteration("no more pages")
        page = self._pages[self._index]
        self._index += 1
        return page


class TokenPaginator:
    """
    Paginator driven by continuation tokens.

    ``fetch(context, token)`` returns ``(page, next_token)``. The first call
    receives ``None``; paging stops once ``next_token`` is empty.
    """

    def __init__(self, fetch: TokenFetch) -> None:
        self._fetch = fetch
        self._token: Optional[str] = None
        self._started = False

    def has_more_pages(self) -> bool:
        return not self._started or bool(self._token)

    def next_page(self, context: QueryContext) -> Any:
        context.raise_if_cancelled()
        page, next_token = self._fetch(context, self._token)
        self._started = True
        self._token = next_token or None
        return page
