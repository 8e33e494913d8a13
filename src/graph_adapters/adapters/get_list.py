"""
Adapter archetype for APIs with separate get and list endpoints that both
return full resource details.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from ..core.context import QueryContext, resolve_context
from ..core.errors import ErrorType, QueryError
from ..core.logging import log_query
from ..core.models import Item, QueryMethod
from .base import ResourceAdapter

ItemMapper = Callable[[str, Any], Item]


@dataclass(kw_only=True, eq=False)
class GetListAdapter(ResourceAdapter):
    """
    Adapter backed by a get function and a list function.

    Parameters
    ----------
    get_func:
        ``get_func(context, client, scope, query)`` returning one raw resource,
        or ``None`` when it does not exist.
    list_func:
        ``list_func(context, client, scope)`` returning every raw resource.
    search_func:
        Optional ``search_func(context, client, scope, query)`` returning the raw
        resources matching ``query``. Without it search resolves identifiers.
    item_mapper:
        ``item_mapper(scope, raw)`` converting one raw resource to an item.
    disable_list:
        Make list return an empty result.
    """

    get_func: Optional[Callable[[QueryContext, Any, str, str], Any]] = None
    list_func: Optional[Callable[[QueryContext, Any, str], Iterable[Any]]] = None
    search_func: Optional[Callable[[QueryContext, Any, str, str], Iterable[Any]]] = None
    item_mapper: Optional[ItemMapper] = None
    disable_list: bool = False

    def validate(self) -> None:
        super().validate()
        if self.get_func is None:
            raise ValueError("get_func is not set")
        if not self.disable_list and self.list_func is None:
            raise ValueError("list_func is not set")
        if self.item_mapper is None:
            raise ValueError("item_mapper is not set")

    def _map_items(self, scope: str, raw_items: Iterable[Any]) -> List[Item]:
        items: List[Item] = []
        for raw in raw_items:
            try:
                items.append(self.item_mapper(scope, raw))
            except Exception as exc:
                log_query(self.logger, "Skipping element that failed to map", scope=scope, extra={"error": str(exc)})
        return items

    def _get_upstream(self, context: QueryContext, scope: str, query: str) -> List[Item]:
        self._throttle(context)
        raw = self.get_func(context, self.client, scope, query)
        if raw is None:
            raise QueryError(ErrorType.NOTFOUND, f"{self.item_type} {query} not found", scope=scope)
        return [self.item_mapper(scope, raw)]

    def _list_upstream(self, context: QueryContext, scope: str) -> List[Item]:
        self._throttle(context)
        return self._map_items(scope, self.list_func(context, self.client, scope))

    def _search_upstream(self, context: QueryContext, scope: str, query: str, ignore_cache: bool) -> List[Item]:
        if self.search_func is None:
            return self._search_identifier(context, scope, query, ignore_cache)
        self._throttle(context)
        return self._map_items(scope, self.search_func(context, self.client, scope, query))

    def get(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> Item:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.GET)
        self._ensure_valid()
        items = self._run_cached(QueryMethod.GET, scope, query, ignore_cache, lambda: self._get_upstream(ctx, scope, query))
        return items[0]

    def list(self, scope: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.LIST)
        if self.disable_list:
            return []
        self._ensure_valid()
        return self._run_cached(QueryMethod.LIST, scope, "", ignore_cache, lambda: self._list_upstream(ctx, scope))

    def search(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.SEARCH)
        self._ensure_valid()
        return self._run_cached(
            QueryMethod.SEARCH,
            scope,
            query,
            ignore_cache,
            lambda: self._search_upstream(ctx, scope, query, ignore_cache),
        )
