"""
Adapter archetype for APIs whose list calls only return identifiers.

The list endpoint is paged through to collect get inputs, and every input is
then resolved with the detail endpoint on a bounded worker pool. Search can be
answered through identifiers, through a custom list input, or through a custom
get input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..config import EngineSettings
from ..core.context import QueryContext, resolve_context
from ..core.errors import ErrorType, QueryError
from ..core.fanout import fan_out_gets
from ..core.identifiers import IdentifierParseError, parse_identifier
from ..core.models import Item, QueryMethod
from ..core.pagination import Paginator
from .base import ResourceAdapter, ThrottledPaginator

GetFunc = Callable[[QueryContext, Any, str, Any], Optional[Item]]
ListPaginatorBuilder = Callable[[Any, Any], Paginator[Any]]
ListOutputMapper = Callable[[Any, Any], Iterable[Any]]


def _is_identifier(query: str) -> bool:
    try:
        parse_identifier(query)
    except IdentifierParseError:
        return False
    return True


@dataclass(kw_only=True, eq=False)
class AlwaysGetAdapter(ResourceAdapter):
    """
    Adapter that always resolves items through a get call.

    Parameters
    ----------
    get_func:
        ``get_func(context, client, scope, get_input)`` returning one item, or
        ``None`` when the resource does not exist.
    get_input_mapper:
        ``get_input_mapper(scope, query)`` building the get input for a query.
    list_input:
        Input handed to the list paginator for an unfiltered list.
    list_paginator_builder:
        ``list_paginator_builder(client, list_input)`` returning a paginator
        over list responses.
    list_output_mapper:
        ``list_output_mapper(output, list_input)`` extracting get inputs from
        one list response.
    search_input_mapper:
        Optional ``search_input_mapper(scope, query)`` returning a list input;
        search then behaves like a filtered list.
    search_get_input_mapper:
        Optional ``search_get_input_mapper(scope, query)`` returning a get
        input; search then resolves a single item. Mutually exclusive with
        ``search_input_mapper``.
    always_search_identifiers:
        Try identifier search first whenever the query parses as an identifier.
    disable_list:
        Make list return an empty result. Search is unaffected.
    max_parallel:
        Upper bound on concurrent gets during list. ``None`` uses the default.
    """

    get_func: Optional[GetFunc] = None
    get_input_mapper: Optional[Callable[[str, str], Any]] = None
    list_input: Any = None
    list_paginator_builder: Optional[ListPaginatorBuilder] = None
    list_output_mapper: Optional[ListOutputMapper] = None
    search_input_mapper: Optional[Callable[[str, str], Any]] = None
    search_get_input_mapper: Optional[Callable[[str, str], Any]] = None
    always_search_identifiers: bool = False
    disable_list: bool = False
    max_parallel: Optional[int] = None

    @classmethod
    def _settings_options(cls, settings: EngineSettings) -> Dict[str, Any]:
        options = super()._settings_options(settings)
        options["max_parallel"] = settings.max_parallel
        return options

    def validate(self) -> None:
        super().validate()
        if self.get_func is None:
            raise ValueError("get_func is not set")
        if self.get_input_mapper is None:
            raise ValueError("get_input_mapper is not set")
        if self.search_input_mapper is not None and self.search_get_input_mapper is not None:
            raise ValueError("search_input_mapper and search_get_input_mapper are mutually exclusive")
        if not self.disable_list or self.search_input_mapper is not None:
            if self.list_paginator_builder is None:
                raise ValueError("list_paginator_builder is not set")
            if self.list_output_mapper is None:
                raise ValueError("list_output_mapper is not set")

    def _fetch_one(self, context: QueryContext, scope: str, get_input: Any, query: str) -> Item:
        self._throttle(context)
        item = self.get_func(context, self.client, scope, get_input)
        if item is None:
            raise QueryError(ErrorType.NOTFOUND, f"{self.item_type} {query} not found", scope=scope)
        return item

    def _list_internal(self, context: QueryContext, scope: str, list_input: Any) -> List[Item]:
        paginator = ThrottledPaginator(self.list_paginator_builder(self.client, list_input), self._throttle)
        return fan_out_gets(
            context,
            paginator=paginator,
            descriptor_mapper=lambda page: self.list_output_mapper(page, list_input),
            get=lambda ctx, get_input: self._fetch_one(ctx, scope, get_input, repr(get_input)),
            scope=scope,
            max_parallel=self.max_parallel,
            logger=self.logger,
        )

    def _search_custom(self, context: QueryContext, scope: str, query: str) -> List[Item]:
        if self.search_input_mapper is not None:
            return self._list_internal(context, scope, self.search_input_mapper(scope, query))
        get_input = self.search_get_input_mapper(scope, query)
        return [self._fetch_one(context, scope, get_input, query)]

    def _search_upstream(self, context: QueryContext, scope: str, query: str, ignore_cache: bool) -> List[Item]:
        custom = self.search_input_mapper is not None or self.search_get_input_mapper is not None
        if not custom or (self.always_search_identifiers and _is_identifier(query)):
            return self._search_identifier(context, scope, query, ignore_cache)
        return self._search_custom(context, scope, query)

    def get(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> Item:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.GET)
        self._ensure_valid()
        items = self._run_cached(
            QueryMethod.GET,
            scope,
            query,
            ignore_cache,
            lambda: [self._fetch_one(ctx, scope, self.get_input_mapper(scope, query), query)],
        )
        return items[0]

    def list(self, scope: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.LIST)
        if self.disable_list:
            return []
        self._ensure_valid()
        return self._run_cached(QueryMethod.LIST, scope, "", ignore_cache, lambda: self._list_internal(ctx, scope, self.list_input))

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
