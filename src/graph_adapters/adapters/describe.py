"""
Adapter archetype for APIs with a single "describe" call.

Many provider APIs expose one endpoint that returns full resource details and
accepts an optional filter: with a filter it acts as a get, without one it lists
everything. :class:`DescribeOnlyAdapter` drives such an endpoint for all three
query methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from ..core.context import QueryContext, resolve_context
from ..core.errors import ErrorType, QueryError
from ..core.models import Item, QueryMethod
from ..core.pagination import Paginator
from .base import ResourceAdapter, ThrottledPaginator

DescribeFunc = Callable[[QueryContext, Any, Any], Any]
OutputMapper = Callable[[str, Any], Iterable[Item]]
PaginatorBuilder = Callable[[Any, Any], Paginator[Any]]


@dataclass(kw_only=True, eq=False)
class DescribeOnlyAdapter(ResourceAdapter):
    """
    Adapter built around one describe call.

    Parameters
    ----------
    describe_func:
        ``describe_func(context, client, input)`` calling the upstream API.
    input_mapper_get:
        ``input_mapper_get(scope, query)`` building a filtered describe input.
    input_mapper_list:
        ``input_mapper_list(scope)`` building an unfiltered describe input.
    output_mapper:
        ``output_mapper(scope, output)`` turning one response into items.
    paginator_builder:
        Optional ``paginator_builder(client, input)``. When set, list pages
        through the describe results instead of calling ``describe_func`` once.
    """

    describe_func: Optional[DescribeFunc] = None
    input_mapper_get: Optional[Callable[[str, str], Any]] = None
    input_mapper_list: Optional[Callable[[str], Any]] = None
    output_mapper: Optional[OutputMapper] = None
    paginator_builder: Optional[PaginatorBuilder] = None

    @property
    def paginated(self) -> bool:
        return self.paginator_builder is not None

    def validate(self) -> None:
        super().validate()
        if self.describe_func is None:
            raise ValueError("describe_func is not set")
        if self.input_mapper_get is None:
            raise ValueError("input_mapper_get is not set")
        if self.input_mapper_list is None:
            raise ValueError("input_mapper_list is not set")
        if self.output_mapper is None:
            raise ValueError("output_mapper is not set")

    def _describe(self, context: QueryContext, scope: str, describe_input: Any) -> List[Item]:
        self._throttle(context)
        output = self.describe_func(context, self.client, describe_input)
        return list(self.output_mapper(scope, output))

    def _get_upstream(self, context: QueryContext, scope: str, query: str) -> List[Item]:
        items = self._describe(context, scope, self.input_mapper_get(scope, query))
        if not items:
            raise QueryError(ErrorType.NOTFOUND, f"{self.item_type} {query} not found", scope=scope)
        if len(items) > 1:
            names = ", ".join(item.globally_unique_name for item in items)
            raise QueryError(ErrorType.OTHER, f"request returned more than one item for a GET request: {names}", scope=scope)
        return items

    def _list_upstream(self, context: QueryContext, scope: str) -> List[Item]:
        list_input = self.input_mapper_list(scope)
        if not self.paginated:
            return self._describe(context, scope, list_input)

        paginator = ThrottledPaginator(self.paginator_builder(self.client, list_input), self._throttle)
        items: List[Item] = []
        while paginator.has_more_pages():
            page = paginator.next_page(context)
            items.extend(self.output_mapper(scope, page))
        return items

    def get(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> Item:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.GET)
        self._ensure_valid()
        items = self._run_cached(QueryMethod.GET, scope, query, ignore_cache, lambda: self._get_upstream(ctx, scope, query))
        return items[0]

    def list(self, scope: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        ctx = resolve_context(context)
        self._check_scope(scope, QueryMethod.LIST)
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
            lambda: self._search_identifier(ctx, scope, query, ignore_cache),
        )
