"""
Discovery service routing queries to the adapters that can answer them.

The service is the single entry point used by the CLI and by graph consumers. It
holds the adapters configured for a process plus the optional metadata registry,
and fans a :class:`~graph_adapters.core.models.Query` out to every adapter whose
type and scope match. ``"*"`` matches any type or scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import List, Optional, Sequence, Tuple

from ..adapters.base import Adapter
from ..core.context import QueryContext, resolve_context
from ..core.errors import ErrorType, QueryError, wrap_error
from ..core.logging import get_logger, log_query
from ..core.models import Item, Query, QueryMethod
from ..core.registry import AdapterRegistry

WILDCARD = "*"


@dataclass(slots=True)
class QueryResult:
    """Items gathered for one query plus the errors individual adapters raised."""

    items: List[Item] = field(default_factory=list)
    errors: List[QueryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(slots=True)
class DiscoveryService:
    """
    Route queries to adapters.

    Parameters
    ----------
    adapters:
        Adapters available to the service, in registration order. Registration
        order breaks ties between adapters of equal weight.
    registry:
        Optional metadata registry. When given, adapters are skipped for query
        methods their item type does not declare.
    """

    adapters: Sequence[Adapter] = field(default_factory=tuple)
    registry: Optional[AdapterRegistry] = None
    logger: LoggerAdapter = field(init=False, repr=False)
    _adapters: List[Adapter] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(self.__class__.__name__)
        self._adapters = []
        for adapter in self.adapters:
            self.add_adapter(adapter)

    def add_adapter(self, adapter: Adapter) -> None:
        """Append ``adapter``; later adapters lose weight ties to earlier ones."""

        if self.registry is not None and adapter.type not in self.registry:
            log_query(self.logger, "Adapter type is not in the registry", extra={"adapter": adapter.name, "type": adapter.type})
        self._adapters.append(adapter)

    def item_types(self) -> List[str]:
        return sorted({adapter.type for adapter in self._adapters})

    def scopes(self) -> List[str]:
        return sorted({scope for adapter in self._adapters for scope in adapter.scopes()})

    def _supports(self, adapter: Adapter, method: QueryMethod) -> bool:
        if self.registry is None:
            return True
        metadata = self.registry.get(adapter.type)
        return metadata is None or metadata.supports(method)

    def adapters_for(self, item_type: str, scope: str, method: Optional[QueryMethod] = None) -> List[Tuple[Adapter, str]]:
        """
        Return ``(adapter, scope)`` pairs matching ``item_type`` and ``scope``.

        A wildcard scope expands to the adapter's own scope.
        """

        matches: List[Tuple[Adapter, str]] = []
        for adapter in self._adapters:
            if item_type != WILDCARD and adapter.type != item_type:
                continue
            if method is not None and not self._supports(adapter, method):
                continue
            adapter_scope = adapter.scopes()[0]
            if scope == WILDCARD:
                matches.append((adapter, adapter_scope))
            elif scope in adapter.scopes():
                matches.append((adapter, scope))
        return matches

    def execute(self, query: Query, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> QueryResult:
        """
        Run ``query`` against every matching adapter.

        GET returns the item from the highest-weight adapter that succeeded,
        ties going to the adapter registered first; failures from the other
        adapters are dropped once a winner exists. LIST and SEARCH concatenate
        every adapter's items. Adapter errors are collected, never raised.
        """

        ctx = resolve_context(context)
        matches = self.adapters_for(query.type, query.scope, query.method)
        if not matches:
            error = QueryError(ErrorType.NOSCOPE, f"no adapter for type {query.type} in scope {query.scope}", scope=query.scope, item_type=query.type)
            return QueryResult(errors=[error])

        if query.method is QueryMethod.GET:
            return self._execute_get(query, matches, ignore_cache, ctx)

        result = QueryResult()
        for adapter, scope in matches:
            try:
                if query.method is QueryMethod.LIST:
                    result.items.extend(adapter.list(scope, ignore_cache=ignore_cache, context=ctx))
                else:
                    result.items.extend(adapter.search(scope, query.query, ignore_cache=ignore_cache, context=ctx))
            except Exception as exc:
                result.errors.append(wrap_error(exc, scope=scope, adapter_name=adapter.name, item_type=adapter.type))
        log_query(
            self.logger,
            "Query finished",
            method=query.method.value,
            scope=query.scope,
            query=query.query or None,
            extra={"items": len(result.items), "error": len(result.errors) or None},
        )
        return result

    def _execute_get(self, query: Query, matches: List[Tuple[Adapter, str]], ignore_cache: bool, ctx: QueryContext) -> QueryResult:
        ranked = sorted(matches, key=lambda match: -match[0].weight)
        errors: List[QueryError] = []
        for adapter, scope in ranked:
            try:
                item = adapter.get(scope, query.query, ignore_cache=ignore_cache, context=ctx)
            except Exception as exc:
                errors.append(wrap_error(exc, scope=scope, adapter_name=adapter.name, item_type=adapter.type))
                continue
            log_query(self.logger, "Query finished", method=query.method.value, scope=scope, query=query.query, extra={"adapter": adapter.name})
            return QueryResult(items=[item])
        return QueryResult(errors=errors)
