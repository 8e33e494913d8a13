"""
Engine for building uniform Get/List/Search adapters over remote resource APIs.

Adapters turn provider responses into normalized graph items with typed links to
related items. Import the archetypes from :mod:`graph_adapters.adapters` and the
building blocks (items, errors, cache, rate limiter) from
:mod:`graph_adapters.core`.
"""

from .adapters import AlwaysGetAdapter, DescribeOnlyAdapter, GetListAdapter
from .core import ErrorType, Item, LinkedItemQuery, Query, QueryContext, QueryError, QueryMethod

__version__ = "0.1.0"

__all__ = [
    "AlwaysGetAdapter",
    "DescribeOnlyAdapter",
    "ErrorType",
    "GetListAdapter",
    "Item",
    "LinkedItemQuery",
    "Query",
    "QueryContext",
    "QueryError",
    "QueryMethod",
]
