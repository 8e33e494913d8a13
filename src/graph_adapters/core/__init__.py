"""
Core infrastructure shared by every adapter archetype.

The package holds the error taxonomy, the cancellation context, the item data
model, identifier helpers, the result cache, the rate limiter and the fan-out
orchestrator. Apart from the YAML-backed registry it depends only on the
standard library.
"""

from .cache import DEFAULT_CACHE_DURATION, CacheKey, CacheLookup, ResultCache
from .context import QueryContext, resolve_context
from .errors import CACHEABLE_ERROR_TYPES, AdapterError, ErrorType, QueryError, wrap_error
from .fanout import DEFAULT_MAX_PARALLEL, fan_out_gets, resolve_max_parallel
from .identifiers import GLOBAL_SCOPE, Identifier, IdentifierParseError, format_scope, parse_identifier, validate_scope
from .logging import configure_logging, get_logger, log_query
from .models import BlastPropagation, Health, Item, LinkedItemQuery, Query, QueryMethod
from .pagination import PagePaginator, Paginator, TokenPaginator
from .ratelimit import LimitBucket
from .registry import AdapterCategory, AdapterMetadata, AdapterRegistry, RegistryFrozenError, RegistryLoadError

__all__ = [
    "AdapterCategory",
    "AdapterError",
    "AdapterMetadata",
    "AdapterRegistry",
    "BlastPropagation",
    "CACHEABLE_ERROR_TYPES",
    "CacheKey",
    "CacheLookup",
    "DEFAULT_CACHE_DURATION",
    "DEFAULT_MAX_PARALLEL",
    "ErrorType",
    "GLOBAL_SCOPE",
    "Health",
    "Identifier",
    "IdentifierParseError",
    "Item",
    "LimitBucket",
    "LinkedItemQuery",
    "PagePaginator",
    "Paginator",
    "Query",
    "QueryContext",
    "QueryError",
    "QueryMethod",
    "RegistryFrozenError",
    "RegistryLoadError",
    "ResultCache",
    "TokenPaginator",
    "configure_logging",
    "fan_out_gets",
    "format_scope",
    "get_logger",
    "log_query",
    "parse_identifier",
    "resolve_context",
    "resolve_max_parallel",
    "validate_scope",
    "wrap_error",
]
