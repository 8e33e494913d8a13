"""
Base protocol and shared plumbing for adapter archetypes.

Every adapter answers Get, List and Search for exactly one item type in exactly
one scope. The archetypes in this package only differ in how they talk to the
upstream API; scope checks, validation, caching, negative caching and rate
limiting all live here so they behave identically everywhere.

Each public call follows the same order:

1. reject foreign scopes with ``NOSCOPE`` before anything else runs,
2. validate the configured collaborators,
3. consult the result cache,
4. call upstream and store the outcome.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from ..config import EngineSettings
from ..core.cache import DEFAULT_CACHE_DURATION, CacheKey, CacheLookup, ResultCache
from ..core.context import QueryContext
from ..core.errors import ErrorType, QueryError, wrap_error
from ..core.identifiers import GLOBAL_SCOPE, IdentifierParseError, format_scope, parse_identifier, validate_scope
from ..core.logging import get_logger, log_query
from ..core.models import Item, QueryMethod
from ..core.pagination import Paginator
from ..core.ratelimit import LimitBucket

DEFAULT_WEIGHT = 100


@runtime_checkable
class Adapter(Protocol):
    """Protocol implemented by every adapter archetype."""

    @property
    def type(self) -> str:
        """Item type this adapter produces."""

    @property
    def name(self) -> str:
        """Unique adapter name, used in cache keys and logs."""

    @property
    def weight(self) -> int:
        """Priority used to pick a winner when several adapters answer a GET."""

    def scopes(self) -> List[str]:
        """Scopes this adapter can answer for."""

    def get(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> Item:
        """Return exactly one item or raise a :class:`QueryError`."""

    def list(self, scope: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        """Return every item in ``scope``."""

    def search(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        """Return the items matching ``query``."""


class ThrottledPaginator:
    """Paginator wrapper that acquires a rate-limit token before every page."""

    def __init__(self, paginator: Paginator[Any], throttle: Callable[[QueryContext], None]) -> None:
        self._paginator = paginator
        self._throttle = throttle

    def has_more_pages(self) -> bool:
        return self._paginator.has_more_pages()

    def next_page(self, context: QueryContext) -> Any:
        self._throttle(context)
        return self._paginator.next_page(context)


@dataclass(kw_only=True, eq=False)
class ResourceAdapter:
    """
    Shared state and behaviour for all archetypes.

    Parameters
    ----------
    item_type:
        Type of the items returned, e.g. ``ecs-task-definition``.
    account_id:
        Provider account the adapter is bound to.
    region:
        Provider region. Empty for account-wide resources.
    client:
        Opaque upstream client handed to every collaborator.
    cache_duration:
        Seconds a result (or cacheable error) stays in the cache.
    rate_limit:
        Optional bucket acquired before every upstream call. Leave unset when the
        ``client`` already holds a bucket; configuring both is rejected by
        :meth:`validate`.
    global_resource:
        When ``True`` the adapter answers for :data:`GLOBAL_SCOPE` instead of
        ``account.region``.
    """

    item_type: str
    account_id: str = ""
    region: str = ""
    client: Any = None
    cache_duration: float = DEFAULT_CACHE_DURATION
    rate_limit: Optional[LimitBucket] = None
    global_resource: bool = False
    logger: LoggerAdapter = field(init=False, repr=False)
    _cache: Optional[ResultCache] = field(default=None, init=False, repr=False)
    _cache_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"adapter": self.name},
        )

    @classmethod
    def _settings_options(cls, settings: EngineSettings) -> Dict[str, Any]:
        return {"cache_duration": settings.cache_duration}

    @classmethod
    def from_settings(cls, settings: EngineSettings, **kwargs: Any) -> "ResourceAdapter":
        """
        Build an adapter whose tunables come from loaded engine settings.

        Keyword arguments are passed to the constructor and win over values
        taken from ``settings``. The rate-limit bucket is not built here: it
        belongs on the upstream client (see
        :meth:`~graph_adapters.adapters.api.base.ResourceAPIClient.from_settings`)
        or is passed explicitly as ``rate_limit``.
        """

        options = cls._settings_options(settings)
        options.update(kwargs)
        return cls(**options)

    @property
    def type(self) -> str:
        return self.item_type

    @property
    def name(self) -> str:
        return f"{self.item_type}-adapter"

    @property
    def weight(self) -> int:
        return DEFAULT_WEIGHT

    def scopes(self) -> List[str]:
        if self.global_resource:
            return [GLOBAL_SCOPE]
        return [format_scope(self.account_id, self.region)]

    @property
    def cache(self) -> ResultCache:
        """Result cache, created on first use."""

        if self._cache is None:
            with self._cache_lock:
                if self._cache is None:
                    self._cache = ResultCache()
        return self._cache

    def validate(self) -> None:
        """
        Check that the adapter is fully configured.

        Subclasses extend this with their collaborator checks and raise
        ``ValueError`` describing the first problem found.
        """

        if not self.item_type:
            raise ValueError("item_type is empty")
        if not self.global_resource and not self.account_id:
            raise ValueError("account_id is empty")
        if self.rate_limit is not None and getattr(self.client, "rate_limit", None) is not None:
            raise ValueError("rate_limit is set on both the adapter and its client; keep one bucket per upstream call")

    def _annotate(self, error: QueryError) -> QueryError:
        return wrap_error(error, adapter_name=self.name, item_type=self.item_type)

    def _check_scope(self, scope: str, method: QueryMethod) -> None:
        try:
            validate_scope(scope, self.scopes()[0])
        except QueryError as exc:
            log_query(self.logger, "Rejected query for foreign scope", method=method.value, scope=scope)
            raise self._annotate(exc)

    def _ensure_valid(self) -> None:
        try:
            self.validate()
        except QueryError as exc:
            raise self._annotate(exc)
        except Exception as exc:
            raise QueryError(
                ErrorType.OTHER,
                f"{self.name} is misconfigured: {exc}",
                adapter_name=self.name,
                item_type=self.item_type,
            ) from exc

    def _throttle(self, context: QueryContext) -> None:
        context.raise_if_cancelled()
        if self.rate_limit is not None:
            self.rate_limit.acquire(context)

    def _lookup(self, method: QueryMethod, scope: str, query: str, ignore_cache: bool) -> CacheLookup:
        return self.cache.lookup(self.name, method, scope, self.item_type, query, ignore_cache=ignore_cache)

    def _process_error(self, exc: BaseException, key: CacheKey, scope: str) -> QueryError:
        """Wrap ``exc`` and negative-cache it when the policy allows."""

        error = wrap_error(exc, scope=scope, adapter_name=self.name, item_type=self.item_type)
        stored = self.cache.store_error(error, self.cache_duration, key)
        log_query(
            self.logger,
            "Upstream query failed",
            method=key.method.value,
            scope=scope,
            query=key.query or None,
            cache="stored" if stored else None,
            extra={"error_type": error.error_type.value, "error": error.message},
        )
        return error

    def _run_cached(
        self,
        method: QueryMethod,
        scope: str,
        query: str,
        ignore_cache: bool,
        fetch: Callable[[], List[Item]],
    ) -> List[Item]:
        lookup = self._lookup(method, scope, query, ignore_cache)
        if lookup.hit:
            if lookup.error is not None:
                raise lookup.error
            return lookup.items or []

        started = time.perf_counter()
        try:
            items = fetch()
        except Exception as exc:
            error = self._process_error(exc, lookup.key, scope)
            if error is exc:
                raise
            raise error

        self.cache.store_items(items, self.cache_duration, lookup.key)
        log_query(
            self.logger,
            "Upstream query completed",
            method=method.value,
            scope=scope,
            query=query or None,
            cache="miss",
            extra={"items": len(items), "duration": time.perf_counter() - started},
        )
        return items

    def _search_identifier(self, context: QueryContext, scope: str, query: str, ignore_cache: bool) -> List[Item]:
        """Resolve ``query`` as a resource identifier and delegate to :meth:`get`."""

        try:
            identifier = parse_identifier(query)
        except IdentifierParseError as exc:
            raise QueryError(ErrorType.OTHER, str(exc), scope=scope, adapter_name=self.name, item_type=self.item_type) from exc

        if not self.global_resource and identifier.scope != scope:
            raise QueryError(
                ErrorType.NOSCOPE,
                f"identifier scope {identifier.scope} does not match request scope {scope}",
                scope=scope,
                adapter_name=self.name,
                item_type=self.item_type,
            )
        return [self.get(scope, identifier.resource_id, ignore_cache=ignore_cache, context=context)]

    def get(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> Item:
        raise NotImplementedError

    def list(self, scope: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        raise NotImplementedError

    def search(self, scope: str, query: str, *, ignore_cache: bool = False, context: Optional[QueryContext] = None) -> List[Item]:
        raise NotImplementedError
