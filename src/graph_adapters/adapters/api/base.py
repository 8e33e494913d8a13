"""
Shared HTTP client for JSON REST resource APIs.

The client is the default upstream collaborator for adapters that talk to a REST
API. It keeps the code synchronous, avoids global state, retries transient
transport failures, and maps HTTP failures onto the query error taxonomy so the
adapter's negative cache can act on them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Mapping, MutableMapping, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...config import DEFAULT_MAX_RESULTS_PER_PAGE, EngineSettings
from ...core.context import QueryContext, resolve_context
from ...core.errors import ErrorType, QueryError
from ...core.logging import get_logger, log_query
from ...core.pagination import TokenPaginator
from ...core.ratelimit import LimitBucket

DEFAULT_TIMEOUT = 15.0


class APIError(QueryError):
    """Raised when an HTTP API call fails."""

    def __init__(self, error_type: ErrorType, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(error_type, message)
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        error_type = ErrorType.NOTFOUND if response.status_code == 404 else ErrorType.OTHER
        request = response.request
        return cls(
            error_type,
            f"HTTP {response.status_code} error for {request.method} {request.url}: {response.text}",
            status_code=response.status_code,
        )


@dataclass(slots=True)
class ResourceAPIClient:
    """
    Synchronous HTTP client with retry and optional rate limiting.

    Parameters
    ----------
    base_url:
        Root URL for the upstream service.
    timeout:
        Request timeout in seconds.
    default_headers:
        Headers automatically attached to every request.
    rate_limit:
        Optional bucket acquired once before each request.
    max_results_per_page:
        Page size requested by :meth:`paginate` when a page-size parameter is
        given.
    transport:
        Optional HTTPX transport, mainly for tests.
    """

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    default_headers: MutableMapping[str, str] = field(default_factory=dict)
    rate_limit: Optional[LimitBucket] = None
    max_results_per_page: int = DEFAULT_MAX_RESULTS_PER_PAGE
    transport: Optional[httpx.BaseTransport] = None
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"base_url": self.base_url},
        )

    @classmethod
    def from_settings(
        cls,
        base_url: str,
        settings: EngineSettings,
        *,
        lifetime: Optional[QueryContext] = None,
        **kwargs: Any,
    ) -> "ResourceAPIClient":
        """
        Build a client using the page size and rate limit from ``settings``.

        The rate-limit bucket is created from ``settings.rate_limit`` and its
        refill thread is started immediately, running until ``lifetime`` is
        cancelled. Adapters using this client must not carry a bucket of their
        own.
        """

        if "rate_limit" not in kwargs:
            bucket = settings.rate_limit.build_bucket()
            bucket.start(resolve_context(lifetime))
            kwargs["rate_limit"] = bucket
        kwargs.setdefault("max_results_per_page", settings.max_results_per_page)
        return cls(base_url=base_url, **kwargs)

    def _build_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=dict(self.default_headers),
            follow_redirects=True,
            transport=self.transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise APIError.from_response(response)

    def _request(self, method: str, url: str, *, context: Optional[QueryContext] = None, **kwargs: Any) -> httpx.Response:
        ctx = resolve_context(context)
        ctx.raise_if_cancelled()
        if self.rate_limit is not None:
            self.rate_limit.acquire(ctx)
        log_query(self.logger, "HTTP request", extra={"method": method, "url": url, "params": kwargs.get("params")})

        @retry(
            retry=retry_if_exception_type(httpx.HTTPError),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            stop=stop_after_attempt(3),
            reraise=True,
        )
        def _send() -> httpx.Response:
            ctx.raise_if_cancelled()
            with self._build_client() as client:
                return client.request(method, url, **kwargs)

        try:
            response = _send()
        except httpx.HTTPError as exc:
            log_query(self.logger, "HTTP error during request", level=logging.ERROR, extra={"method": method, "url": url, "error": str(exc)})
            raise APIError(ErrorType.OTHER, f"HTTP error while calling {method} {url}: {exc}") from exc

        self._raise_for_status(response)
        log_query(self.logger, "HTTP response", extra={"status_code": response.status_code, "url": str(response.url)})
        return response

    def get_json(self, path: str, params: Optional[Mapping[str, Any]] = None, context: Optional[QueryContext] = None) -> Any:
        """Issue a GET request and return the decoded JSON body."""

        response = self._request("GET", path, params=params, context=context)
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(ErrorType.OTHER, f"Failed to decode JSON from {response.url}: {exc}", status_code=response.status_code) from exc

    def paginate(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        token_param: str = "next_token",
        token_field: str = "next_token",
        page_size_param: Optional[str] = None,
    ) -> TokenPaginator:
        """
        Return a paginator over a token-paged collection endpoint.

        Each page is the decoded JSON body. The continuation token is read from
        ``token_field`` in the body and sent back as the ``token_param`` query
        parameter.
        """

        base_params = dict(params or {})
        if page_size_param:
            base_params[page_size_param] = self.max_results_per_page

        def _fetch(context: QueryContext, token: Optional[str]) -> Tuple[Any, Optional[str]]:
            query = dict(base_params)
            if token:
                query[token_param] = token
            body = self.get_json(path, params=query, context=context)
            next_token = body.get(token_field) if isinstance(body, Mapping) else None
            return body, str(next_token) if next_token else None

        return TokenPaginator(_fetch)
