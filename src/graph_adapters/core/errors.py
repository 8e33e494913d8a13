"""
Error taxonomy shared by adapters, the result cache, and the orchestrator.

Every public adapter call either returns a result or raises exactly one
:class:`QueryError`. Consumers branch on :attr:`QueryError.error_type` to decide
whether to retry, escalate, or silently skip.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class AdapterError(RuntimeError):
    """Base class for all errors raised by the adapter engine."""


class ErrorType(str, Enum):
    """Kinds of query failure understood by the graph consumer."""

    NOSCOPE = "NOSCOPE"
    NOTFOUND = "NOTFOUND"
    OTHER = "OTHER"
    TIMEOUT = "TIMEOUT"


# Outcomes that will not change by retrying, and are therefore safe to cache.
CACHEABLE_ERROR_TYPES = frozenset({ErrorType.NOTFOUND, ErrorType.NOSCOPE})


class QueryError(AdapterError):
    """
    Typed failure of a single Get, List or Search call.

    Parameters
    ----------
    error_type:
        Classification of the failure.
    message:
        Human-readable explanation.
    scope:
        Scope the failing query targeted, when known.
    adapter_name:
        Name of the adapter that produced the error.
    item_type:
        Item type the query asked for.
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        *,
        scope: Optional[str] = None,
        adapter_name: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.error_type = ErrorType(error_type)
        self.message = message
        self.scope = scope
        self.adapter_name = adapter_name
        self.item_type = item_type

    @property
    def cacheable(self) -> bool:
        """Whether the negative-cache policy allows this error to be stored."""

        return self.error_type in CACHEABLE_ERROR_TYPES

    def __repr__(self) -> str:
        return f"QueryError(error_type={self.error_type.value}, message={self.message!r}, scope={self.scope!r})"

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"


def wrap_error(exc: BaseException, *, scope: Optional[str] = None, adapter_name: Optional[str] = None, item_type: Optional[str] = None) -> QueryError:
    """
    Convert any exception into a :class:`QueryError`.

    Errors that are already typed pass through untouched; everything else is
    reported as ``OTHER`` with the original exception chained as the cause.
    """

    if isinstance(exc, QueryError):
        if exc.scope is None:
            exc.scope = scope
        if exc.adapter_name is None:
            exc.adapter_name = adapter_name
        if exc.item_type is None:
            exc.item_type = item_type
        return exc
    wrapped = QueryError(ErrorType.OTHER, str(exc) or exc.__class__.__name__, scope=scope, adapter_name=adapter_name, item_type=item_type)
    wrapped.__cause__ = exc
    return wrapped
