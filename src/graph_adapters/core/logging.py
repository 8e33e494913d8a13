"""
Centralised logging helpers for the adapter engine.

The helpers provide a thin wrapper over :mod:`logging` that keeps configuration
deterministic while letting adapters attach structured query metadata (adapter
name, method, scope, cache outcome) to every record. Modules should obtain
loggers via :func:`get_logger` instead of instantiating their own handlers so
output stays consistent across adapters.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from copy import copy
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "WARNING"
_ENV_LEVEL = "GRAPH_ADAPTERS_LOG_LEVEL"
_ENV_COLOR = "GRAPH_ADAPTERS_LOG_COLOR"
_EXTRA_FOCUS_ORDER: Sequence[str] = (
    "adapter",
    "method",
    "scope",
    "query",
    "cache",
    "items",
    "error",
    "error_type",
    "input",
    "duration",
    "wait",
    "tags",
)

_LEVEL_STYLES = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[95m",  # Bright magenta
}
_RESET = "\033[0m"

_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_configured = False


def _resolve_level(level: Optional[int | str]) -> int:
    if isinstance(level, int):
        return level
    candidate = (level or os.getenv(_ENV_LEVEL) or DEFAULT_LEVEL).upper()
    resolved = logging.getLevelName(candidate)
    return resolved if isinstance(resolved, int) else logging.WARNING


def _coerce_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on", "enabled"}:
        return True
    if lowered in {"0", "false", "no", "off", "disabled"}:
        return False
    return None


def _supports_color(stream: Any) -> bool:
    preference = os.getenv(_ENV_COLOR)
    if preference:
        resolved = _coerce_bool(preference)
        if resolved is not None:
            return resolved
    return hasattr(stream, "isatty") and bool(stream.isatty())


def _iter_extras(record: logging.LogRecord) -> Iterable[tuple[str, Any]]:
    payload = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS and not key.startswith("_") and value is not None}

    for key in _EXTRA_FOCUS_ORDER:
        if key in payload:
            yield key, payload.pop(key)

    for key in sorted(payload):
        yield key, payload[key]


def _format_extra_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        return "[" + ", ".join(_format_extra_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except TypeError:
            return repr(dict(value))
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends structured extras and supports optional colour output."""

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        working = copy(record)
        if self.use_color:
            working.levelname = self._colourise_level(working.levelname)
        base = super().format(working)
        extras = " ".join(f"{key}={_format_extra_value(value)}" for key, value in _iter_extras(record))
        if extras:
            return f"{base} | {extras}"
        return base

    @staticmethod
    def _colourise_level(levelname: str) -> str:
        style = _LEVEL_STYLES.get(levelname.strip().upper())
        if not style:
            return levelname
        return f"{style}{levelname}{_RESET}"


def _build_handler(level: Optional[int | str]) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(_resolve_level(level))
    handler.setFormatter(StructuredLogFormatter(use_color=_supports_color(handler.stream)))
    return handler


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Configure root logging handlers unless already initialised.

    Parameters
    ----------
    level:
        Optional logging level override. Falls back to ``GRAPH_ADAPTERS_LOG_LEVEL``
        or ``WARNING``.
    force:
        When ``True`` the configuration is reapplied even if previously initialised.
    """

    global _configured
    if _configured and not force:
        return
    logging.basicConfig(level=_resolve_level(level), handlers=[_build_handler(level)], force=force)
    _configured = True


def get_logger(
    name: str,
    *,
    tags: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> LoggerAdapter:
    """
    Return a :class:`logging.LoggerAdapter` carrying static structured metadata.

    Library code does not install handlers; applications call
    :func:`configure_logging` once at startup (the CLI does this).

    Parameters
    ----------
    name:
        Logger namespace, typically ``__name__``.
    tags:
        Optional observability tags attached to the ``extra`` payload.
    extra:
        Additional structured metadata recorded with each log entry, such as the
        adapter name.
    """

    payload: MutableMapping[str, object] = {}
    if tags:
        payload["tags"] = tuple(tags)
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    return LoggerAdapter(logging.getLogger(name), payload)


def _emit_with_extra(
    logger: LoggerAdapter | Logger,
    level: int,
    message: str,
    payload: Optional[Mapping[str, object]],
) -> None:
    if isinstance(logger, LoggerAdapter):
        merged: MutableMapping[str, object] = {}
        if isinstance(logger.extra, Mapping):
            merged.update({key: value for key, value in logger.extra.items() if value is not None})
        if payload:
            merged.update(payload)
        logger.logger.log(level, message, extra=dict(merged) or None)
        return
    logger.log(level, message, extra=dict(payload) if payload else None)


def log_query(
    logger: LoggerAdapter | Logger,
    message: str,
    *,
    method: Optional[str] = None,
    scope: Optional[str] = None,
    query: Optional[str] = None,
    cache: Optional[str] = None,
    level: int = logging.DEBUG,
    extra: Optional[Mapping[str, object]] = None,
) -> None:
    """
    Emit a log record describing one adapter query so operators can follow a
    request through scope checks, cache lookups and upstream calls.
    """

    payload: MutableMapping[str, object] = {}
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    if method:
        payload["method"] = method
    if scope:
        payload["scope"] = scope
    if query:
        payload["query"] = query
    if cache:
        payload["cache"] = cache
    _emit_with_extra(logger, level, message, payload or None)
