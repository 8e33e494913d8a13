"""
Engine settings shared by every adapter built from this package.

Settings are loaded from a TOML file. The lookup order is:

1. Explicit ``GRAPH_ADAPTERS_CONFIG`` environment variable.
2. ``graph-adapters.toml`` in the current working directory.
3. ``.config/graph-adapters.toml`` in the current working directory or the
   project root.

Individual values can then be overridden with ``GRAPH_ADAPTERS_MAX_PARALLEL``
and ``GRAPH_ADAPTERS_CACHE_DURATION``. Call :func:`load_settings` to obtain an
:class:`EngineSettings` instance.

Example file::

    [engine]
    cache_duration = 1800
    max_parallel = 8
    max_results_per_page = 100

    [rate_limit]
    max_capacity = 50
    refill_rate = 10
    refill_duration = 1.0
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from .core.cache import DEFAULT_CACHE_DURATION
from .core.fanout import DEFAULT_MAX_PARALLEL
from .core.ratelimit import DEFAULT_REFILL_DURATION, LimitBucket

DEFAULT_MAX_RESULTS_PER_PAGE = 100
CONFIG_FILENAME = "graph-adapters.toml"
_ENV_CONFIG = "GRAPH_ADAPTERS_CONFIG"
_ENV_MAX_PARALLEL = "GRAPH_ADAPTERS_MAX_PARALLEL"
_ENV_CACHE_DURATION = "GRAPH_ADAPTERS_CACHE_DURATION"


class ConfigError(ValueError):
    """Raised when a settings file contains invalid values."""


@dataclass(slots=True)
class RateLimitSettings:
    """Token-bucket parameters for one upstream API."""

    max_capacity: int = 50
    refill_rate: int = 10
    refill_duration: float = DEFAULT_REFILL_DURATION

    def build_bucket(self) -> LimitBucket:
        """Create an unstarted :class:`LimitBucket` from these settings."""

        return LimitBucket(self.max_capacity, self.refill_rate, self.refill_duration)


@dataclass(slots=True)
class EngineSettings:
    """Tunables applied to adapters at construction time."""

    source_path: Optional[Path] = None
    cache_duration: float = DEFAULT_CACHE_DURATION
    max_parallel: int = DEFAULT_MAX_PARALLEL
    max_results_per_page: int = DEFAULT_MAX_RESULTS_PER_PAGE
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": str(self.source_path) if self.source_path else None,
            "cache_duration": self.cache_duration,
            "max_parallel": self.max_parallel,
            "max_results_per_page": self.max_results_per_page,
            "rate_limit": {
                "max_capacity": self.rate_limit.max_capacity,
                "refill_rate": self.rate_limit.refill_rate,
                "refill_duration": self.rate_limit.refill_duration,
            },
        }


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(_ENV_CONFIG)
    if env_override:
        yield Path(env_override).expanduser()

    cwd = Path.cwd()
    yield cwd / CONFIG_FILENAME
    yield cwd / ".config" / CONFIG_FILENAME

    project_root = _discover_project_root()
    if project_root and project_root != cwd:
        yield project_root / ".config" / CONFIG_FILENAME


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name, {})
    return section if isinstance(section, Mapping) else {}


def _positive_number(value: Any, *, key: str, kind: type) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting '{key}' must be a number, got {value!r}.") from exc
    if number <= 0:
        raise ConfigError(f"Setting '{key}' must be positive, got {value!r}.")
    return number


def _extract_settings(raw: Mapping[str, Any], source_path: Optional[Path]) -> EngineSettings:
    engine = _section(raw, "engine")
    limits = _section(raw, "rate_limit")
    settings = EngineSettings(source_path=source_path)
    if "cache_duration" in engine:
        settings.cache_duration = _positive_number(engine["cache_duration"], key="engine.cache_duration", kind=float)
    if "max_parallel" in engine:
        settings.max_parallel = _positive_number(engine["max_parallel"], key="engine.max_parallel", kind=int)
    if "max_results_per_page" in engine:
        settings.max_results_per_page = _positive_number(engine["max_results_per_page"], key="engine.max_results_per_page", kind=int)
    if "max_capacity" in limits:
        settings.rate_limit.max_capacity = _positive_number(limits["max_capacity"], key="rate_limit.max_capacity", kind=int)
    if "refill_rate" in limits:
        settings.rate_limit.refill_rate = _positive_number(limits["refill_rate"], key="rate_limit.refill_rate", kind=int)
    if "refill_duration" in limits:
        settings.rate_limit.refill_duration = _positive_number(limits["refill_duration"], key="rate_limit.refill_duration", kind=float)
    return settings


def _apply_env_overrides(settings: EngineSettings) -> EngineSettings:
    max_parallel = os.getenv(_ENV_MAX_PARALLEL)
    if max_parallel:
        settings.max_parallel = _positive_number(max_parallel, key=_ENV_MAX_PARALLEL, kind=int)
    cache_duration = os.getenv(_ENV_CACHE_DURATION)
    if cache_duration:
        settings.cache_duration = _positive_number(cache_duration, key=_ENV_CACHE_DURATION, kind=float)
    return settings


def load_settings(strict: bool = False) -> EngineSettings:
    """
    Load engine settings from the configured locations.

    Parameters
    ----------
    strict:
        When ``True`` the function raises ``FileNotFoundError`` if no settings
        file is discovered. Defaults to ``False`` so adapters work out of the box
        with built-in defaults.
    """

    for path in _candidate_paths():
        if path.is_file():
            return _apply_env_overrides(_extract_settings(_load_toml(path), path))

    if strict:
        raise FileNotFoundError(f"No settings file found. Configure {_ENV_CONFIG} or ./{CONFIG_FILENAME}.")

    return _apply_env_overrides(EngineSettings())
