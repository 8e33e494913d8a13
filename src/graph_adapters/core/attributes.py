"""Helpers that normalise provider responses into item attribute mappings."""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Dict, Mapping

_WORD_BREAK = re.compile(r"[\s_\-.]+")
_LEADING_CAPS = re.compile(r"^[A-Z]+(?=[A-Z][a-z0-9])|^[A-Z]+$|^[A-Z]")


def camel_case(key: str) -> str:
    """
    Convert ``key`` to lowerCamelCase.

    Leading acronyms are lowered as a unit so ``VPCId`` becomes ``vpcId`` and
    ``ARN`` becomes ``arn``.
    """

    parts = [part for part in _WORD_BREAK.split(key) if part]
    if not parts:
        return key
    head = _LEADING_CAPS.sub(lambda match: match.group(0).lower(), parts[0])
    tail = "".join(part[:1].upper() + part[1:] for part in parts[1:])
    return head + tail


def _normalise(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return {camel_case(str(key)): _normalise(inner) for key, inner in value.items() if inner is not None}
    if isinstance(value, (list, tuple)):
        converted = [_normalise(inner) for inner in value]
        if converted and all(isinstance(inner, str) for inner in converted):
            converted.sort()
        return converted
    return value


def to_attributes(value: Any, *exclusions: str) -> Dict[str, Any]:
    """
    Build an attributes mapping from a provider response.

    Parameters
    ----------
    value:
        Mapping or dataclass instance describing one resource.
    exclusions:
        Top-level keys to drop, given in their final camelCase form.

    Raises
    ------
    TypeError
        If ``value`` does not convert to a mapping.
    """

    normalised = _normalise(value)
    if not isinstance(normalised, dict):
        raise TypeError(f"cannot convert {type(value).__name__} to item attributes")
    for exclusion in exclusions:
        normalised.pop(exclusion, None)
    return normalised
