"""
Resource identifier and scope helpers.

Identifiers follow the six-section layout
``scheme:partition:service:region:account:resource``. The resource section may
itself contain ``:`` characters (``task-definition/app:1``), so only the first
five separators are significant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import ErrorType, QueryError

GLOBAL_SCOPE = "global"
_SECTION_COUNT = 6


class IdentifierParseError(ValueError):
    """Raised when a string is not a well-formed resource identifier."""


@dataclass(frozen=True, slots=True)
class Identifier:
    """Parsed representation of a resource identifier."""

    scheme: str
    partition: str
    service: str
    region: str
    account_id: str
    resource: str

    @property
    def resource_type(self) -> str:
        """Leading type token of the resource section, empty when there is none."""

        cut = _first_separator(self.resource)
        if cut is None:
            return ""
        return self.resource[:cut]

    @property
    def resource_id(self) -> str:
        """
        Resource section without its leading type token.

        ``task-definition/app:1`` yields ``app:1`` and ``bucket-name`` yields
        ``bucket-name``.
        """

        cut = _first_separator(self.resource)
        if cut is None:
            return self.resource
        return self.resource[cut + 1 :]

    @property
    def scope(self) -> str:
        return format_scope(self.account_id, self.region)

    def __str__(self) -> str:
        return ":".join((self.scheme, self.partition, self.service, self.region, self.account_id, self.resource))


def _first_separator(resource: str) -> Optional[int]:
    positions = [index for index in (resource.find("/"), resource.find(":")) if index >= 0]
    return min(positions) if positions else None


def parse_identifier(value: str) -> Identifier:
    """
    Parse ``value`` into an :class:`Identifier`.

    Raises
    ------
    IdentifierParseError
        If the string does not have six sections or a mandatory section is empty.
    """

    sections = value.split(":", _SECTION_COUNT - 1)
    if len(sections) != _SECTION_COUNT:
        raise IdentifierParseError(f"identifier '{value}' must have {_SECTION_COUNT} ':'-separated sections")
    scheme, partition, service, region, account_id, resource = sections
    for label, section in (("scheme", scheme), ("partition", partition), ("service", service), ("resource", resource)):
        if not section:
            raise IdentifierParseError(f"identifier '{value}' has an empty {label} section")
    return Identifier(scheme=scheme, partition=partition, service=service, region=region, account_id=account_id, resource=resource)


def format_scope(account_id: str, region: str = "") -> str:
    """Return ``account.region``, or the bare account when the region is empty."""

    if not region:
        return account_id
    return f"{account_id}.{region}"


def validate_scope(requested: str, actual: str) -> None:
    """Raise ``NOSCOPE`` when ``requested`` is not the scope an adapter serves."""

    if requested != actual:
        raise QueryError(ErrorType.NOSCOPE, f"requested scope {requested} does not match adapter scope {actual}", scope=requested)
