"""
Normalized graph item representation produced by adapters.

Items are constructed fresh on every upstream fetch and never mutated
afterwards; the mapping fields are exposed as read-only views so an item shared
through the result cache cannot be altered by one of its readers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence


class QueryMethod(str, Enum):
    """Query verbs supported by every adapter."""

    GET = "GET"
    LIST = "LIST"
    SEARCH = "SEARCH"


class Health(str, Enum):
    """Optional health signal attached to an item."""

    UNKNOWN = "UNKNOWN"
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"
    PENDING = "PENDING"


@dataclass(frozen=True, slots=True)
class Query:
    """Coordinates of a Get/List/Search request against one type and scope."""

    type: str
    method: QueryMethod
    query: str
    scope: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "method": self.method.value, "query": self.query, "scope": self.scope}


@dataclass(frozen=True, slots=True)
class BlastPropagation:
    """
    Direction in which a change can ripple between two linked items.

    Attributes
    ----------
    in_:
        A change to the linked item can affect this item.
    out:
        A change to this item can affect the linked item.
    """

    in_: bool
    out: bool


@dataclass(frozen=True, slots=True)
class LinkedItemQuery:
    """Declarative pointer from one item to related items."""

    query: Query
    blast_propagation: BlastPropagation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query.to_dict(),
            "blast_propagation": {"in": self.blast_propagation.in_, "out": self.blast_propagation.out},
        }


@dataclass(frozen=True, slots=True)
class Item:
    """
    A single resource in normalized form.

    Parameters
    ----------
    type:
        Item type tag such as ``ecs-cluster``.
    unique_attribute:
        Name of the attribute that identifies the item within its scope.
    attributes:
        Ordered mapping of attribute names to values. Must contain a non-empty
        value for ``unique_attribute``.
    scope:
        Scope the item belongs to, usually ``{account}.{region}``.
    tags:
        Provider tags attached to the resource.
    linked_item_queries:
        Outbound links to related items.
    health:
        Optional health signal.
    """

    type: str
    unique_attribute: str
    attributes: Mapping[str, Any]
    scope: str
    tags: Mapping[str, str] = field(default_factory=dict)
    linked_item_queries: Sequence[LinkedItemQuery] = field(default_factory=tuple)
    health: Optional[Health] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "tags", MappingProxyType({str(key): str(value) for key, value in self.tags.items()}))
        object.__setattr__(self, "linked_item_queries", tuple(self.linked_item_queries))
        value = self.attributes.get(self.unique_attribute)
        if value is None or str(value) == "":
            raise ValueError(f"{self.type} item is missing a value for unique attribute '{self.unique_attribute}'")

    def __hash__(self) -> int:
        return hash(self.globally_unique_name)

    @property
    def unique_attribute_value(self) -> str:
        return str(self.attributes[self.unique_attribute])

    @property
    def globally_unique_name(self) -> str:
        """Name that is unique across every scope and type."""

        return f"{self.scope}.{self.type}.{self.unique_attribute_value}"

    def reference(self) -> Query:
        """Return a GET query that resolves back to this item."""

        return Query(type=self.type, method=QueryMethod.GET, query=self.unique_attribute_value, scope=self.scope)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "unique_attribute": self.unique_attribute,
            "scope": self.scope,
            "attributes": dict(self.attributes),
            "tags": dict(self.tags),
            "linked_item_queries": [link.to_dict() for link in self.linked_item_queries],
        }
        if self.health is not None:
            payload["health"] = self.health.value
        return payload
