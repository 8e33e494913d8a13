"""
Adapter metadata registry.

The registry is the catalogue of every item type the engine knows how to
produce: a human-readable name, a category, the query methods it supports and
the item types it can link to. It is built once at startup, frozen, and handed
to whoever needs it (the discovery service, the CLI). Nothing reads it through
a module global.

Descriptors are maintained in YAML so adding a type does not require touching
Python code.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, MutableMapping, Optional, Sequence

import yaml

from .models import QueryMethod

_KEBAB_CASE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


class RegistryLoadError(RuntimeError):
    """Raised when registry metadata cannot be parsed or validated."""


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a registry that has been frozen."""


class AdapterCategory(str, Enum):
    """Broad classification of the resources an adapter produces."""

    COMPUTE = "compute"
    NETWORK = "network"
    STORAGE = "storage"
    DATABASE = "database"
    SECURITY = "security"
    CONFIGURATION = "configuration"
    OBSERVABILITY = "observability"
    OTHER = "other"


@dataclass(slots=True)
class AdapterMetadata:
    """
    Descriptive metadata for one item type.

    Parameters
    ----------
    item_type:
        Kebab-case item type, e.g. ``ecs-task-definition``.
    descriptive_name:
        Human-friendly display name.
    category:
        Resource category used for filtering.
    supported_methods:
        Query methods the adapter answers.
    get_description, list_description, search_description:
        Short usage notes per method. A search description is required when
        ``SEARCH`` is supported.
    potential_links:
        Item types this type may link to.
    tags:
        Keywords for quick filtering.
    """

    item_type: str
    descriptive_name: str
    category: AdapterCategory = AdapterCategory.OTHER
    supported_methods: Sequence[QueryMethod] = field(default_factory=lambda: (QueryMethod.GET, QueryMethod.LIST))
    get_description: Optional[str] = None
    list_description: Optional[str] = None
    search_description: Optional[str] = None
    potential_links: Sequence[str] = field(default_factory=tuple)
    tags: Sequence[str] = field(default_factory=tuple)

    def validate(self) -> None:
        """Validate internal consistency of the metadata."""

        if not self.item_type or not _KEBAB_CASE.match(self.item_type):
            raise RegistryLoadError(f"Item type '{self.item_type}' must be kebab-case (lowercase letters, digits, hyphens).")
        for method in self.supported_methods:
            if not isinstance(method, QueryMethod):
                raise RegistryLoadError(f"Item type '{self.item_type}' declares unknown method {method!r}.")
        if QueryMethod.SEARCH in self.supported_methods and not self.search_description:
            raise RegistryLoadError(f"Item type '{self.item_type}' supports SEARCH but has no search_description.")
        for link in self.potential_links:
            if not _KEBAB_CASE.match(link):
                raise RegistryLoadError(f"Item type '{self.item_type}' has malformed potential link '{link}'.")

    def supports(self, method: QueryMethod | str) -> bool:
        return QueryMethod(method) in self.supported_methods

    def to_dict(self) -> Dict[str, object]:
        return {
            "type": self.item_type,
            "name": self.descriptive_name,
            "category": self.category.value,
            "methods": [method.value for method in self.supported_methods],
            "get_description": self.get_description,
            "list_description": self.list_description,
            "search_description": self.search_description,
            "potential_links": list(self.potential_links),
            "tags": list(self.tags),
        }

    def to_json(self) -> str:
        """Return a JSON representation useful for CLI output."""

        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


class AdapterRegistry:
    """In-memory catalogue of :class:`AdapterMetadata` entries."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, AdapterMetadata] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "AdapterRegistry":
        """Make the registry read-only and return it."""

        self._frozen = True
        return self

    def register(self, metadata: AdapterMetadata) -> None:
        """Register or overwrite metadata for an item type."""

        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{metadata.item_type}': registry is frozen.")
        metadata.validate()
        self._entries[metadata.item_type] = metadata

    def get(self, item_type: str) -> Optional[AdapterMetadata]:
        """Retrieve metadata if present."""

        return self._entries.get(item_type)

    def require(self, item_type: str) -> AdapterMetadata:
        """Retrieve metadata or raise an informative error."""

        metadata = self.get(item_type)
        if metadata is None:
            raise KeyError(f"Item type '{item_type}' is not registered.")
        return metadata

    def list(self, *, category: Optional[AdapterCategory] = None) -> List[AdapterMetadata]:
        """Return registered metadata sorted by type, optionally filtered by category."""

        entries = sorted(self._entries.values(), key=lambda entry: entry.item_type)
        if category:
            return [entry for entry in entries if entry.category == category]
        return entries

    def __iter__(self) -> Iterator[AdapterMetadata]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item_type: object) -> bool:
        return item_type in self._entries

    @classmethod
    def from_yaml(cls, path: Path | str) -> "AdapterRegistry":
        """Load metadata from a YAML document and return a frozen registry."""

        location = Path(path)
        if not location.exists():
            raise RegistryLoadError(f"Registry file '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise RegistryLoadError(f"Failed to parse '{location}': {exc}") from exc

        if not isinstance(payload, list):
            raise RegistryLoadError(f"Registry file '{location}' must contain a list of adapters.")

        registry = cls()
        for entry in payload:
            registry.register(cls._metadata_from_payload(entry, origin=location))
        return registry.freeze()

    @staticmethod
    def _metadata_from_payload(entry: object, *, origin: Path) -> AdapterMetadata:
        """Convert a YAML mapping into a metadata instance."""

        if not isinstance(entry, dict):
            raise RegistryLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

        try:
            metadata = AdapterMetadata(
                item_type=str(entry["type"]),
                descriptive_name=str(entry.get("name", entry["type"])),
                category=AdapterCategory(str(entry.get("category", AdapterCategory.OTHER.value))),
                supported_methods=tuple(QueryMethod(method.upper()) for method in _ensure_list(entry.get("methods", ["GET", "LIST"]))),
                get_description=_optional_str(entry.get("get_description")),
                list_description=_optional_str(entry.get("list_description")),
                search_description=_optional_str(entry.get("search_description")),
                potential_links=tuple(_ensure_list(entry.get("potential_links"))),
                tags=tuple(_ensure_list(entry.get("tags"))),
            )
        except KeyError as exc:
            raise RegistryLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc
        except ValueError as exc:
            raise RegistryLoadError(f"Invalid field in '{origin}': {exc}") from exc

        metadata.validate()
        return metadata


def _ensure_list(value: object | None) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    return [str(value)]


def _optional_str(value: object | None) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
