"""
Adapter archetypes.

Each archetype is a keyword-only dataclass whose function-valued fields are the
per-resource collaborators (fetch functions and mappers). All of them share the
scope, validation, caching and rate-limiting behaviour of
:class:`~graph_adapters.adapters.base.ResourceAdapter`.
"""

from .always_get import AlwaysGetAdapter
from .base import Adapter, ResourceAdapter
from .describe import DescribeOnlyAdapter
from .get_list import GetListAdapter

__all__ = [
    "Adapter",
    "AlwaysGetAdapter",
    "DescribeOnlyAdapter",
    "GetListAdapter",
    "ResourceAdapter",
]
