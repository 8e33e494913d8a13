"""
Service-layer helpers routing queries across configured adapters.
"""

from .discovery import DiscoveryService, QueryResult

__all__ = ["DiscoveryService", "QueryResult"]
