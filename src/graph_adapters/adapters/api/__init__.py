"""
HTTP clients usable as the upstream collaborator of an adapter.

:class:`ResourceAPIClient` wraps low-level HTTP calls with retry logic, optional
rate limiting and error classification.
"""

from .base import APIError, ResourceAPIClient

__all__ = ["APIError", "ResourceAPIClient"]
