"""Command line interface for graph-adapters."""
