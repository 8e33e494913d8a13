"""Package data shipped with graph-adapters."""
