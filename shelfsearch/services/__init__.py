"""Service-layer search components."""
