"""Storage adapters shared across layers."""
