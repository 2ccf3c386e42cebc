"""Data loading, normalization, caching, and the in-memory engine store."""
