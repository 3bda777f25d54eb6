"""URL and domain trust score aggregation engine."""

__version__ = "1.0.0"
