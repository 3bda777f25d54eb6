"""Monitoring utilities."""

from trustscore.monitoring.metrics import AggregationMetrics

__all__ = ["AggregationMetrics"]
