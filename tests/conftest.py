"""Pytest configuration and shared fixtures."""

from fixtures.sample_data import (
    clock,
    config,
    healthy_signals,
    sample_blacklist_rules,
    sample_content_rules,
)

from fixtures.engine_fixtures import (
    rating_store,
    signal_cache,
    stats_store,
    rule_store,
    calculator,
    aggregation_service,
    retention_sweeper,
)

__all__ = [
    # Sample data
    "clock",
    "config",
    "healthy_signals",
    "sample_blacklist_rules",
    "sample_content_rules",
    # Stores and services
    "rating_store",
    "signal_cache",
    "stats_store",
    "rule_store",
    "calculator",
    "aggregation_service",
    "retention_sweeper",
]
