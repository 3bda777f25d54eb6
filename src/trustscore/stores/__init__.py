"""Stores package."""

from trustscore.stores.base import (
    CacheLookup,
    DomainSignalCache,
    RatingStore,
    RuleStore,
    StatsStore,
)
from trustscore.stores.memory import (
    InMemoryDomainSignalCache,
    InMemoryRatingStore,
    InMemoryRuleStore,
    InMemoryStatsStore,
)
from trustscore.stores.merge import (
    clear_url_scores,
    merge_domain_cache_entry,
    merge_url_stats,
    summarize_domain,
)

__all__ = [
    "CacheLookup",
    "DomainSignalCache",
    "RatingStore",
    "RuleStore",
    "StatsStore",
    "InMemoryDomainSignalCache",
    "InMemoryRatingStore",
    "InMemoryRuleStore",
    "InMemoryStatsStore",
    "clear_url_scores",
    "merge_domain_cache_entry",
    "merge_url_stats",
    "summarize_domain",
]
