"""Schemas package."""

from trustscore.schemas.models import (
    BlacklistRule,
    ContentTypeRule,
    DomainCacheEntry,
    DomainSignals,
    DomainStats,
    ProcessingStatus,
    Rating,
    RatingFlags,
    ThreatStatus,
    URLStats,
)
from trustscore.schemas.validation_rules import (
    extract_domain,
    hash_url,
    is_valid_domain,
    normalize_domain,
)

__all__ = [
    "BlacklistRule",
    "ContentTypeRule",
    "DomainCacheEntry",
    "DomainSignals",
    "DomainStats",
    "ProcessingStatus",
    "Rating",
    "RatingFlags",
    "ThreatStatus",
    "URLStats",
    "extract_domain",
    "hash_url",
    "is_valid_domain",
    "normalize_domain",
]
