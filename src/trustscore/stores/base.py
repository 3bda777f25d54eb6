"""Store contracts used by the aggregation engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from trustscore.schemas import (
    BlacklistRule,
    ContentTypeRule,
    DomainCacheEntry,
    DomainSignals,
    DomainStats,
    Rating,
    URLStats,
)


class RatingStore(ABC):
    """Append-only store of rating events."""

    @abstractmethod
    def append(self, rating: Rating) -> str:
        """Store a rating and return its id."""

    @abstractmethod
    def ratings_for(self, url_hash: str) -> List[Rating]:
        """Full snapshot of every rating for a URL."""

    @abstractmethod
    def unprocessed_url_hashes(self) -> List[str]:
        """
        Distinct URL hashes that have at least one unprocessed rating.

        Ordered by their oldest unprocessed rating, so repeated calls after
        partial processing resume where the previous pass stopped.
        """

    @abstractmethod
    def mark_processed(
        self, url_hash: str, rating_ids: Optional[Iterable[str]] = None
    ) -> int:
        """
        Flip ``processed`` to True for a URL's ratings.

        Args:
            url_hash: URL whose ratings were aggregated
            rating_ids: Restrict to these ratings (the snapshot that was
                scored); None marks every rating of the URL

        Returns:
            Number of ratings flipped
        """

    @abstractmethod
    def reset_processed(self) -> int:
        """Mark every rating unprocessed. Returns the number flipped."""

    @abstractmethod
    def all_ratings(self) -> List[Rating]:
        """Snapshot of every stored rating."""

    @abstractmethod
    def purge_processed_before(self, cutoff: datetime) -> int:
        """Delete processed ratings created before cutoff."""


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache lookup. ``entry`` is None on a miss."""

    entry: Optional[DomainCacheEntry]
    fresh: bool

    @property
    def fresh_entry(self) -> Optional[DomainCacheEntry]:
        """The entry if it may be used as fresh, otherwise None."""
        return self.entry if self.fresh else None


class DomainSignalCache(ABC):
    """TTL-bounded cache of external domain signals."""

    @abstractmethod
    def lookup(self, domain: str) -> CacheLookup:
        """Most recent entry and whether it is within TTL. Never raises on miss."""

    @abstractmethod
    def upsert(self, domain: str, signals: DomainSignals) -> DomainCacheEntry:
        """Insert or overwrite, resetting ``expires_at = now + TTL``."""

    @abstractmethod
    def mark_stale(self, domain: str) -> bool:
        """Expire an entry without deleting its data. False if absent."""

    @abstractmethod
    def purge_expired_before(self, cutoff: datetime) -> int:
        """Delete entries that expired before cutoff."""

    def domains_needing_refresh(self, candidates: Iterable[str]) -> List[str]:
        """Candidates with no entry or only an expired one, in input order."""
        seen = set()
        stale = []
        for domain in candidates:
            if domain in seen:
                continue
            seen.add(domain)
            if not self.lookup(domain).fresh:
                stale.append(domain)
        return stale


class StatsStore(ABC):
    """Materialized per-URL statistics."""

    @abstractmethod
    def upsert(self, url_hash: str, stats: URLStats) -> URLStats:
        """Merge incoming stats into the stored record and return it."""

    @abstractmethod
    def get(self, url_hash: str) -> Optional[URLStats]:
        """Stats for a URL, or None."""

    @abstractmethod
    def get_by_domain(self, domain: str) -> Optional[DomainStats]:
        """Aggregate over every URL of a domain, or None."""

    @abstractmethod
    def clear_scores(self) -> int:
        """Clear derived score fields on every record."""

    @abstractmethod
    def all_stats(self) -> List[URLStats]:
        """Snapshot of every record."""

    @abstractmethod
    def purge_stale_before(self, cutoff: datetime) -> int:
        """Delete records not updated since cutoff."""

    def known_domains(self) -> List[str]:
        """Distinct domains present in the store."""
        return sorted({s.domain for s in self.all_stats() if s.domain})

    def processing_status_summary(self) -> Dict[str, Dict[str, float]]:
        """URL count and percentage per processing status."""
        rows = self.all_stats()
        counts: Dict[str, int] = {}
        for row in rows:
            counts[row.processing_status.value] = counts.get(row.processing_status.value, 0) + 1
        total = len(rows)
        return {
            status: {"url_count": count, "percentage": round(count * 100.0 / total, 2)}
            for status, count in sorted(counts.items(), key=lambda kv: -kv[1])
        }


class RuleStore(ABC):
    """Source of blacklist and content-type rules."""

    @abstractmethod
    def blacklist_rules(self) -> List[BlacklistRule]:
        """Every blacklist rule, active or not."""

    @abstractmethod
    def content_rules_for(self, domain: str) -> List[ContentTypeRule]:
        """Content rules for a domain, in evaluation order."""

    @abstractmethod
    def add_blacklist_rule(self, rule: BlacklistRule) -> None:
        """Register a blacklist rule."""

    @abstractmethod
    def add_content_rule(self, rule: ContentTypeRule) -> None:
        """Register a content rule after the domain's existing ones."""

    def has_active_content_rules(self, domain: str) -> bool:
        return any(rule.active for rule in self.content_rules_for(domain))
