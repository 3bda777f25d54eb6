"""Thread-safe in-memory store implementations."""

import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from trustscore.common import constants, utcnow
from trustscore.schemas import (
    BlacklistRule,
    ContentTypeRule,
    DomainCacheEntry,
    DomainSignals,
    DomainStats,
    Rating,
    URLStats,
    normalize_domain,
)
from trustscore.stores.base import (
    CacheLookup,
    DomainSignalCache,
    RatingStore,
    RuleStore,
    StatsStore,
)
from trustscore.stores.merge import (
    clear_url_scores,
    merge_domain_cache_entry,
    merge_url_stats,
    summarize_domain,
)

logger = structlog.get_logger()

Clock = Callable[[], datetime]


class InMemoryRatingStore(RatingStore):
    """Rating store keeping events in insertion order."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ratings: Dict[str, Rating] = {}

    def append(self, rating: Rating) -> str:
        with self._lock:
            if rating.id in self._ratings:
                raise ValueError(f"Rating {rating.id} already exists")
            self._ratings[rating.id] = rating.model_copy()
        return rating.id

    def ratings_for(self, url_hash: str) -> List[Rating]:
        with self._lock:
            return [r.model_copy() for r in self._ratings.values() if r.url_hash == url_hash]

    def unprocessed_url_hashes(self) -> List[str]:
        with self._lock:
            oldest: Dict[str, datetime] = {}
            for rating in self._ratings.values():
                if rating.processed:
                    continue
                seen = oldest.get(rating.url_hash)
                if seen is None or rating.created_at < seen:
                    oldest[rating.url_hash] = rating.created_at
        return sorted(oldest, key=lambda h: (oldest[h], h))

    def mark_processed(
        self, url_hash: str, rating_ids: Optional[Iterable[str]] = None
    ) -> int:
        wanted = set(rating_ids) if rating_ids is not None else None
        flipped = 0
        with self._lock:
            for rating_id, rating in self._ratings.items():
                if rating.url_hash != url_hash or rating.processed:
                    continue
                if wanted is not None and rating_id not in wanted:
                    continue
                self._ratings[rating_id] = rating.model_copy(update={"processed": True})
                flipped += 1
        return flipped

    def reset_processed(self) -> int:
        flipped = 0
        with self._lock:
            for rating_id, rating in self._ratings.items():
                if rating.processed:
                    self._ratings[rating_id] = rating.model_copy(update={"processed": False})
                    flipped += 1
        return flipped

    def all_ratings(self) -> List[Rating]:
        with self._lock:
            return [r.model_copy() for r in self._ratings.values()]

    def purge_processed_before(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [
                rating_id
                for rating_id, rating in self._ratings.items()
                if rating.processed and rating.created_at < cutoff
            ]
            for rating_id in doomed:
                del self._ratings[rating_id]
        return len(doomed)


class InMemoryDomainSignalCache(DomainSignalCache):
    """Domain signal cache with a per-entry expiry."""

    def __init__(
        self,
        ttl_days: int = constants.DEFAULT_CACHE_TTL_DAYS,
        clock: Clock = utcnow,
    ):
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, DomainCacheEntry] = {}

    def lookup(self, domain: str) -> CacheLookup:
        key = normalize_domain(domain)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(entry=None, fresh=False)
        return CacheLookup(entry=entry.model_copy(), fresh=entry.is_fresh(self.clock()))

    def upsert(self, domain: str, signals: DomainSignals) -> DomainCacheEntry:
        key = normalize_domain(domain)
        now = self.clock()
        incoming = DomainCacheEntry(
            domain=key,
            checked_at=now,
            expires_at=now + self.ttl,
            **signals.model_dump(),
        )
        with self._lock:
            merged = merge_domain_cache_entry(self._entries.get(key), incoming)
            self._entries[key] = merged
        logger.debug("Domain cache updated", domain=key, expires_at=merged.expires_at.isoformat())
        return merged.model_copy()

    def mark_stale(self, domain: str) -> bool:
        key = normalize_domain(domain)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            self._entries[key] = entry.model_copy(
                update={"expires_at": self.clock() - timedelta(days=1)}
            )
        return True

    def purge_expired_before(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [k for k, e in self._entries.items() if e.expires_at < cutoff]
            for key in doomed:
                del self._entries[key]
        return len(doomed)


class InMemoryStatsStore(StatsStore):
    """URL stats keyed by url_hash."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats: Dict[str, URLStats] = {}

    def upsert(self, url_hash: str, stats: URLStats) -> URLStats:
        if stats.url_hash != url_hash:
            raise ValueError(
                f"Stats url_hash {stats.url_hash!r} does not match key {url_hash!r}"
            )
        with self._lock:
            merged = merge_url_stats(self._stats.get(url_hash), stats)
            self._stats[url_hash] = merged
        return merged.model_copy()

    def get(self, url_hash: str) -> Optional[URLStats]:
        with self._lock:
            stats = self._stats.get(url_hash)
        return stats.model_copy() if stats else None

    def get_by_domain(self, domain: str) -> Optional[DomainStats]:
        key = normalize_domain(domain)
        with self._lock:
            rows = [s.model_copy() for s in self._stats.values() if s.domain == key]
        return summarize_domain(key, rows)

    def clear_scores(self) -> int:
        with self._lock:
            for url_hash, stats in self._stats.items():
                self._stats[url_hash] = clear_url_scores(stats)
            return len(self._stats)

    def all_stats(self) -> List[URLStats]:
        with self._lock:
            return [s.model_copy() for s in self._stats.values()]

    def purge_stale_before(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [h for h, s in self._stats.items() if s.last_updated < cutoff]
            for url_hash in doomed:
                del self._stats[url_hash]
        return len(doomed)


class InMemoryRuleStore(RuleStore):
    """Blacklist and content rules held in memory."""

    def __init__(
        self,
        blacklist: Optional[Iterable[BlacklistRule]] = None,
        content_rules: Optional[Iterable[ContentTypeRule]] = None,
    ):
        self._lock = threading.Lock()
        self._blacklist: List[BlacklistRule] = list(blacklist or [])
        # (priority, insertion sequence) gives a stable evaluation order
        self._content: Dict[str, List[tuple]] = {}
        self._sequence = 0
        for rule in content_rules or []:
            self.add_content_rule(rule)

    def blacklist_rules(self) -> List[BlacklistRule]:
        with self._lock:
            return list(self._blacklist)

    def content_rules_for(self, domain: str) -> List[ContentTypeRule]:
        key = normalize_domain(domain)
        with self._lock:
            entries = sorted(self._content.get(key, []), key=lambda e: (e[0], e[1]))
        return [rule for _, _, rule in entries]

    def add_blacklist_rule(self, rule: BlacklistRule) -> None:
        with self._lock:
            self._blacklist.append(rule)

    def add_content_rule(self, rule: ContentTypeRule) -> None:
        with self._lock:
            self._sequence += 1
            self._content.setdefault(rule.domain, []).append(
                (rule.priority, self._sequence, rule)
            )

    def content_domains(self) -> List[str]:
        with self._lock:
            return sorted(self._content)
