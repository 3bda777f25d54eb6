"""Retention sweep for ratings, cache entries and stale stats."""

from datetime import datetime, timedelta
from typing import Callable, Dict

import structlog

from trustscore.common import utcnow
from trustscore.config import TrustConfig
from trustscore.stores import DomainSignalCache, RatingStore, StatsStore

logger = structlog.get_logger()


class RetentionSweeper:
    """Deletes data that aggregation no longer needs."""

    def __init__(
        self,
        config: TrustConfig,
        ratings: RatingStore,
        cache: DomainSignalCache,
        stats: StatsStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.ratings = ratings
        self.cache = cache
        self.stats = stats
        self.clock = clock

    def rating_cleanup_stats(self) -> Dict[str, int]:
        """
        Counts describing what the next sweep would delete.

        Returns:
            total, processed, unprocessed and eligible_for_cleanup ratings
        """
        cutoff = self.clock() - timedelta(days=self.config.rating_retention_days)
        ratings = self.ratings.all_ratings()
        processed = [r for r in ratings if r.processed]
        return {
            "total": len(ratings),
            "processed": len(processed),
            "unprocessed": len(ratings) - len(processed),
            "eligible_for_cleanup": sum(1 for r in processed if r.created_at < cutoff),
        }

    def sweep(self) -> Dict[str, int]:
        """
        Run every retention rule once.

        Only processed ratings are deleted; their contribution already lives
        in the URL stats. Cache entries are kept for a grace period after
        expiry so stale data can still be inspected.

        Returns:
            Number of deleted ratings, cache entries and stats records
        """
        now = self.clock()

        result = {
            "ratings_deleted": self.ratings.purge_processed_before(
                now - timedelta(days=self.config.rating_retention_days)
            ),
            "cache_entries_deleted": self.cache.purge_expired_before(
                now - timedelta(days=self.config.cache_purge_grace_days)
            ),
            "stats_deleted": self.stats.purge_stale_before(
                now - timedelta(days=self.config.stats_retention_days)
            ),
        }

        logger.info("Retention sweep complete", **result)
        return result
