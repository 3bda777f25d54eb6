"""Rate-limited refresh of the domain signal cache."""

import asyncio
from enum import Enum
from typing import Dict, Optional, Set, Tuple

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trustscore.common import SignalProviderError
from trustscore.config import TrustConfig
from trustscore.schemas import DomainCacheEntry, normalize_domain
from trustscore.signals.provider import DomainSignalProvider
from trustscore.stores import DomainSignalCache, StatsStore

logger = structlog.get_logger()


class RefreshStatus(str, Enum):
    """Outcome of a single domain refresh."""

    REFRESHED = "refreshed"
    FRESH = "fresh"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


class DomainSignalRefresher:
    """
    Keeps the domain signal cache populated from a provider.

    Provider failures never propagate: a failed refresh leaves the domain
    without a fresh entry and scoring falls back to the neutral domain
    score. Concurrent lookups are bounded by ``refresh_concurrency``.
    """

    def __init__(
        self,
        cache: DomainSignalCache,
        provider: DomainSignalProvider,
        stats_store: Optional[StatsStore] = None,
        config: Optional[TrustConfig] = None,
    ):
        """
        Initialize refresher.

        Args:
            cache: Cache to populate
            provider: Source of domain signals
            stats_store: Source of known domains for batch refreshes
            config: Refresh settings (concurrency, delay, retries)
        """
        self.cache = cache
        self.provider = provider
        self.stats_store = stats_store
        self.config = config or TrustConfig()
        self._semaphore = asyncio.Semaphore(self.config.refresh_concurrency)
        self._in_flight: Set[str] = set()
        self._pending: Set[asyncio.Task] = set()
        self.stats = {
            "refreshed": 0,
            "failed": 0,
            "skipped_fresh": 0,
        }

    async def _fetch_with_retry(self, domain: str):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.refresh_retries),
            wait=wait_exponential(
                multiplier=self.config.refresh_backoff, min=self.config.refresh_backoff
            ),
            retry=retry_if_exception_type(SignalProviderError),
            reraise=True,
        ):
            with attempt:
                async with self._semaphore:
                    return await self.provider.fetch(domain)

    async def refresh(self, domain: str, force: bool = False) -> Optional[DomainCacheEntry]:
        """
        Refresh one domain.

        Args:
            domain: Domain to refresh
            force: Query the provider even if a fresh entry exists

        Returns:
            The cached entry after the refresh, or None if the provider
            failed or a refresh of the domain is already running
        """
        _, entry = await self._refresh(domain, force)
        return entry

    async def _refresh(
        self, domain: str, force: bool
    ) -> Tuple[RefreshStatus, Optional[DomainCacheEntry]]:
        key = normalize_domain(domain)

        lookup = self.cache.lookup(key)
        if lookup.fresh and not force:
            self.stats["skipped_fresh"] += 1
            return RefreshStatus.FRESH, lookup.entry

        if key in self._in_flight:
            logger.debug("Refresh already in progress", domain=key)
            return RefreshStatus.IN_FLIGHT, None

        self._in_flight.add(key)
        try:
            signals = await self._fetch_with_retry(key)
        except SignalProviderError as e:
            logger.warning(
                "Domain signal refresh failed",
                domain=key,
                attempts=self.config.refresh_retries,
                error=str(e),
            )
            self.stats["failed"] += 1
            return RefreshStatus.FAILED, None
        except Exception as e:
            logger.error(
                "Domain signal provider raised unexpectedly",
                domain=key,
                provider=self.provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.stats["failed"] += 1
            # Don't raise - an unavailable provider only means no fresh signal
            return RefreshStatus.FAILED, None
        finally:
            self._in_flight.discard(key)

        entry = self.cache.upsert(key, signals)
        self.stats["refreshed"] += 1
        logger.info(
            "Domain signals cached",
            domain=key,
            threat_status=entry.threat_status.value,
            expires_at=entry.expires_at.isoformat(),
        )
        return RefreshStatus.REFRESHED, entry

    def request_refresh(self, domain: str) -> Optional[asyncio.Task]:
        """
        Schedule a background refresh without waiting for it.

        Outside a running event loop nothing is scheduled; the daily batch
        refresh will pick the domain up.

        Returns:
            The scheduled task, or None
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, refresh deferred", domain=domain)
            return None

        task = loop.create_task(self.refresh(domain))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_pending(self) -> None:
        """Wait for every background refresh scheduled so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def refresh_stale(self, limit: Optional[int] = None) -> Dict[str, int]:
        """
        Refresh known domains that have no fresh cache entry.

        Domains are processed in batches of ``refresh_concurrency`` with
        ``refresh_batch_delay`` seconds between batches.

        Args:
            limit: Maximum domains to refresh (default: refresh_batch_limit)

        Returns:
            Counts of candidates, refreshed and failed domains, and of
            domains skipped because a refresh was already running
        """
        limit = limit or self.config.refresh_batch_limit
        known = self.stats_store.known_domains() if self.stats_store is not None else []
        stale = self.cache.domains_needing_refresh(known)[:limit]

        logger.info(
            "Starting batch domain refresh",
            known_domains=len(known),
            stale_domains=len(stale),
        )

        counts = {status: 0 for status in RefreshStatus}
        size = self.config.refresh_concurrency
        for start in range(0, len(stale), size):
            batch = stale[start : start + size]
            results = await asyncio.gather(*(self._refresh(d, force=True) for d in batch))
            for status, _ in results:
                counts[status] += 1

            if start + size < len(stale) and self.config.refresh_batch_delay > 0:
                await asyncio.sleep(self.config.refresh_batch_delay)

        summary = {
            "candidates": len(stale),
            "refreshed": counts[RefreshStatus.REFRESHED],
            "failed": counts[RefreshStatus.FAILED],
            "in_flight": counts[RefreshStatus.IN_FLIGHT],
        }
        logger.info("Batch domain refresh complete", **summary)
        return summary
