"""Explicit merge functions used by store upserts.

Each function is pure: it receives the currently stored record (or None)
and the incoming one, and returns the record to store.
"""

from typing import Iterable, Optional

from trustscore.schemas import DomainCacheEntry, DomainStats, URLStats


def merge_url_stats(existing: Optional[URLStats], incoming: URLStats) -> URLStats:
    """
    Replace every derived field, keep identity fields already known.

    ``url`` and ``domain`` from the existing record survive when the incoming
    record does not carry them.
    """
    if existing is None:
        return incoming.model_copy()

    return incoming.model_copy(
        update={
            "url": incoming.url or existing.url,
            "domain": incoming.domain or existing.domain,
        }
    )


def merge_domain_cache_entry(
    existing: Optional[DomainCacheEntry], incoming: DomainCacheEntry
) -> DomainCacheEntry:
    """A refreshed snapshot fully replaces the previous one for the domain."""
    return incoming.model_copy()


def clear_url_scores(stats: URLStats) -> URLStats:
    """Drop derived scores so the next pass recomputes them from scratch."""
    return stats.model_copy(
        update={"domain_score": None, "community_score": None, "final_score": None}
    )


def _weighted_mean(pairs: list) -> Optional[float]:
    total_weight = sum(weight for _, weight in pairs)
    if not pairs or total_weight <= 0:
        return None
    return round(sum(value * weight for value, weight in pairs) / total_weight, 2)


def summarize_domain(domain: str, rows: Iterable[URLStats]) -> Optional[DomainStats]:
    """
    Aggregate the URL stats of one domain.

    Scores and average rating are means weighted by each URL's rating
    count. ``top_url_hash`` is the most-rated URL, the record used for
    domain-level fallback when a URL has no ratings of its own.
    """
    rows = list(rows)
    if not rows:
        return None

    rating_count = sum(r.rating_count for r in rows)
    weight = lambda r: max(r.rating_count, 1)  # noqa: E731

    def mean_of(attr: str) -> Optional[float]:
        return _weighted_mean(
            [(getattr(r, attr), weight(r)) for r in rows if getattr(r, attr) is not None]
        )

    top = max(rows, key=lambda r: (r.rating_count, r.last_updated))

    return DomainStats(
        domain=domain,
        url_count=len(rows),
        rating_count=rating_count,
        average_rating=mean_of("average_rating"),
        domain_score=mean_of("domain_score"),
        community_score=mean_of("community_score"),
        final_score=mean_of("final_score"),
        spam_reports=sum(r.spam_reports for r in rows),
        misleading_reports=sum(r.misleading_reports for r in rows),
        scam_reports=sum(r.scam_reports for r in rows),
        top_url_hash=top.url_hash,
        last_updated=max(r.last_updated for r in rows),
    )
