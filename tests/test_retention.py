"""Tests for the retention sweep."""

from datetime import timedelta

from fixtures.sample_data import FIXED_NOW, make_rating
from trustscore.schemas import URLStats


def test_rating_cleanup_stats(retention_sweeper, rating_store):
    """Test counts of what the next sweep would delete."""
    old = FIXED_NOW - timedelta(days=10)
    rating_store.append(make_rating(created_at=old, processed=True))
    rating_store.append(make_rating(created_at=old, processed=False))
    rating_store.append(make_rating(processed=True))

    assert retention_sweeper.rating_cleanup_stats() == {
        "total": 3,
        "processed": 2,
        "unprocessed": 1,
        "eligible_for_cleanup": 1,
    }


def test_sweep_deletes_only_expired_data(
    retention_sweeper, rating_store, signal_cache, stats_store, healthy_signals, clock
):
    """Test each retention rule removes only data past its window."""
    signal_cache.upsert("ancient.com", healthy_signals)
    now = clock.advance(days=45)
    signal_cache.upsert("recent.com", healthy_signals)

    rating_store.append(make_rating(created_at=now - timedelta(days=8), processed=True))
    rating_store.append(make_rating(created_at=now - timedelta(days=8), processed=False))
    rating_store.append(make_rating(created_at=now, processed=True))

    stats_store.upsert("old", URLStats(url_hash="old", last_updated=now - timedelta(days=400)))
    stats_store.upsert("new", URLStats(url_hash="new", last_updated=now))

    result = retention_sweeper.sweep()

    assert result == {"ratings_deleted": 1, "cache_entries_deleted": 1, "stats_deleted": 1}
    assert signal_cache.lookup("ancient.com").entry is None
    assert signal_cache.lookup("recent.com").entry is not None
    assert stats_store.get("new") is not None
    remaining = sorted((r.processed, r.created_at) for r in rating_store.all_ratings())
    # unprocessed ratings are never deleted, however old
    assert remaining == [(False, now - timedelta(days=8)), (True, now)]


def test_sweep_on_empty_stores(retention_sweeper):
    """Test a sweep with nothing to delete returns zero counts."""
    assert retention_sweeper.sweep() == {
        "ratings_deleted": 0,
        "cache_entries_deleted": 0,
        "stats_deleted": 0,
    }
