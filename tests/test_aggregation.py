"""Tests for the batch aggregation service."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from fixtures.sample_data import FIXED_NOW, make_rating
from trustscore.aggregation import AggregationService, OutcomeStatus, Phase
from trustscore.config import TrustConfig
from trustscore.ingestion import RatingIngestionService
from trustscore.schemas import BlacklistRule, ProcessingStatus

URL = "https://example.com/article"


def add_ratings(store, url=URL, scores=(5, 5, 5, 5, 5), minutes_ago=0):
    """Helper to append one rating per score."""
    created_at = FIXED_NOW - timedelta(minutes=minutes_ago)
    ratings = [make_rating(url, score=score, created_at=created_at) for score in scores]
    for rating in ratings:
        store.append(rating)
    return ratings[0].url_hash


# ==================== End-to-End Tests ====================


def test_end_to_end_five_top_ratings(aggregation_service, rating_store):
    """Test five 5-star ratings on an unknown-signal domain."""
    url_hash = add_ratings(rating_store)

    report = aggregation_service.run_pass()
    stats = aggregation_service.get_url_stats(url_hash)

    assert report.processed_count == 1
    assert report.skipped_count == 0
    assert stats.community_score == 100.0
    assert stats.domain_score == 50.0
    assert stats.final_score == 80.0
    assert stats.rating_count == 5
    assert stats.average_rating == 5.0
    assert stats.content_type == "general"
    assert stats.domain == "example.com"
    assert stats.url == URL
    assert stats.processing_status is ProcessingStatus.COMMUNITY_WITH_BASIC_DOMAIN
    assert stats.last_updated == FIXED_NOW
    assert rating_store.unprocessed_url_hashes() == []


def test_end_to_end_blacklisted_domain(aggregation_service, rating_store, rule_store):
    """Test a severity 10 blacklist entry removes 50 domain and 20 final points."""
    rule_store.add_blacklist_rule(
        BlacklistRule(pattern="example.com", category="malware", severity=10)
    )
    url_hash = add_ratings(rating_store)

    aggregation_service.run_pass()
    stats = aggregation_service.get_url_stats(url_hash)

    assert stats.domain_score == 0.0
    assert stats.community_score == 100.0
    assert stats.final_score == 60.0


def test_www_domain_shares_blacklist_and_stats(aggregation_service, rating_store, rule_store):
    """Test ratings submitted under a www. domain are keyed like URL-derived ones."""
    rule_store.add_blacklist_rule(
        BlacklistRule(pattern="example.com", category="malware", severity=10)
    )
    ingestion = RatingIngestionService(rating_store)
    ingestion.submit_rating("opaque-hash", "www.example.com", "user-1", 5)
    add_ratings(rating_store, scores=(5,))

    aggregation_service.run_pass()
    stats = aggregation_service.get_url_stats("opaque-hash")
    domain_stats = aggregation_service.get_domain_stats("www.example.com")

    assert stats.domain == "example.com"
    assert stats.domain_score == 0.0
    assert domain_stats.domain == "example.com"
    assert domain_stats.url_count == 2


def test_scores_stay_in_bounds(aggregation_service, rating_store):
    """Test every persisted score lies in [0, 100]."""
    for i, scores in enumerate([(1, 1, 1), (5,), (3, 4), (2, 5, 1, 4)]):
        add_ratings(rating_store, url=f"https://example.com/{i}", scores=scores)

    aggregation_service.run_pass()

    for stats in aggregation_service.stats.all_stats():
        for value in (stats.domain_score, stats.community_score, stats.final_score):
            assert 0.0 <= value <= 100.0


def test_domain_stats_after_pass(aggregation_service, rating_store):
    """Test domain-level stats aggregate every URL of the domain."""
    add_ratings(rating_store, url="https://example.com/a", scores=(5, 5, 5, 5, 5))
    add_ratings(rating_store, url="https://example.com/b", scores=(1, 1, 1, 1, 1))

    aggregation_service.run_pass()
    domain_stats = aggregation_service.get_domain_stats("example.com")

    assert domain_stats.url_count == 2
    assert domain_stats.rating_count == 10
    assert domain_stats.community_score == 50.0


# ==================== Idempotence Tests ====================


def test_second_pass_is_a_no_op(aggregation_service, rating_store):
    """Test re-running without new ratings changes nothing."""
    url_hash = add_ratings(rating_store)

    aggregation_service.run_pass()
    first = aggregation_service.get_url_stats(url_hash)
    report = aggregation_service.run_pass()

    assert report.processed_count == 0
    assert aggregation_service.get_url_stats(url_hash) == first


def test_rerun_on_same_snapshot_gives_identical_stats(aggregation_service, rating_store):
    """Test two passes over the same unprocessed ratings persist equal URL stats."""
    url_hash = add_ratings(rating_store, scores=(4, 2, 5), minutes_ago=10)
    rating_store.append(make_rating(URL, score=1, is_spam=True))

    aggregation_service.run_pass()
    first = aggregation_service.get_url_stats(url_hash)

    rating_store.reset_processed()
    report = aggregation_service.run_pass()
    second = aggregation_service.get_url_stats(url_hash)

    assert report.processed_count == 1
    assert second == first
    assert second.model_dump() == first.model_dump()


def test_new_rating_rescores_from_full_snapshot(aggregation_service, rating_store):
    """Test a later rating triggers a rescore over every rating of the URL."""
    url_hash = add_ratings(rating_store, scores=(5, 5, 5, 5))
    aggregation_service.run_pass()

    add_ratings(rating_store, scores=(1,))
    aggregation_service.run_pass()
    stats = aggregation_service.get_url_stats(url_hash)

    assert stats.rating_count == 5
    assert stats.average_rating == 4.2


def test_recompute_all_matches_incremental(aggregation_service, rating_store):
    """Test a full recompute reproduces the incremental result."""
    url_hash = add_ratings(rating_store, scores=(4, 2, 5))
    aggregation_service.run_pass()
    before = aggregation_service.get_url_stats(url_hash)

    report = aggregation_service.recompute_all()
    after = aggregation_service.get_url_stats(url_hash)

    assert report.processed_count == 1
    assert after.final_score == before.final_score
    assert rating_store.unprocessed_url_hashes() == []


def test_recompute_all_applies_new_configuration(rating_store, stats_store, calculator, clock):
    """Test recompute picks up weights changed since the last pass."""
    url_hash = add_ratings(rating_store)
    AggregationService(TrustConfig(), rating_store, stats_store, calculator, clock=clock).run_pass()

    calculator.config = TrustConfig(domain_weight=0.0, community_weight=1.0)
    AggregationService(calculator.config, rating_store, stats_store, calculator, clock=clock).recompute_all()

    assert stats_store.get(url_hash).final_score == 100.0


# ==================== Failure Isolation Tests ====================


def test_scoring_failure_is_isolated(config, rating_store, stats_store, calculator, clock):
    """Test one failing URL is skipped while the others are persisted."""
    hashes = [
        add_ratings(rating_store, url=f"https://example.com/{i}", minutes_ago=10 - i)
        for i in range(3)
    ]
    failing = hashes[1]

    real_compute = calculator.compute

    def compute(url_hash, url=None):
        if url_hash == failing:
            raise RuntimeError("boom")
        return real_compute(url_hash, url)

    broken = MagicMock(wraps=calculator)
    broken.compute.side_effect = compute
    service = AggregationService(config, rating_store, stats_store, broken, clock=clock)

    report = service.run_pass()

    assert report.processed_count == 2
    assert [o.url_hash for o in report.skipped] == [failing]
    assert report.skipped[0].phase is Phase.SCORING
    assert report.skipped[0].reason == "boom"
    assert stats_store.get(failing) is None
    assert stats_store.get(hashes[0]) is not None
    assert stats_store.get(hashes[2]) is not None
    assert rating_store.unprocessed_url_hashes() == [failing]


def test_persisting_failure_is_isolated(config, rating_store, calculator, clock):
    """Test a failing upsert leaves the URL's ratings unprocessed."""
    url_hash = add_ratings(rating_store)
    broken_stats = MagicMock()
    broken_stats.upsert.side_effect = IOError("disk full")
    service = AggregationService(config, rating_store, broken_stats, calculator, clock=clock)

    report = service.run_pass()

    assert report.processed_count == 0
    assert report.outcomes[0].status is OutcomeStatus.SKIPPED
    assert report.outcomes[0].phase is Phase.PERSISTING
    assert rating_store.unprocessed_url_hashes() == [url_hash]


def test_failed_url_retried_next_pass(config, rating_store, stats_store, calculator, clock):
    """Test a URL skipped once succeeds on the following pass."""
    url_hash = add_ratings(rating_store)
    flaky = MagicMock(wraps=calculator)
    flaky.compute.side_effect = [RuntimeError("transient"), calculator.compute(url_hash)]
    service = AggregationService(config, rating_store, stats_store, flaky, clock=clock)

    assert service.run_pass().skipped_count == 1
    assert service.run_pass().processed_count == 1
    assert stats_store.get(url_hash).final_score == 80.0


def test_ratings_arriving_during_pass_stay_unprocessed(aggregation_service, rating_store, calculator):
    """Test only the scored snapshot is marked processed."""
    url_hash = add_ratings(rating_store, scores=(5,))
    real_compute = calculator.compute

    def compute_then_rate(url_hash, url=None):
        result = real_compute(url_hash, url)
        rating_store.append(make_rating(URL, score=1))
        return result

    aggregation_service.calculator = MagicMock(wraps=calculator)
    aggregation_service.calculator.compute.side_effect = compute_then_rate

    aggregation_service.run_pass()

    assert rating_store.unprocessed_url_hashes() == [url_hash]


# ==================== Batching Tests ====================


def test_batch_size_caps_a_pass(rating_store, stats_store, calculator, clock):
    """Test a pass processes at most aggregation_batch_size URLs."""
    for i in range(3):
        add_ratings(rating_store, url=f"https://example.com/{i}", minutes_ago=10 - i)
    service = AggregationService(
        TrustConfig(aggregation_batch_size=2), rating_store, stats_store, calculator, clock=clock
    )

    first = service.run_pass()
    second = service.run_pass()

    assert first.processed_count == 2
    assert first.remaining == 1
    assert second.processed_count == 1
    assert second.remaining == 0


def test_parallel_workers_match_sequential(rating_store, stats_store, calculator, clock):
    """Test running URLs on a worker pool gives the same stats."""
    hashes = [
        add_ratings(rating_store, url=f"https://example.com/{i}", scores=(i % 5 + 1,) * 3)
        for i in range(8)
    ]
    service = AggregationService(
        TrustConfig(aggregation_workers=4), rating_store, stats_store, calculator, clock=clock
    )

    report = service.run_pass()

    assert report.processed_count == 8
    for url_hash in hashes:
        assert stats_store.get(url_hash) is not None
    assert rating_store.unprocessed_url_hashes() == []


def test_report_durations(aggregation_service, rating_store, clock):
    """Test report timestamps come from the service clock."""
    add_ratings(rating_store)

    report = aggregation_service.run_pass()

    assert report.started_at == FIXED_NOW
    assert report.finished_at == FIXED_NOW
    assert report.duration_seconds == 0.0


def test_metrics_recorded(config, rating_store, stats_store, calculator, clock):
    """Test each pass is handed to the metrics recorder."""
    metrics = MagicMock()
    service = AggregationService(
        config, rating_store, stats_store, calculator, metrics=metrics, clock=clock
    )

    report = service.run_pass()

    metrics.record_report.assert_called_once_with(report)


@pytest.mark.parametrize("workers", [1, 3])
def test_empty_pass(rating_store, stats_store, calculator, clock, workers):
    """Test a pass with nothing to do reports zero."""
    service = AggregationService(
        TrustConfig(aggregation_workers=workers), rating_store, stats_store, calculator, clock=clock
    )

    report = service.run_pass()

    assert report.processed_count == 0
    assert report.outcomes == []
