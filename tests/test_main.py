"""Tests for engine wiring and the service runner."""

from pathlib import Path

import pytest

from trustscore.config import TrustConfig
from trustscore.main import build_engine, run_service
from trustscore.schemas import DomainSignals, ThreatStatus, hash_url
from trustscore.signals import DomainSignalProvider

RULES_PATH = Path(__file__).resolve().parent.parent / "config" / "rules.yaml"


class StaticProvider(DomainSignalProvider):
    """Provider answering every domain with the same healthy signals."""

    name = "static"

    async def fetch(self, domain):
        return DomainSignals(
            domain_age_days=3000, ssl_valid=True, http_status=200, threat_status=ThreatStatus.SAFE
        )


@pytest.fixture
def engine(monkeypatch):
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    return build_engine(TrustConfig(), rules_path=str(RULES_PATH), provider=StaticProvider())


def test_build_engine_loads_seed_rules(engine):
    """Test the shipped rules file seeds the rule store."""
    assert engine.rules.blacklist_rules()
    assert engine.rules.content_domains()
    assert engine.ingestion.refresher is engine.refresher


def test_build_scheduler_hosts_maintenance_jobs(engine):
    """Test the scheduler runs aggregation and the daily jobs."""
    scheduler = engine.build_scheduler()

    assert [job.name for job in scheduler.jobs] == [
        "aggregation",
        "domain_refresh",
        "rule_generation",
        "retention",
    ]
    assert scheduler.aggregation_job.interval_seconds == engine.config.aggregation_interval_seconds


@pytest.mark.asyncio
async def test_run_once_aggregates_submitted_ratings(engine):
    """Test a rating submitted then aggregated ends up in the URL stats."""
    url = "https://example.com/article/1"
    engine.ingestion.submit_rating(hash_url(url), None, "user-1", 5, url=url)
    await engine.refresher.wait_pending()

    result = await run_service(engine, once=True)

    assert result == {"status": "success", "processed": 1, "skipped": 0, "remaining": 0}
    stats = engine.aggregation.get_url_stats(hash_url(url))
    assert stats.rating_count == 1
    assert stats.domain == "example.com"
    assert engine.ratings.unprocessed_url_hashes() == []


@pytest.mark.asyncio
async def test_run_once_with_recompute(engine):
    """Test recompute followed by a pass leaves nothing unprocessed."""
    url = "https://example.com/article/2"
    engine.ingestion.submit_rating(hash_url(url), None, "user-1", 4, url=url)
    await engine.refresher.wait_pending()

    result = await run_service(engine, once=True, recompute=True)

    assert result["processed"] == 0
    assert engine.aggregation.get_url_stats(hash_url(url)).rating_count == 1
