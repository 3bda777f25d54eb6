"""Sample data fixtures for testing."""

import uuid
from datetime import datetime, timedelta, UTC
from typing import Optional

import pytest

from trustscore.config import TrustConfig
from trustscore.schemas import (
    BlacklistRule,
    ContentTypeRule,
    DomainSignals,
    Rating,
    RatingFlags,
    ThreatStatus,
    extract_domain,
    hash_url,
)

FIXED_NOW = datetime(2025, 8, 15, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_rating(
    url: Optional[str] = "https://example.com/article/1",
    score: int = 5,
    domain: Optional[str] = None,
    url_hash: Optional[str] = None,
    created_at: Optional[datetime] = None,
    processed: bool = False,
    is_spam: bool = False,
    is_misleading: bool = False,
    is_scam: bool = False,
) -> Rating:
    """Helper to create a Rating for testing."""
    return Rating(
        url_hash=url_hash or hash_url(url),
        domain=domain if domain is not None else (extract_domain(url) if url else None),
        url=url,
        user_ref=f"user-{uuid.uuid4().hex[:12]}",
        score=score,
        flags=RatingFlags(is_spam=is_spam, is_misleading=is_misleading, is_scam=is_scam),
        created_at=created_at or FIXED_NOW,
        processed=processed,
    )


@pytest.fixture
def clock():
    """Frozen clock starting at FIXED_NOW."""
    return FrozenClock()


@pytest.fixture
def config():
    """Default configuration."""
    return TrustConfig()


@pytest.fixture
def healthy_signals():
    """Signals of an old, reachable, HTTPS-enabled, clean domain."""
    return DomainSignals(
        domain_age_days=3000,
        ssl_valid=True,
        http_status=200,
        threat_status=ThreatStatus.SAFE,
    )


@pytest.fixture
def sample_blacklist_rules():
    """Blacklist rules covering exact and wildcard patterns."""
    return [
        BlacklistRule(pattern="malware-site.com", category="malware", severity=10),
        BlacklistRule(pattern="*.phishing-example.com", category="phishing", severity=9),
        BlacklistRule(pattern="spam-*.net", category="spam", severity=4),
        BlacklistRule(pattern="retired.com", category="spam", severity=6, active=False),
    ]


@pytest.fixture
def sample_content_rules():
    """Content rules for a few well-known platforms."""
    return [
        ContentTypeRule(
            domain="youtube.com",
            content_type="video",
            url_pattern=r"/watch\?v=",
            trust_modifier=5,
            min_ratings_required=2,
            priority=0,
        ),
        ContentTypeRule(
            domain="youtube.com",
            content_type="channel",
            url_pattern=r"/@",
            trust_modifier=2,
            priority=1,
        ),
        ContentTypeRule(
            domain="github.com",
            content_type="code",
            trust_modifier=5,
            min_ratings_required=2,
        ),
    ]
