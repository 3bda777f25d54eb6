"""Data models for ratings, domain signals, rules and aggregated stats."""

import re
import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trustscore.common import constants
from trustscore.schemas.validation_rules import normalize_domain


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class ThreatStatus(str, Enum):
    """Threat-intelligence verdict for a domain."""

    SAFE = "safe"
    MALWARE = "malware"
    PHISHING = "phishing"
    UNWANTED = "unwanted"
    UNKNOWN = "unknown"


class ProcessingStatus(str, Enum):
    """How much domain evidence went into a URL's scores."""

    COMMUNITY_ONLY = "community_only"
    COMMUNITY_WITH_BASIC_DOMAIN = "community_with_basic_domain"
    ENHANCED_WITH_DOMAIN_ANALYSIS = "enhanced_with_domain_analysis"


class RatingFlags(BaseModel):
    """Report flags attached to a rating."""

    is_spam: bool = False
    is_misleading: bool = False
    is_scam: bool = False


class Rating(BaseModel):
    """One user's assessment of a URL."""

    id: str = Field(default_factory=_new_id, description="Unique rating id")
    url_hash: str = Field(..., min_length=1, description="Hash of the rated URL")
    domain: Optional[str] = Field(default=None, description="Owning domain")
    url: Optional[str] = Field(default=None, description="Rated URL, when known")
    user_ref: str = Field(..., description="Privacy-hashed user reference")
    score: int = Field(..., ge=constants.MIN_RATING, le=constants.MAX_RATING)
    flags: RatingFlags = Field(default_factory=RatingFlags)
    created_at: datetime = Field(default_factory=_now)
    processed: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0d5c7a1e-2f7e-4a55-9a0b-1f3c2a9b7e10",
                "url_hash": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                "domain": "example.com",
                "url": "https://example.com/article/42",
                "user_ref": "5e884898da28047151d0e56f8dc62927",
                "score": 4,
                "flags": {"is_spam": False, "is_misleading": False, "is_scam": False},
                "created_at": "2025-08-15T10:00:00Z",
                "processed": False,
            }
        }
    )


class DomainSignals(BaseModel):
    """Externally observed facts about a domain, as returned by a provider."""

    domain_age_days: Optional[int] = Field(default=None, ge=0)
    ssl_valid: Optional[bool] = None
    http_status: Optional[int] = Field(default=None, ge=0)
    threat_status: ThreatStatus = ThreatStatus.UNKNOWN


class DomainCacheEntry(DomainSignals):
    """Cached signal snapshot for a domain."""

    domain: str
    checked_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        """True while the entry is within its TTL."""
        return self.expires_at > now

    def signals(self) -> DomainSignals:
        return DomainSignals(
            domain_age_days=self.domain_age_days,
            ssl_valid=self.ssl_valid,
            http_status=self.http_status,
            threat_status=self.threat_status,
        )


class BlacklistRule(BaseModel):
    """Penalty rule keyed by an exact domain or a ``*`` glob pattern."""

    pattern: str = Field(..., min_length=1)
    category: str = Field(..., description="malware, phishing, spam, scam, ...")
    severity: int = Field(..., ge=constants.MIN_SEVERITY, le=constants.MAX_SEVERITY)
    active: bool = True
    source: str = "manual"
    description: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def _normalize_pattern(cls, value: str) -> str:
        # wildcard patterns keep their labels; exact ones share the domain key
        value = value.strip().lower()
        return value if "*" in value else normalize_domain(value)


class ContentTypeRule(BaseModel):
    """Ordered, domain-scoped content classification rule."""

    domain: str
    content_type: str
    url_pattern: Optional[str] = Field(
        default=None, description="Regex searched in the URL; None matches any URL"
    )
    trust_modifier: float = 0.0
    min_ratings_required: int = Field(default=3, ge=0)
    active: bool = True
    priority: int = Field(default=0, description="Evaluation order within a domain")
    description: Optional[str] = None

    @field_validator("domain")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        return normalize_domain(value)

    @field_validator("url_pattern")
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"Invalid url_pattern {value!r}: {e}") from e
        return value


class URLStats(BaseModel):
    """Materialized per-URL aggregate, the engine's externally visible output."""

    url_hash: str
    url: Optional[str] = None
    domain: Optional[str] = None
    domain_score: Optional[float] = Field(default=None, ge=0, le=100)
    community_score: Optional[float] = Field(default=None, ge=0, le=100)
    final_score: Optional[float] = Field(default=None, ge=0, le=100)
    content_type: str = constants.DEFAULT_CONTENT_TYPE
    rating_count: int = 0
    average_rating: Optional[float] = None
    spam_reports: int = 0
    misleading_reports: int = 0
    scam_reports: int = 0
    processing_status: ProcessingStatus = ProcessingStatus.COMMUNITY_ONLY
    last_updated: datetime = Field(default_factory=_now)


class DomainStats(BaseModel):
    """Aggregate view over every URL of a domain."""

    domain: str
    url_count: int
    rating_count: int
    average_rating: Optional[float] = None
    domain_score: Optional[float] = None
    community_score: Optional[float] = None
    final_score: Optional[float] = None
    spam_reports: int = 0
    misleading_reports: int = 0
    scam_reports: int = 0
    top_url_hash: Optional[str] = None
    last_updated: Optional[datetime] = None
