"""Trust score calculation.

Scores are built from three parts:

* community score from the user ratings of a URL, damped toward neutral
  while there are few ratings;
* domain score from cached external signals, the blacklist and the
  content-type modifier;
* final score, a weighted blend of the two.

The module-level functions are pure and take every weight from the
injected :class:`~trustscore.config.TrustConfig`.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

import structlog

from trustscore.common import clamp, constants, utcnow
from trustscore.config import TrustConfig
from trustscore.rules import (
    GENERAL,
    NOT_BLACKLISTED,
    BlacklistMatcher,
    BlacklistResult,
    ContentClassifier,
    ContentMatch,
)
from trustscore.schemas import (
    DomainSignals,
    ProcessingStatus,
    Rating,
    URLStats,
    extract_domain,
    normalize_domain,
)
from trustscore.stores import DomainSignalCache, RatingStore, StatsStore

logger = structlog.get_logger()

DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class CommunityStats:
    """Counts derived from the rating snapshot of one URL."""

    rating_count: int = 0
    average_rating: Optional[float] = None
    spam_reports: int = 0
    misleading_reports: int = 0
    scam_reports: int = 0

    @classmethod
    def from_ratings(cls, ratings: Iterable[Rating]) -> "CommunityStats":
        ratings = list(ratings)
        if not ratings:
            return cls()
        return cls(
            rating_count=len(ratings),
            average_rating=sum(r.score for r in ratings) / len(ratings),
            spam_reports=sum(1 for r in ratings if r.flags.is_spam),
            misleading_reports=sum(1 for r in ratings if r.flags.is_misleading),
            scam_reports=sum(1 for r in ratings if r.flags.is_scam),
        )


@dataclass(frozen=True)
class TrustScores:
    """Output of one score calculation."""

    domain_score: float
    community_score: float
    final_score: float
    content_type: str
    used_domain_signals: bool = False


def community_score(stats: CommunityStats, config: TrustConfig) -> float:
    """
    Community trust score in [0, 100].

    The average rating is mapped linearly onto 0..100, report ratios are
    subtracted as weighted penalties, and the result is pulled toward the
    neutral score until ``confidence_floor_ratings`` ratings exist.

    Args:
        stats: Rating counts for the URL
        config: Scoring configuration

    Returns:
        Unrounded community score
    """
    if stats.rating_count == 0 or stats.average_rating is None:
        return config.neutral_score

    n = stats.rating_count
    rating_span = constants.MAX_RATING - constants.MIN_RATING
    base = ((stats.average_rating - constants.MIN_RATING) / rating_span) * 100
    base -= (stats.spam_reports / n) * config.spam_penalty
    base -= (stats.misleading_reports / n) * config.misleading_penalty
    base -= (stats.scam_reports / n) * config.scam_penalty

    confidence = min(1.0, n / config.confidence_floor_ratings)
    damped = base * confidence + config.neutral_score * (1 - confidence)

    return clamp(damped)


def signal_adjustment(signals: DomainSignals, config: TrustConfig) -> float:
    """Sum of the age, SSL, HTTP status and threat adjustments for a domain."""
    adjustment = 0.0

    age = signals.domain_age_days
    if age is not None:
        if age >= 5 * DAYS_PER_YEAR:
            adjustment += config.age_bonus_5_years
        elif age >= 2 * DAYS_PER_YEAR:
            adjustment += config.age_bonus_2_years
        elif age >= DAYS_PER_YEAR:
            adjustment += config.age_bonus_1_year
        elif age < config.new_domain_days:
            adjustment -= config.new_domain_penalty

    # unknown SSL state counts as invalid
    if signals.ssl_valid is True:
        adjustment += config.ssl_bonus
    else:
        adjustment -= config.ssl_penalty

    if signals.http_status is not None and signals.http_status >= 400:
        adjustment -= config.http_error_penalty

    adjustment -= config.threat_penalties.get(signals.threat_status.value, 0.0)

    return adjustment


def domain_score(
    signals: Optional[DomainSignals],
    blacklist: BlacklistResult,
    content: ContentMatch,
    config: TrustConfig,
) -> float:
    """
    Domain trust score in [0, 100].

    Args:
        signals: Fresh cached signals, or None when no fresh entry exists
        blacklist: Blacklist check result for the domain
        content: Matched content rule
        config: Scoring configuration

    Returns:
        Unrounded domain score
    """
    score = config.neutral_score
    if signals is not None:
        score += signal_adjustment(signals, config)

    score -= blacklist.penalty
    score += content.trust_modifier

    return clamp(score)


def calculate_trust_scores(
    community: CommunityStats,
    signals: Optional[DomainSignals],
    blacklist: BlacklistResult,
    content: ContentMatch,
    config: TrustConfig,
) -> TrustScores:
    """Combine community and domain scores into the final blended score."""
    community_value = community_score(community, config)
    domain_value = domain_score(signals, blacklist, content, config)
    final_value = clamp(
        config.domain_weight * domain_value + config.community_weight * community_value
    )

    return TrustScores(
        domain_score=round(domain_value, 2),
        community_score=round(community_value, 2),
        final_score=round(final_value, 2),
        content_type=content.content_type,
        used_domain_signals=signals is not None,
    )


def score_category(score: Optional[float]) -> str:
    """Human-readable band for a final score."""
    if score is None:
        return "Unknown"
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    if score >= 20:
        return "Poor"
    return "Very Poor"


@dataclass(frozen=True)
class UrlScoring:
    """Everything computed for one URL during a pass."""

    url_hash: str
    url: Optional[str]
    domain: Optional[str]
    scores: TrustScores
    community: CommunityStats
    rating_ids: Tuple[str, ...]

    @property
    def processing_status(self) -> ProcessingStatus:
        if self.scores.used_domain_signals:
            return ProcessingStatus.ENHANCED_WITH_DOMAIN_ANALYSIS
        if self.domain:
            return ProcessingStatus.COMMUNITY_WITH_BASIC_DOMAIN
        return ProcessingStatus.COMMUNITY_ONLY

    def to_url_stats(self, now: Optional[datetime] = None) -> URLStats:
        average = self.community.average_rating
        return URLStats(
            url_hash=self.url_hash,
            url=self.url,
            domain=self.domain,
            domain_score=self.scores.domain_score,
            community_score=self.scores.community_score,
            final_score=self.scores.final_score,
            content_type=self.scores.content_type,
            rating_count=self.community.rating_count,
            average_rating=round(average, 2) if average is not None else None,
            spam_reports=self.community.spam_reports,
            misleading_reports=self.community.misleading_reports,
            scam_reports=self.community.scam_reports,
            processing_status=self.processing_status,
            last_updated=now or utcnow(),
        )


class TrustScoreCalculator:
    """Gathers the inputs for one URL from the stores and scores it."""

    def __init__(
        self,
        config: TrustConfig,
        ratings: RatingStore,
        cache: DomainSignalCache,
        blacklist: BlacklistMatcher,
        classifier: ContentClassifier,
        stats: Optional[StatsStore] = None,
    ):
        """
        Initialize calculator.

        Args:
            config: Scoring configuration
            ratings: Source of rating snapshots
            cache: Domain signal cache, read only
            blacklist: Blacklist matcher
            classifier: Content-type classifier
            stats: Existing stats, used to resolve a URL's domain when the
                ratings do not carry one
        """
        self.config = config
        self.ratings = ratings
        self.cache = cache
        self.blacklist = blacklist
        self.classifier = classifier
        self.stats = stats

    def resolve_target(
        self, url_hash: str, url: Optional[str], ratings: Iterable[Rating]
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Resolve the URL and domain a url_hash belongs to.

        The explicit URL wins, then the stored stats record, then the most
        recent rating carrying the information.

        Returns:
            Tuple of (url, domain); either may be None
        """
        domain = extract_domain(url) if url else None

        existing = self.stats.get(url_hash) if self.stats is not None else None
        if existing is not None:
            url = url or existing.url
            domain = domain or existing.domain

        for rating in sorted(ratings, key=lambda r: r.created_at, reverse=True):
            if url and domain:
                break
            url = url or rating.url
            domain = domain or rating.domain

        if domain is None and url:
            domain = extract_domain(url)

        return url, normalize_domain(domain) if domain else None

    def compute(self, url_hash: str, url: Optional[str] = None) -> UrlScoring:
        """
        Score one URL from a fresh snapshot of its ratings.

        Args:
            url_hash: URL to score
            url: Full URL if known by the caller

        Returns:
            UrlScoring with scores and the ids of the ratings that were used
        """
        snapshot = self.ratings.ratings_for(url_hash)
        url, domain = self.resolve_target(url_hash, url, snapshot)
        community = CommunityStats.from_ratings(snapshot)

        if domain:
            signals = self.cache.lookup(domain).fresh_entry
            blacklist = self.blacklist.check(domain)
            content = self.classifier.match(url, domain)
        else:
            signals, blacklist, content = None, NOT_BLACKLISTED, GENERAL

        scores = calculate_trust_scores(
            community,
            signals.signals() if signals is not None else None,
            blacklist,
            content,
            self.config,
        )

        logger.debug(
            "URL scored",
            url_hash=url_hash,
            domain=domain or constants.UNKNOWN_DOMAIN,
            rating_count=community.rating_count,
            final_score=scores.final_score,
            blacklisted=blacklist.blacklisted,
        )

        return UrlScoring(
            url_hash=url_hash,
            url=url,
            domain=domain,
            scores=scores,
            community=community,
            rating_ids=tuple(r.id for r in snapshot),
        )
