"""Scoring package."""

from trustscore.scoring.calculator import (
    CommunityStats,
    TrustScoreCalculator,
    TrustScores,
    UrlScoring,
    calculate_trust_scores,
    community_score,
    domain_score,
    score_category,
    signal_adjustment,
)

__all__ = [
    "CommunityStats",
    "TrustScoreCalculator",
    "TrustScores",
    "UrlScoring",
    "calculate_trust_scores",
    "community_score",
    "domain_score",
    "score_category",
    "signal_adjustment",
]
