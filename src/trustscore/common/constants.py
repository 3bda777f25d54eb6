"""Default values for scoring, caching and scheduling."""

from typing import Final

# Scoring
NEUTRAL_SCORE: Final[float] = 50.0
MIN_SCORE: Final[float] = 0.0
MAX_SCORE: Final[float] = 100.0
DEFAULT_DOMAIN_WEIGHT: Final[float] = 0.4
DEFAULT_COMMUNITY_WEIGHT: Final[float] = 0.6
DEFAULT_SPAM_PENALTY: Final[float] = 30.0
DEFAULT_MISLEADING_PENALTY: Final[float] = 25.0
DEFAULT_SCAM_PENALTY: Final[float] = 40.0
DEFAULT_CONFIDENCE_FLOOR_RATINGS: Final[int] = 5

# Ratings
MIN_RATING: Final[int] = 1
MAX_RATING: Final[int] = 5

# Blacklist
DEFAULT_MAX_BLACKLIST_PENALTY: Final[float] = 50.0
DEFAULT_SEVERITY_MULTIPLIER: Final[float] = 5.0
MIN_SEVERITY: Final[int] = 1
MAX_SEVERITY: Final[int] = 10

# Content types
DEFAULT_CONTENT_TYPE: Final[str] = "general"
UNKNOWN_DOMAIN: Final[str] = "unknown"

# Domain signal cache
DEFAULT_CACHE_TTL_DAYS: Final[int] = 7
DEFAULT_CACHE_PURGE_GRACE_DAYS: Final[int] = 30

# Signal refresh (external providers)
DEFAULT_REFRESH_CONCURRENCY: Final[int] = 3
DEFAULT_REFRESH_BATCH_DELAY: Final[float] = 1.0  # seconds between batches
DEFAULT_REFRESH_BATCH_LIMIT: Final[int] = 20
DEFAULT_REFRESH_RETRIES: Final[int] = 3
DEFAULT_REFRESH_BACKOFF: Final[float] = 1.0
DEFAULT_HTTP_TIMEOUT: Final[int] = 10

# Aggregation scheduling
DEFAULT_AGGREGATION_INTERVAL: Final[int] = 300  # 5 minutes
DEFAULT_AGGREGATION_BATCH_SIZE: Final[int] = 1000
DEFAULT_AGGREGATION_WORKERS: Final[int] = 1
DAILY_INTERVAL: Final[int] = 86_400

# Retention
DEFAULT_RATING_RETENTION_DAYS: Final[int] = 7
DEFAULT_STATS_RETENTION_DAYS: Final[int] = 365

# Content rule generation
RULE_GENERATION_MIN_RATINGS: Final[int] = 3
RULE_GENERATION_DOMAIN_LIMIT: Final[int] = 50

# Service Defaults
DEFAULT_LOG_LEVEL: Final[str] = "INFO"
DEFAULT_CONFIG_PATH: Final[str] = "config/trust.yaml"
DEFAULT_RULES_PATH: Final[str] = "config/rules.yaml"
ENV_PREFIX: Final[str] = "TRUST_"
