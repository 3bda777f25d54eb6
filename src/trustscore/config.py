"""Configuration loading and validation.

Every weight and threshold used by the scoring engine lives in
:class:`TrustConfig`. Values come from (lowest to highest precedence) the
built-in defaults, the YAML configuration file and ``TRUST_<FIELD>``
environment variables. Any inconsistent value is fatal: loading raises
:class:`~trustscore.common.ConfigurationError` instead of silently falling
back to a default.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pydantic
import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from trustscore.common import ConfigurationError, constants, get_env
from trustscore.schemas import BlacklistRule, ContentTypeRule

logger = structlog.get_logger()

# YAML sections are purely organisational; their keys are flattened.
CONFIG_SECTIONS = (
    "scoring",
    "domain_scoring",
    "blacklist",
    "cache",
    "aggregation",
    "refresh",
    "retention",
    "monitoring",
)


class TrustConfig(BaseModel):
    """Scoring weights, thresholds and runtime settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Blend
    domain_weight: float = Field(default=constants.DEFAULT_DOMAIN_WEIGHT, ge=0, le=1)
    community_weight: float = Field(
        default=constants.DEFAULT_COMMUNITY_WEIGHT, ge=0, le=1
    )
    neutral_score: float = Field(default=constants.NEUTRAL_SCORE, ge=0, le=100)

    # Community scoring
    spam_penalty: float = Field(default=constants.DEFAULT_SPAM_PENALTY, ge=0, le=100)
    misleading_penalty: float = Field(
        default=constants.DEFAULT_MISLEADING_PENALTY, ge=0, le=100
    )
    scam_penalty: float = Field(default=constants.DEFAULT_SCAM_PENALTY, ge=0, le=100)
    confidence_floor_ratings: int = Field(
        default=constants.DEFAULT_CONFIDENCE_FLOOR_RATINGS, ge=1
    )

    # Domain scoring
    age_bonus_5_years: float = 15.0
    age_bonus_2_years: float = 10.0
    age_bonus_1_year: float = 5.0
    new_domain_penalty: float = Field(default=10.0, ge=0)
    new_domain_days: int = Field(default=30, ge=0)
    ssl_bonus: float = 5.0
    ssl_penalty: float = Field(default=15.0, ge=0)
    http_error_penalty: float = Field(default=20.0, ge=0)
    threat_penalties: Dict[str, float] = Field(
        default_factory=lambda: {"malware": 50.0, "phishing": 45.0, "unwanted": 30.0}
    )

    # Blacklist
    max_blacklist_penalty: float = Field(
        default=constants.DEFAULT_MAX_BLACKLIST_PENALTY, ge=0, le=100
    )
    blacklist_severity_multiplier: float = Field(
        default=constants.DEFAULT_SEVERITY_MULTIPLIER, ge=0
    )

    # Domain signal cache
    cache_ttl_days: int = Field(default=constants.DEFAULT_CACHE_TTL_DAYS, ge=1, le=365)

    # Aggregation
    aggregation_interval_seconds: int = Field(
        default=constants.DEFAULT_AGGREGATION_INTERVAL, ge=1
    )
    aggregation_batch_size: int = Field(
        default=constants.DEFAULT_AGGREGATION_BATCH_SIZE, ge=1
    )
    aggregation_workers: int = Field(
        default=constants.DEFAULT_AGGREGATION_WORKERS, ge=1, le=64
    )

    # Signal refresh
    refresh_concurrency: int = Field(default=constants.DEFAULT_REFRESH_CONCURRENCY, ge=1)
    refresh_batch_delay: float = Field(
        default=constants.DEFAULT_REFRESH_BATCH_DELAY, ge=0
    )
    refresh_batch_limit: int = Field(default=constants.DEFAULT_REFRESH_BATCH_LIMIT, ge=1)
    refresh_retries: int = Field(default=constants.DEFAULT_REFRESH_RETRIES, ge=1)
    refresh_backoff: float = Field(default=constants.DEFAULT_REFRESH_BACKOFF, ge=0)
    http_timeout: int = Field(default=constants.DEFAULT_HTTP_TIMEOUT, ge=1)
    safe_browsing_api_key: Optional[str] = None

    # Retention
    rating_retention_days: int = Field(
        default=constants.DEFAULT_RATING_RETENTION_DAYS, ge=1
    )
    stats_retention_days: int = Field(
        default=constants.DEFAULT_STATS_RETENTION_DAYS, ge=1
    )
    cache_purge_grace_days: int = Field(
        default=constants.DEFAULT_CACHE_PURGE_GRACE_DAYS, ge=0
    )

    # Monitoring
    pushgateway_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "TrustConfig":
        if abs(self.domain_weight + self.community_weight - 1.0) > 1e-6:
            raise ValueError(
                "domain_weight and community_weight must sum to 1.0 "
                f"(got {self.domain_weight} + {self.community_weight})"
            )
        for status, penalty in self.threat_penalties.items():
            if penalty < 0:
                raise ValueError(f"threat penalty for '{status}' must be >= 0")
        return self

    def fingerprint(self) -> Dict[str, Any]:
        """Scoring-relevant values; a change here calls for a full recompute."""
        return self.model_dump(
            exclude={
                "aggregation_interval_seconds",
                "aggregation_batch_size",
                "aggregation_workers",
                "refresh_concurrency",
                "refresh_batch_delay",
                "refresh_batch_limit",
                "refresh_retries",
                "refresh_backoff",
                "http_timeout",
                "safe_browsing_api_key",
                "rating_retention_days",
                "stats_retention_days",
                "cache_purge_grace_days",
                "pushgateway_url",
            }
        )


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "Configuration file is not valid YAML",
            context={"config_path": str(path)},
            original_error=e,
        )
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            context={"config_path": str(path)},
        )
    return data


def _flatten(raw: Dict[str, Any]) -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in raw.items():
        if key in CONFIG_SECTIONS and isinstance(value, dict):
            flat.update(value)
        else:
            flat[key] = value
    return flat


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for name in TrustConfig.model_fields:
        # mapping-valued settings are file-only
        if name == "threat_penalties":
            continue
        value = get_env(f"{constants.ENV_PREFIX}{name.upper()}")
        if value:
            overrides[name] = value
    return overrides


def build_config(
    values: Optional[Dict[str, Any]] = None, config_path: Optional[str] = None
) -> TrustConfig:
    """
    Validate a flat mapping into a TrustConfig.

    Raises:
        ConfigurationError: If any value is missing, unknown or out of range
    """
    try:
        return TrustConfig(**(values or {}))
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        raise ConfigurationError(
            f"Invalid trust configuration: {first['msg']}",
            context={
                "config_path": config_path or "<defaults>",
                "field": ".".join(str(p) for p in first["loc"]) or "<model>",
            },
            original_error=e,
        )


def load_config(config_path: Optional[str] = None) -> TrustConfig:
    """
    Load configuration from YAML and environment.

    Args:
        config_path: Path to the YAML file. When None, the default path is
            used if it exists, otherwise only defaults and environment apply.

    Returns:
        Validated TrustConfig

    Raises:
        ConfigurationError: If the file is missing/invalid or a value is out
            of bounds
    """
    values: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                "Configuration file not found", context={"config_path": config_path}
            )
        values.update(_flatten(_read_yaml(path)))
    elif Path(constants.DEFAULT_CONFIG_PATH).exists():
        config_path = constants.DEFAULT_CONFIG_PATH
        values.update(_flatten(_read_yaml(Path(config_path))))

    values.update(_env_overrides())

    config = build_config(values, config_path)

    logger.info(
        "Configuration loaded",
        config_path=config_path or "<defaults>",
        domain_weight=config.domain_weight,
        community_weight=config.community_weight,
        cache_ttl_days=config.cache_ttl_days,
    )

    return config


def load_rules(
    rules_path: str,
) -> Tuple[List[BlacklistRule], List[ContentTypeRule]]:
    """
    Load seed blacklist and content-type rules from YAML.

    Content rules without an explicit ``priority`` are ordered by their
    position in the file.

    Raises:
        ConfigurationError: If the file is missing or a rule is invalid
    """
    path = Path(rules_path)
    if not path.exists():
        raise ConfigurationError(
            "Rules file not found", context={"config_path": rules_path}
        )

    data = _read_yaml(path)

    try:
        blacklist = [BlacklistRule(**item) for item in data.get("blacklist") or []]
        content_rules = []
        for position, item in enumerate(data.get("content_rules") or []):
            item = dict(item)
            item.setdefault("priority", position)
            content_rules.append(ContentTypeRule(**item))
    except (pydantic.ValidationError, TypeError) as e:
        raise ConfigurationError(
            "Invalid rule definition",
            context={"config_path": rules_path},
            original_error=e,
        )

    logger.info(
        "Rules loaded",
        rules_path=rules_path,
        blacklist_rules=len(blacklist),
        content_rules=len(content_rules),
    )

    return blacklist, content_rules
