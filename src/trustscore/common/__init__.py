"""Common utilities package."""

from trustscore.common.logging import setup_logging
from trustscore.common.exceptions import (
    TrustEngineError,
    ValidationError,
    SignalProviderError,
    AggregationError,
    ConfigurationError,
)
from trustscore.common.utils import get_env, utcnow, clamp
from trustscore.common import constants

__all__ = [
    "setup_logging",
    "TrustEngineError",
    "ValidationError",
    "SignalProviderError",
    "AggregationError",
    "ConfigurationError",
    "get_env",
    "utcnow",
    "clamp",
    "constants",
]
