"""Custom exceptions for the trust score engine."""

from typing import Optional, Dict, Any


class TrustEngineError(Exception):
    """Base exception for all trust engine errors.

    Attributes:
        message: Error message
        context: Additional context about the error
        original_error: Original exception if this wraps another error
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        """Initialize exception with context.

        Args:
            message: Error message
            context: Additional context (e.g., url_hash, domain)
            original_error: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """String representation with context."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}: {self.original_error}]"
        return base


class ValidationError(TrustEngineError):
    """Raised when a rating submission is malformed.

    Never enters aggregation; surfaced to the caller of rating ingestion.

    Common context fields:
        - field: Offending field name
        - value: Rejected value
    """

    pass


class SignalProviderError(TrustEngineError):
    """Raised when an external domain lookup fails or times out.

    Recovered locally: the domain is treated as having no fresh signal.

    Common context fields:
        - domain: Domain being analysed
        - attempts: Number of attempts made
    """

    pass


class AggregationError(TrustEngineError):
    """Raised when scoring or persisting a single URL fails.

    Recovered locally: the URL is skipped for the current pass and its
    ratings stay unprocessed.

    Common context fields:
        - url_hash: URL being aggregated
        - phase: scoring or persisting
    """

    pass


class ConfigurationError(TrustEngineError):
    """Raised when configuration is invalid. Fatal at startup.

    Common context fields:
        - config_path: Path to config file
        - field: Invalid field name
    """

    pass
