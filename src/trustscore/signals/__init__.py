"""Domain signal providers and cache refresh."""

from trustscore.signals.provider import DomainSignalProvider
from trustscore.signals.http_provider import HTTPSignalProvider, estimate_domain_age
from trustscore.signals.refresher import DomainSignalRefresher, RefreshStatus

__all__ = [
    "DomainSignalProvider",
    "HTTPSignalProvider",
    "estimate_domain_age",
    "DomainSignalRefresher",
    "RefreshStatus",
]
