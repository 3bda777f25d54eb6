"""Domain signal provider abstract class."""

from abc import ABC, abstractmethod

from trustscore.schemas import DomainSignals


class DomainSignalProvider(ABC):
    """Abstract base class for external domain signal sources."""

    name = "provider"

    @abstractmethod
    async def fetch(self, domain: str) -> DomainSignals:
        """
        Look up external signals for a domain.

        Args:
            domain: Normalized domain name

        Returns:
            DomainSignals; fields the provider could not determine stay None
            (threat status ``unknown``)

        Raises:
            SignalProviderError: If the lookup fails
        """
        pass
