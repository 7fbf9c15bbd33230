"""Abstract marketplace price lookup interface.

The scan core depends only on this contract. "No sold listings" is a
normal None result; transport, auth and API failures raise
RemoteUnavailableError. The orchestrator skips the keyword either way.
"""

from abc import ABC, abstractmethod

from finder.models import PriceSummary


class PriceLookup(ABC):
    """Abstract base class for sold-price summary providers."""

    @abstractmethod
    async def lookup(self, keyword: str) -> PriceSummary | None:
        """Return the sold-price summary for keyword, or None when nothing sold.

        Raises:
            RemoteUnavailableError: On network, timeout, auth or API errors.
        """
        ...

    @property
    def is_configured(self) -> bool:
        """False when the provider lacks credentials; no call would succeed."""
        return True

    async def close(self) -> None:
        """Release any held resources. No-op by default."""
        return None
