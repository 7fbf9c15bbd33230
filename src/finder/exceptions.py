"""Custom exceptions for the product finder.

Everything the scan core raises or recovers from lives here to avoid
circular imports between the storage, marketplace and orchestrator layers.
"""


class FinderError(Exception):
    """Base exception for all product finder errors."""


class RemoteUnavailableError(FinderError):
    """Raised when the marketplace lookup fails (network, timeout, auth, API error)."""


class PersistenceError(FinderError):
    """Raised when a snapshot cannot be written to durable storage."""


class ConfigurationError(FinderError):
    """Raised when category or keyword enumeration is misconfigured."""


class CycleInProgressError(FinderError):
    """Raised when a scan is requested while another cycle is running."""
