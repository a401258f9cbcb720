"""
Domain Errors - Business Logic Exceptions

This module defines domain-specific exceptions that represent
business rule violations and upstream failures.
"""


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class InvalidPriceError(DomainError):
    """Raised when a price or calculator input is invalid (e.g., negative or zero)."""
    pass


class ProviderUnavailableError(DomainError):
    """Raised when an upstream provider times out, fails or returns unusable data."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class PersistenceError(DomainError):
    """Raised when a data file cannot be written."""
    pass
