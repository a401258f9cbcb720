"""
Provider Adapters - External API Clients

This package contains adapters for the spot price and exchange rate APIs.
Spot providers implement SpotPriceProvider; FX providers implement
ExchangeRateProvider.
"""

from silverrate.adapters.providers.base import ExchangeRateProvider, SpotPriceProvider
from silverrate.adapters.providers.frankfurter import FrankfurterProvider
from silverrate.adapters.providers.open_er import OpenErProvider
from silverrate.adapters.providers.yahoo import YahooFinanceProvider


def clear_caches() -> None:
    """Drop every provider's TTL cache."""
    for provider in (YahooFinanceProvider, FrankfurterProvider, OpenErProvider):
        provider.clear_cache()


__all__ = [
    "ExchangeRateProvider",
    "SpotPriceProvider",
    "FrankfurterProvider",
    "OpenErProvider",
    "YahooFinanceProvider",
    "clear_caches",
]
