"""
Base Provider Interfaces for Spot Price and Exchange Rate Providers

This module defines the abstract base classes that all upstream adapters
implement. Implementations raise ProviderUnavailableError on any failure and
never substitute a value of their own.

Files that USE this module:
- silverrate.adapters.providers.yahoo (YahooFinanceProvider implements both)
- silverrate.adapters.providers.frankfurter (FrankfurterProvider)
- silverrate.adapters.providers.open_er (OpenErProvider)
- silverrate.application.price_service (FxChain over ExchangeRateProvider)

Files that this module USES:
- silverrate.domain.models (SpotPrice, ExchangeRate, CurrencyPair)
"""
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List, Tuple

from silverrate.domain.models import CurrencyPair, ExchangeRate, SpotPrice


class SpotPriceProvider(ABC):
    name: str = ""

    @abstractmethod
    def spot_price(self) -> SpotPrice:
        """Return the latest silver price in USD per troy ounce."""
        raise NotImplementedError

    @abstractmethod
    def daily_closes(self, days: int) -> List[Tuple[date, Decimal]]:
        """Return (date, close in USD/oz) pairs for roughly the last ``days`` days."""
        raise NotImplementedError


class ExchangeRateProvider(ABC):
    name: str = ""

    @abstractmethod
    def rate(self, pair: CurrencyPair) -> ExchangeRate:
        """Return units of the quote currency per 1 USD."""
        raise NotImplementedError
