"""
Domain Models - Pure Business Objects

This module contains domain models representing core business concepts:
- Upstream observations (spot price, exchange rate)
- Immutable pricing configuration
- Derived local prices and the explicit "unavailable" outcome
- History, daily extremes and window statistics
- Shanghai (SGE) comparison, city prices and item valuation
- Investment calculator results (returns, break-even, capital gains tax,
  inflation-adjusted return)

All money values are ``Decimal``. Instances are immutable; enrichment
(24h change, intraday extremes) produces a new instance via
``dataclasses.replace``.

Files that USE this module:
- silverrate.domain.* (pricing, analytics, calculator, market_hours)
- silverrate.application.* (all services use domain models)
- silverrate.adapters.* (adapters create and use domain models)
- tests.* (tests use domain models for test data)

Files that this module USES:
- None (pure domain layer, no external dependencies)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from dataclasses import dataclass, field  # Decorators for creating data classes
from datetime import date, datetime, timezone  # Date/time utilities for timestamps
from decimal import Decimal  # Exact money arithmetic
from enum import Enum  # Enumerations for units and currency pairs
from typing import Optional, Tuple, Union  # Type hints

TROY_OUNCE_GRAMS = Decimal("31.1034768")
TOLA_GRAMS = Decimal("11.6638")
GRAMS_PER_KG = Decimal("1000")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PriceUnit(str, Enum):
    PER_TROY_OUNCE = "per_troy_ounce"


class CurrencyPair(str, Enum):
    """Exchange-rate pairs quoted as units of the quote currency per 1 USD."""
    USD_INR = "USD/INR"
    USD_CNY = "USD/CNY"

    @property
    def quote(self) -> str:
        return self.value.split("/")[1]


@dataclass(frozen=True)
class SpotPrice:
    """
    COMEX silver futures price in USD per troy ounce.

    Attributes:
        value_usd: Last traded price
        as_of: Upstream observation time (UTC)
        previous_close_usd: Previous session close, when the feed reports it
        source: Name of the provider
    """
    value_usd: Decimal
    as_of: datetime
    unit: PriceUnit = PriceUnit.PER_TROY_OUNCE
    previous_close_usd: Optional[Decimal] = None
    source: str = "yahoo"

    @property
    def change_percent(self) -> Optional[Decimal]:
        """Session change vs previous close, in percent."""
        if not self.previous_close_usd:
            return None
        return (self.value_usd - self.previous_close_usd) / self.previous_close_usd * 100


@dataclass(frozen=True)
class ExchangeRate:
    """Units of the quote currency per 1 USD."""
    pair: CurrencyPair
    rate: Decimal
    as_of: datetime
    source: str = ""


@dataclass(frozen=True)
class PricingConfig:
    """
    Duty, tax and premium applied on top of the converted spot price.

    All percentages are fractions (0.06 means 6%).
    """
    import_duty: Decimal
    gst: Decimal
    premium: Decimal
    currency: CurrencyPair = CurrencyPair.USD_INR
    troy_ounce_grams: Decimal = TROY_OUNCE_GRAMS

    @property
    def multiplier(self) -> Decimal:
        return (1 + self.import_duty) * (1 + self.gst) * (1 + self.premium)


@dataclass(frozen=True)
class DerivedPrice:
    """
    Local-currency silver price derived from spot and exchange rate.

    price_per_kg is always exactly 1000 x price_per_gram. The optional
    fields are filled in by the price service when the data is available.
    """
    price_per_gram: Decimal
    price_per_kg: Decimal
    currency: str
    spot_usd: Decimal
    exchange_rate: Decimal
    as_of: datetime
    source: str = ""
    change_24h: Optional[Decimal] = None
    change_percent_24h: Optional[Decimal] = None
    today_high: Optional[Decimal] = None
    today_low: Optional[Decimal] = None
    today_open: Optional[Decimal] = None

    @property
    def price_per_10_gram(self) -> Decimal:
        return self.price_per_gram * 10

    @property
    def price_per_tola(self) -> Decimal:
        return self.price_per_gram * TOLA_GRAMS

    @property
    def price_per_ounce(self) -> Decimal:
        return self.price_per_gram * TROY_OUNCE_GRAMS


@dataclass(frozen=True)
class Unavailable:
    """No price could be produced. Never carries a number."""
    reason: str
    as_of: datetime = field(default_factory=_now)


PriceResult = Union[DerivedPrice, Unavailable]


@dataclass(frozen=True)
class HistoricalPricePoint:
    date: date
    price: Decimal
    source: str = "stored"


@dataclass(frozen=True)
class StoredDailyPrice:
    """One end-of-day record persisted in the history file."""
    date: date
    price_per_gram: Decimal
    price_per_kg: Decimal
    comex_usd_oz: Decimal
    usd_inr_rate: Decimal
    source: str
    timestamp: datetime


@dataclass(frozen=True)
class WindowStats:
    """N-day low / average / high. at_high is True when today set the high."""
    low: Decimal
    average: Decimal
    high: Decimal
    days: int
    at_high: bool = False


@dataclass(frozen=True)
class DailyExtremes:
    """Intraday high/low/open for one IST calendar day."""
    date: date
    high: Decimal
    high_time: datetime
    low: Decimal
    low_time: datetime
    open_price: Decimal
    last_updated: datetime


@dataclass(frozen=True)
class WeeklySummary:
    week_start: date
    week_end: date
    opening_price: Decimal
    closing_price: Decimal
    week_high: Decimal
    week_low: Decimal
    average: Decimal
    change: Decimal
    change_percent: Decimal
    daily_prices: Tuple[HistoricalPricePoint, ...]
    outlook: str


@dataclass(frozen=True)
class MarketStatus:
    """Shanghai Gold Exchange trading state at a point in time."""
    is_open: bool
    session: str  # "day", "night", "pre-market", "closed"
    next_session: Optional[str] = None


@dataclass(frozen=True)
class ShanghaiPrice:
    """SGE silver estimate derived from COMEX plus the Shanghai premium."""
    price_per_kg_cny: Decimal
    price_per_gram_cny: Decimal
    price_per_oz_cny: Decimal
    price_per_oz_usd: Decimal
    price_per_gram_usd: Decimal
    price_per_kg_usd: Decimal
    price_per_gram_inr: Decimal
    price_per_kg_inr: Decimal
    india_rate_per_gram: Decimal
    comex_usd: Decimal
    premium_percent: Decimal
    premium_usd: Decimal
    usd_cny: Decimal
    usd_inr: Decimal
    cny_inr: Decimal
    as_of: datetime
    change_24h_percent: Optional[Decimal] = None
    market: Optional[MarketStatus] = None
    is_estimate: bool = True


@dataclass(frozen=True)
class CityConfig:
    city: str
    state: str
    premium_per_gram: Decimal
    making_charges_pct: Decimal
    gst_pct: Decimal = Decimal("3")


@dataclass(frozen=True)
class CityPrice:
    city: str
    state: str
    price_per_gram: Decimal
    price_per_kg: Decimal
    making_charges_pct: Decimal
    gst_pct: Decimal


@dataclass(frozen=True)
class ItemValuation:
    metal_value: Decimal
    making_charges: Decimal
    gst: Decimal
    total: Decimal


@dataclass(frozen=True)
class InvestmentReturns:
    invested: Decimal
    current_value: Decimal
    gain: Decimal
    gain_pct: Decimal
    holding_days: Optional[int] = None
    annualized_pct: Optional[Decimal] = None  # simple, non-compounding
    cagr_pct: Optional[Decimal] = None  # holdings of a year or more only

    @property
    def is_profit(self) -> bool:
        return self.gain >= 0


@dataclass(frozen=True)
class BreakEven:
    """Cost of a purchase and the per-gram price needed to recover it."""
    metal_cost: Decimal
    making_charges: Decimal
    gst: Decimal
    fees: Decimal
    total_cost: Decimal
    break_even_per_gram: Decimal
    current_per_gram: Decimal
    difference_pct: Decimal
    buyback_per_gram: Decimal  # current price less the jeweller's buyback discount

    @property
    def above_break_even(self) -> bool:
        return self.current_per_gram >= self.break_even_per_gram

    @property
    def buyback_above_break_even(self) -> bool:
        return self.buyback_per_gram >= self.break_even_per_gram


class TaxRegime(str, Enum):
    NEW = "new"
    OLD = "old"


@dataclass(frozen=True)
class CapitalGainsTax:
    holding_days: int
    long_term: bool
    purchase_cost: Decimal
    sale_proceeds: Decimal
    gain: Decimal
    tax_rate: Decimal
    tax: Decimal
    cess: Decimal
    total_tax: Decimal
    net_proceeds: Decimal
    effective_rate_pct: Decimal

    @property
    def tax_type(self) -> str:
        return "LTCG" if self.long_term else "STCG"


@dataclass(frozen=True)
class RealReturn:
    invested: Decimal
    current_value: Decimal
    holding_days: int
    nominal_pct: Decimal
    inflation_pct: Decimal  # cumulative over the holding period
    inflation_source: str  # "CPI" or "estimate"
    real_pct: Decimal
    real_gain: Decimal


@dataclass(frozen=True)
class PriceDriver:
    """One factor explaining today's move."""
    factor: str
    impact: str  # "positive", "negative", "neutral"
    description: str
    value: Optional[str] = None

