"""
Silver Calculators - Item Value, Returns, Break-Even, Tax, Real Return

Pure functions over ``Decimal``; callers supply the live price per gram.

Item valuation:

    metal_value    = weight_g * price_per_gram * purity / 1000
    making_charges = metal_value * making_pct / 100
    gst            = (metal_value + making_charges) * 3%   (if included)

Break-even (jewellery, or bullion with a flat 2% premium and no
hallmarking):

    total_cost = metal + making + 3% GST on metal + 5% GST on making + fees
    break_even_per_gram = total_cost / weight_g

Capital gains (India, post July 2024): held 24 months or more is LTCG at a
flat 12.5%; otherwise STCG at the marginal slab rate of income + gain.
4% health and education cess applies to both. No indexation.

Real return: CPI (MOSPI, 2012 = 100) when both years are covered,
otherwise compounding an annual estimate (6% by default).

Files that USE this module:
- silverrate.adapters.telegram.handlers (/calc, /returns, /breakeven, /cgtax, /real)
- tests.test_calculator (unit tests)

Files that this module USES:
- silverrate.domain.models (result dataclasses, TaxRegime)
- silverrate.domain.pricing (money, to_positive_decimal)
- silverrate.shared.clock (ist_today)
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from silverrate.domain.errors import InvalidPriceError
from silverrate.domain.models import (
    BreakEven,
    CapitalGainsTax,
    InvestmentReturns,
    ItemValuation,
    RealReturn,
    TaxRegime,
)
from silverrate.domain.pricing import money, to_positive_decimal
from silverrate.shared.clock import ist_today

GST_RATE = Decimal("0.03")
MAKING_GST_RATE = Decimal("0.05")
HALLMARKING_FEE = Decimal("45")
BULLION_PREMIUM_PCT = Decimal("2")
DEFAULT_BUYBACK_DISCOUNT_PCT = Decimal("5")

MIN_CAGR_DAYS = 365

LTCG_HOLDING_MONTHS = 24
DAYS_PER_MONTH = Decimal("30.44")
LTCG_RATE = Decimal("0.125")
CESS_RATE = Decimal("0.04")
DEFAULT_ANNUAL_INCOME = Decimal("1000000")

# (upper bound of the slab, rate); None is the open top slab
TAX_SLABS: Dict[TaxRegime, Sequence[Tuple[Optional[Decimal], Decimal]]] = {
    TaxRegime.NEW: (
        (Decimal("300000"), Decimal("0")),
        (Decimal("700000"), Decimal("0.05")),
        (Decimal("1000000"), Decimal("0.10")),
        (Decimal("1200000"), Decimal("0.15")),
        (Decimal("1500000"), Decimal("0.20")),
        (None, Decimal("0.30")),
    ),
    TaxRegime.OLD: (
        (Decimal("250000"), Decimal("0")),
        (Decimal("500000"), Decimal("0.05")),
        (Decimal("1000000"), Decimal("0.20")),
        (None, Decimal("0.30")),
    ),
}

# All-India CPI (combined), base 2012 = 100; 2025 and 2026 are estimates
CPI_BY_YEAR: Dict[int, Decimal] = {
    2012: Decimal("100.0"),
    2013: Decimal("110.1"),
    2014: Decimal("117.2"),
    2015: Decimal("123.0"),
    2016: Decimal("129.3"),
    2017: Decimal("133.5"),
    2018: Decimal("138.5"),
    2019: Decimal("143.3"),
    2020: Decimal("152.5"),
    2021: Decimal("160.3"),
    2022: Decimal("171.2"),
    2023: Decimal("180.5"),
    2024: Decimal("189.8"),
    2025: Decimal("199.3"),
    2026: Decimal("209.2"),
}
DEFAULT_INFLATION_RATE = Decimal("0.06")

_HUNDRED = Decimal("100")


def _positive(value, what: str) -> Decimal:
    d = to_positive_decimal(value)
    if d is None:
        raise InvalidPriceError(f"{what} must be positive, got {value!r}")
    return d


def _non_negative(value, what: str) -> Decimal:
    d = Decimal(str(value))
    if d < 0:
        raise InvalidPriceError(f"{what} cannot be negative, got {value!r}")
    return d


def _days_between(start: date, end: date) -> int:
    days = (end - start).days
    if days < 0:
        raise InvalidPriceError(f"purchase date {start} is after {end}")
    return days


def value_item(
    weight_g,
    purity,
    price_per_gram,
    making_pct=Decimal("0"),
    include_gst: bool = True,
) -> ItemValuation:
    weight = to_positive_decimal(weight_g)
    if weight is None:
        raise InvalidPriceError(f"weight must be positive, got {weight_g!r}")
    fineness = to_positive_decimal(purity)
    if fineness is None or fineness > 1000:
        raise InvalidPriceError(f"purity must be in (0, 1000], got {purity!r}")
    price = to_positive_decimal(price_per_gram)
    if price is None:
        raise InvalidPriceError(f"price per gram must be positive, got {price_per_gram!r}")
    making = Decimal(str(making_pct))
    if making < 0:
        raise InvalidPriceError(f"making charges cannot be negative, got {making_pct!r}")

    metal_value = weight * price * fineness / 1000
    making_charges = metal_value * making / 100
    subtotal = metal_value + making_charges
    gst = subtotal * GST_RATE if include_gst else Decimal("0")
    return ItemValuation(
        metal_value=money(metal_value),
        making_charges=money(making_charges),
        gst=money(gst),
        total=money(subtotal + gst),
    )


def investment_returns(
    weight_g,
    buy_price_per_gram,
    current_price_per_gram,
    bought_on: Optional[date] = None,
    today: Optional[date] = None,
) -> InvestmentReturns:
    """
    Absolute and annualized return on silver bought at ``buy_price_per_gram``.

    The simple annualized figure is shown for any holding period; CAGR only
    once the holding reaches MIN_CAGR_DAYS.
    """
    weight = _positive(weight_g, "weight")
    invested = weight * _positive(buy_price_per_gram, "purchase price")
    current = weight * _positive(current_price_per_gram, "current price")
    gain = current - invested

    days = annualized = cagr = None
    if bought_on is not None:
        days = _days_between(bought_on, today or ist_today())
        if days > 0:
            annualized = money(gain / invested * Decimal(365) / days * _HUNDRED)
        if days >= MIN_CAGR_DAYS:
            cagr = money(((current / invested) ** (Decimal(365) / days) - 1) * _HUNDRED)

    return InvestmentReturns(
        invested=money(invested),
        current_value=money(current),
        gain=money(gain),
        gain_pct=money(gain / invested * _HUNDRED),
        holding_days=days,
        annualized_pct=annualized,
        cagr_pct=cagr,
    )


def break_even(
    weight_g,
    buy_price_per_gram,
    current_price_per_gram,
    making_pct=None,
    hallmarking_fee=HALLMARKING_FEE,
    other_fees=Decimal("0"),
    buyback_discount_pct=DEFAULT_BUYBACK_DISCOUNT_PCT,
) -> BreakEven:
    """
    Price per gram at which selling recovers the full purchase cost.

    ``making_pct=None`` means bullion: a flat BULLION_PREMIUM_PCT instead of
    making charges and no hallmarking fee.
    """
    weight = _positive(weight_g, "weight")
    buy = _positive(buy_price_per_gram, "purchase price")
    current = _positive(current_price_per_gram, "current price")
    bullion = making_pct is None
    making_rate = BULLION_PREMIUM_PCT if bullion else _non_negative(making_pct, "making charges")
    discount = _non_negative(buyback_discount_pct, "buyback discount")
    if discount >= _HUNDRED:
        raise InvalidPriceError(f"buyback discount must be below 100%, got {buyback_discount_pct!r}")

    metal = weight * buy
    making = metal * making_rate / _HUNDRED
    gst = metal * GST_RATE + making * MAKING_GST_RATE
    fees = _non_negative(other_fees, "fees")
    if not bullion:
        fees += _non_negative(hallmarking_fee, "hallmarking fee")
    total = metal + making + gst + fees
    per_gram = total / weight

    return BreakEven(
        metal_cost=money(metal),
        making_charges=money(making),
        gst=money(gst),
        fees=money(fees),
        total_cost=money(total),
        break_even_per_gram=money(per_gram),
        current_per_gram=money(current),
        difference_pct=money((current - per_gram) / per_gram * _HUNDRED),
        buyback_per_gram=money(current * (1 - discount / _HUNDRED)),
    )


def marginal_slab_rate(total_income: Decimal, regime: TaxRegime = TaxRegime.NEW) -> Decimal:
    """Income-tax rate of the slab ``total_income`` falls in."""
    slabs = TAX_SLABS[regime]
    for upper, rate in slabs:
        if upper is not None and total_income <= upper:
            return rate
    return slabs[-1][1]


def is_long_term(holding_days: int) -> bool:
    return Decimal(holding_days) / DAYS_PER_MONTH >= LTCG_HOLDING_MONTHS


def capital_gains_tax(
    weight_g,
    buy_price_per_gram,
    sale_price_per_gram,
    bought_on: date,
    sold_on: Optional[date] = None,
    annual_income=DEFAULT_ANNUAL_INCOME,
    regime: TaxRegime = TaxRegime.NEW,
) -> CapitalGainsTax:
    """
    Tax on selling physical silver, jewellery or a silver ETF.

    A loss (or no gain) carries no tax; the proceeds are returned untouched.
    """
    weight = _positive(weight_g, "weight")
    cost = weight * _positive(buy_price_per_gram, "purchase price")
    proceeds = weight * _positive(sale_price_per_gram, "sale price")
    income = _non_negative(annual_income, "annual income")
    days = _days_between(bought_on, sold_on or ist_today())
    long_term = is_long_term(days)
    gain = proceeds - cost

    zero = Decimal("0")
    if gain <= 0:
        return CapitalGainsTax(
            holding_days=days,
            long_term=long_term,
            purchase_cost=money(cost),
            sale_proceeds=money(proceeds),
            gain=money(gain),
            tax_rate=zero,
            tax=money(zero),
            cess=money(zero),
            total_tax=money(zero),
            net_proceeds=money(proceeds),
            effective_rate_pct=money(zero),
        )

    rate = LTCG_RATE if long_term else marginal_slab_rate(income + gain, regime)
    tax = gain * rate
    cess = tax * CESS_RATE
    total = tax + cess
    return CapitalGainsTax(
        holding_days=days,
        long_term=long_term,
        purchase_cost=money(cost),
        sale_proceeds=money(proceeds),
        gain=money(gain),
        tax_rate=rate,
        tax=money(tax),
        cess=money(cess),
        total_tax=money(total),
        net_proceeds=money(proceeds - total),
        effective_rate_pct=money(total / gain * _HUNDRED),
    )


def inflation_over(bought_on: date, sold_on: date, annual_rate: Optional[Decimal] = None) -> Tuple[Decimal, str]:
    """
    Cumulative inflation between two dates as a fraction, and its source.

    Uses CPI when both calendar years are covered and no annual rate is
    forced; otherwise compounds ``annual_rate`` (DEFAULT_INFLATION_RATE).
    """
    start_cpi = CPI_BY_YEAR.get(bought_on.year)
    end_cpi = CPI_BY_YEAR.get(sold_on.year)
    if annual_rate is None and start_cpi and end_cpi:
        return (end_cpi - start_cpi) / start_cpi, "CPI"
    rate = annual_rate if annual_rate is not None else DEFAULT_INFLATION_RATE
    years = Decimal((sold_on - bought_on).days) / Decimal(365)
    return (1 + rate) ** years - 1, "estimate"


def real_return(
    invested,
    current_value,
    bought_on: date,
    sold_on: Optional[date] = None,
    annual_inflation: Optional[Decimal] = None,
) -> RealReturn:
    """Return after inflation: (1 + nominal) / (1 + inflation) - 1."""
    cost = _positive(invested, "invested amount")
    value = _positive(current_value, "current value")
    sold_on = sold_on or ist_today()
    days = _days_between(bought_on, sold_on)
    if days == 0:
        raise InvalidPriceError("holding period must be at least one day")
    if annual_inflation is not None:
        annual_inflation = _non_negative(annual_inflation, "inflation rate")

    inflation, source = inflation_over(bought_on, sold_on, annual_inflation)
    nominal = (value - cost) / cost
    real = (1 + nominal) / (1 + inflation) - 1
    return RealReturn(
        invested=money(cost),
        current_value=money(value),
        holding_days=days,
        nominal_pct=money(nominal * _HUNDRED),
        inflation_pct=money(inflation * _HUNDRED),
        inflation_source=source,
        real_pct=money(real * _HUNDRED),
        real_gain=money(cost * real),
    )
