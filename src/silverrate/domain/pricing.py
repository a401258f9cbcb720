"""
Price Derivation - Pure Pricing Functions

Turns upstream observations into local-currency prices. Every function here
is pure: no I/O, no clock reads unless a timestamp is passed in, no globals.

    price_per_gram = spot_usd / 31.1034768 * rate * (1+duty) * (1+gst) * (1+premium)
    price_per_kg   = price_per_gram * 1000

Missing or invalid inputs produce ``Unavailable``; these functions never
fall back to a made-up number.

Files that USE this module:
- silverrate.application.price_service (derive_price, derive_shanghai_price, apply_*)
- silverrate.adapters.telegram.handlers (city_prices for /cities)
- tests.test_pricing (unit tests)

Files that this module USES:
- silverrate.domain.models (SpotPrice, ExchangeRate, PricingConfig, DerivedPrice, ...)
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from silverrate.domain.models import (
    CityConfig,
    CityPrice,
    DailyExtremes,
    DerivedPrice,
    ExchangeRate,
    GRAMS_PER_KG,
    MarketStatus,
    PriceResult,
    PricingConfig,
    ShanghaiPrice,
    SpotPrice,
    Unavailable,
)

CENT = Decimal("0.01")
FX_PLACES = Decimal("0.0001")

# Premium (INR per gram over the Mumbai base) and typical making charges
CITY_CONFIG: tuple[CityConfig, ...] = (
    CityConfig("Mumbai", "Maharashtra", Decimal("0"), Decimal("8")),
    CityConfig("Delhi", "Delhi", Decimal("0.20"), Decimal("10")),
    CityConfig("Ahmedabad", "Gujarat", Decimal("0.30"), Decimal("7")),
    CityConfig("Pune", "Maharashtra", Decimal("0.40"), Decimal("9")),
    CityConfig("Surat", "Gujarat", Decimal("0.35"), Decimal("7")),
    CityConfig("Jaipur", "Rajasthan", Decimal("0.50"), Decimal("6")),
    CityConfig("Bangalore", "Karnataka", Decimal("0.60"), Decimal("10")),
    CityConfig("Hyderabad", "Telangana", Decimal("0.55"), Decimal("10")),
    CityConfig("Kolkata", "West Bengal", Decimal("0.70"), Decimal("8")),
    CityConfig("Chennai", "Tamil Nadu", Decimal("0.80"), Decimal("12")),
    CityConfig("Lucknow", "Uttar Pradesh", Decimal("0.65"), Decimal("8")),
    CityConfig("Chandigarh", "Punjab", Decimal("0.55"), Decimal("9")),
    CityConfig("Indore", "Madhya Pradesh", Decimal("0.60"), Decimal("8")),
    CityConfig("Bhopal", "Madhya Pradesh", Decimal("0.70"), Decimal("8")),
    CityConfig("Nagpur", "Maharashtra", Decimal("0.50"), Decimal("8")),
    CityConfig("Patna", "Bihar", Decimal("0.90"), Decimal("9")),
    CityConfig("Visakhapatnam", "Andhra Pradesh", Decimal("0.85"), Decimal("10")),
    CityConfig("Kochi", "Kerala", Decimal("1.20"), Decimal("11")),
    CityConfig("Coimbatore", "Tamil Nadu", Decimal("1.00"), Decimal("11")),
    CityConfig("Thiruvananthapuram", "Kerala", Decimal("1.40"), Decimal("12")),
)


def money(value: Decimal, places: Decimal = CENT) -> Decimal:
    """Round half-up to the given number of places (2 dp by default)."""
    return value.quantize(places, rounding=ROUND_HALF_UP)


def to_positive_decimal(value: object) -> Optional[Decimal]:
    """
    Coerce an upstream number into a positive finite Decimal.

    Floats go through ``str`` so 30.5 becomes Decimal("30.5") rather than its
    binary expansion. Returns None for anything missing, non-numeric,
    non-finite, zero or negative.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not d.is_finite() or d <= 0:
        return None
    return d


def derive_price(
    spot: Optional[SpotPrice],
    rate: Optional[ExchangeRate],
    config: PricingConfig,
) -> PriceResult:
    """
    Derive the local price per gram and per kilogram.

    Args:
        spot: COMEX spot price in USD per troy ounce (or None if the fetch failed)
        rate: Exchange rate for config.currency (or None if the fetch failed)
        config: Duty, GST and premium to apply

    Returns:
        DerivedPrice, or Unavailable naming the first missing/invalid input
    """
    if spot is None:
        return Unavailable("spot price unavailable")
    if rate is None:
        return Unavailable("exchange rate unavailable")
    if rate.pair != config.currency:
        return Unavailable(f"exchange rate {rate.pair.value} does not match {config.currency.value}")

    spot_usd = to_positive_decimal(spot.value_usd)
    if spot_usd is None:
        return Unavailable(f"invalid spot price: {spot.value_usd!r}")
    fx = to_positive_decimal(rate.rate)
    if fx is None:
        return Unavailable(f"invalid exchange rate: {rate.rate!r}")

    per_gram = money(spot_usd / config.troy_ounce_grams * fx * config.multiplier)
    return DerivedPrice(
        price_per_gram=per_gram,
        price_per_kg=per_gram * GRAMS_PER_KG,
        currency=config.currency.quote,
        spot_usd=spot_usd,
        exchange_rate=fx,
        as_of=max(spot.as_of, rate.as_of),
        source=f"{spot.source}+{rate.source}" if rate.source else spot.source,
    )


def derive_shanghai_price(
    spot: Optional[SpotPrice],
    usd_cny: Optional[ExchangeRate],
    usd_inr: Optional[ExchangeRate],
    config: PricingConfig,
    india_config: PricingConfig,
    market: Optional[MarketStatus] = None,
) -> Union[ShanghaiPrice, Unavailable]:
    """
    Estimate the SGE silver price as COMEX plus the Shanghai premium.

    Prices in CNY and USD carry only the Shanghai premium. INR conversions of
    the Shanghai price carry no Indian duties; india_rate_per_gram is the
    domestic price derived with india_config for side-by-side comparison.
    """
    if spot is None:
        return Unavailable("spot price unavailable")
    if usd_cny is None:
        return Unavailable("USD/CNY rate unavailable")
    if usd_inr is None:
        return Unavailable("USD/INR rate unavailable")

    comex = to_positive_decimal(spot.value_usd)
    cny = to_positive_decimal(usd_cny.rate)
    inr = to_positive_decimal(usd_inr.rate)
    if comex is None or cny is None or inr is None:
        return Unavailable("invalid Shanghai pricing input")

    oz = config.troy_ounce_grams
    shanghai_usd_oz = comex * (1 + config.premium)
    per_gram_usd = shanghai_usd_oz / oz
    per_gram_cny = per_gram_usd * cny
    per_gram_inr = per_gram_usd * inr

    india = derive_price(spot, usd_inr, india_config)
    if isinstance(india, Unavailable):
        return india

    change = spot.change_percent
    return ShanghaiPrice(
        price_per_kg_cny=money(per_gram_cny * GRAMS_PER_KG),
        price_per_gram_cny=money(per_gram_cny),
        price_per_oz_cny=money(shanghai_usd_oz * cny),
        price_per_oz_usd=money(shanghai_usd_oz),
        price_per_gram_usd=money(per_gram_usd),
        price_per_kg_usd=money(per_gram_usd * GRAMS_PER_KG),
        price_per_gram_inr=money(per_gram_inr),
        price_per_kg_inr=money(per_gram_inr * GRAMS_PER_KG, Decimal("1")),
        india_rate_per_gram=india.price_per_gram,
        comex_usd=money(comex),
        premium_percent=money(config.premium * 100),
        premium_usd=money(shanghai_usd_oz - comex),
        usd_cny=money(cny, FX_PLACES),
        usd_inr=money(inr),
        cny_inr=money(inr / cny, FX_PLACES),
        as_of=max(spot.as_of, usd_cny.as_of, usd_inr.as_of),
        change_24h_percent=money(change) if change is not None else None,
        market=market,
    )


def apply_change(price: DerivedPrice, previous: Optional[Decimal]) -> DerivedPrice:
    """Attach the 24h change vs a previous close. No previous close leaves the price untouched."""
    prev = to_positive_decimal(previous)
    if prev is None:
        return price
    change = price.price_per_gram - prev
    return replace(
        price,
        change_24h=money(change),
        change_percent_24h=money(change / prev * 100),
    )


def apply_extremes(price: DerivedPrice, extremes: Optional[DailyExtremes]) -> DerivedPrice:
    """
    Attach today's high/low/open.

    Without tracked extremes all three fall back to the current price. The
    current price is always folded in so low <= current <= high holds.
    """
    current = price.price_per_gram
    if extremes is None:
        return replace(price, today_high=current, today_low=current, today_open=current)
    return replace(
        price,
        today_high=max(extremes.high, current),
        today_low=min(extremes.low, current),
        today_open=extremes.open_price,
    )


def city_prices(price: DerivedPrice, cities: Iterable[CityConfig] = CITY_CONFIG) -> List[CityPrice]:
    """Per-city price: base price per gram plus the city's premium."""
    out: List[CityPrice] = []
    for cfg in cities:
        per_gram = money(price.price_per_gram + cfg.premium_per_gram)
        out.append(
            CityPrice(
                city=cfg.city,
                state=cfg.state,
                price_per_gram=per_gram,
                price_per_kg=per_gram * GRAMS_PER_KG,
                making_charges_pct=cfg.making_charges_pct,
                gst_pct=cfg.gst_pct,
            )
        )
    return out


def find_city(name: str, cities: Iterable[CityConfig] = CITY_CONFIG) -> Optional[CityConfig]:
    key = name.strip().lower()
    for cfg in cities:
        if cfg.city.lower() == key:
            return cfg
    return None
