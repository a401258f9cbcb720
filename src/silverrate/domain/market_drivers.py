"""
Why the price moved today.

Deterministic drivers computed from the derived price: the USD/INR rate,
the COMEX price, and either a volatility note (moves above 1%) or the
seasonal demand backdrop for the month.

Files that USE this module:
- silverrate.adapters.telegram.handlers (/why)
- silverrate.adapters.telegram.jobs (daily morning post)
- tests.test_market_drivers (unit tests)

Files that this module USES:
- silverrate.domain.models (DerivedPrice, PriceDriver)
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List

from silverrate.domain.models import DerivedPrice, PriceDriver

FX_THRESHOLD = Decimal("0.3")
COMEX_THRESHOLD = Decimal("0.5")
VOLATILITY_THRESHOLD = Decimal("1")


def _impact(change: Decimal, threshold: Decimal) -> str:
    if change > threshold:
        return "positive"
    if change < -threshold:
        return "negative"
    return "neutral"


def explain(price: DerivedPrice, today: date) -> List[PriceDriver]:
    change = price.change_percent_24h if price.change_percent_24h is not None else Decimal("0")
    fx = f"{price.exchange_rate:.2f}"
    comex = f"{price.spot_usd:.2f}"

    fx_impact = _impact(change, FX_THRESHOLD)
    fx_text = {
        "positive": f"Rupee at ₹{fx}/USD. A weaker rupee makes imported silver costlier.",
        "negative": f"Rupee strengthened to ₹{fx}/USD, lowering silver prices in INR.",
        "neutral": f"Rupee stable at ₹{fx}/USD. Exchange rate impact is minimal today.",
    }[fx_impact]

    comex_impact = _impact(change, COMEX_THRESHOLD)
    comex_text = {
        "positive": f"COMEX silver trading higher at ${comex}/oz on strong global demand.",
        "negative": f"COMEX silver down to ${comex}/oz on profit booking in futures.",
        "neutral": f"COMEX silver steady at ${comex}/oz. Markets are consolidating.",
    }[comex_impact]

    drivers = [
        PriceDriver("USD/INR Exchange Rate", fx_impact, fx_text, f"₹{fx}"),
        PriceDriver("COMEX Silver Futures", comex_impact, comex_text, f"${comex}/oz"),
    ]

    if abs(change) > VOLATILITY_THRESHOLD:
        up = change > 0
        drivers.append(
            PriceDriver(
                "Market Volatility",
                "positive" if up else "negative",
                f"Silver {'surged' if up else 'dropped'} {abs(change):.2f}% today "
                f"{'on strong buying interest' if up else 'on profit booking'}.",
                f"{'+' if up else ''}{change:.2f}%",
            )
        )
    else:
        drivers.append(_seasonal_driver(today.month))
    return drivers


def _seasonal_driver(month: int) -> PriceDriver:
    # Festival season Sep-Nov, wedding season Dec-Feb
    if 9 <= month <= 11:
        return PriceDriver(
            "Festival Season Demand",
            "positive",
            "Silver demand rises ahead of Navratri, Diwali and Dhanteras.",
        )
    if month == 12 or month <= 2:
        return PriceDriver(
            "Wedding Season",
            "positive",
            "Peak wedding season is driving jewellery and silverware demand.",
        )
    return PriceDriver(
        "Industrial Demand",
        "neutral",
        "Steady industrial demand from solar panels, electronics and EVs.",
    )
