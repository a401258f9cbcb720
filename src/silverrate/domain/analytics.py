"""
Price Analytics - Window Statistics, Weekly Summary and Daily Extremes

Pure functions over price history. Callers pass today's intraday extremes
explicitly; nothing here reads the clock or touches storage.

Files that USE this module:
- silverrate.application.history_service (window_stats, weekly_summary)
- silverrate.application.price_service (update_extremes)
- tests.test_analytics (unit tests)

Files that this module USES:
- silverrate.domain.models (HistoricalPricePoint, WindowStats, DailyExtremes, WeeklySummary)
- silverrate.domain.pricing (money rounding)
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from silverrate.domain.models import (
    DailyExtremes,
    HistoricalPricePoint,
    WeeklySummary,
    WindowStats,
)
from silverrate.domain.pricing import money


def window_stats(
    points: Sequence[HistoricalPricePoint],
    days: int = 7,
    today_high: Optional[Decimal] = None,
    today_low: Optional[Decimal] = None,
) -> Optional[WindowStats]:
    """
    Low / average / high over the last ``days`` closes.

    The average is over the closes only. Today's intraday high and low are
    folded into the high and low, so ``low <= average <= high`` always holds.

    Returns:
        WindowStats, or None when there is no history at all
    """
    recent = sorted(points, key=lambda p: p.date)[-days:]
    if not recent:
        return None

    closes = [p.price for p in recent]
    highs = closes + ([today_high] if today_high is not None else [])
    lows = closes + ([today_low] if today_low is not None else [])
    high = max(highs)
    low = min(lows)
    average = money(sum(closes, Decimal("0")) / len(closes))
    return WindowStats(
        low=low,
        average=average,
        high=high,
        days=len(recent),
        at_high=today_high is not None and today_high >= high,
    )


def update_extremes(
    current: Optional[DailyExtremes],
    price: Decimal,
    today: date,
    now: datetime,
) -> DailyExtremes:
    """
    Fold a new observation into today's extremes.

    A record from an earlier day is discarded and a new day starts with the
    price as open, high and low. Within a day the high never decreases and
    the low never increases.
    """
    if current is None or current.date != today:
        return DailyExtremes(
            date=today,
            high=price,
            high_time=now,
            low=price,
            low_time=now,
            open_price=price,
            last_updated=now,
        )

    high, high_time = current.high, current.high_time
    low, low_time = current.low, current.low_time
    if price > high:
        high, high_time = price, now
    if price < low:
        low, low_time = price, now
    return DailyExtremes(
        date=today,
        high=high,
        high_time=high_time,
        low=low,
        low_time=low_time,
        open_price=current.open_price,
        last_updated=now,
    )


def _outlook(change_percent: Decimal, week_low: Decimal, opening: Decimal, closing: Decimal) -> str:
    if change_percent > 3:
        return (
            f"Strong bullish week, up {abs(change_percent):.1f}%. The rally may extend, "
            f"with support at the weekly low of ₹{week_low}/g."
        )
    if change_percent > 0:
        resistance = money(closing * Decimal("1.02"), Decimal("1"))
        return (
            f"Modest gains of {change_percent:.1f}%. Expect range-bound trading with "
            f"support at ₹{week_low} and resistance near ₹{resistance}."
        )
    if change_percent > -3:
        return (
            f"Minor weakness, down {abs(change_percent):.1f}%. Watch support at ₹{week_low}/g; "
            f"a bounce could take prices back toward ₹{opening}."
        )
    return (
        f"Significant selling pressure, down {abs(change_percent):.1f}%. A break below "
        f"₹{week_low}/g could extend losses."
    )


def weekly_summary(
    points: Sequence[HistoricalPricePoint],
    week_start: date,
    week_end: date,
    closing_price: Optional[Decimal] = None,
) -> Optional[WeeklySummary]:
    """
    Summarize one week of daily closes.

    Args:
        points: Daily closes (any order, any range; filtered to the week)
        week_start: First day of the week (inclusive)
        week_end: Last day of the week (inclusive)
        closing_price: Live price to close the week with; defaults to the
            last stored close

    Returns:
        WeeklySummary, or None when the week has no data
    """
    week = sorted((p for p in points if week_start <= p.date <= week_end), key=lambda p: p.date)
    if not week:
        return None

    prices = [p.price for p in week]
    opening = prices[0]
    closing = closing_price if closing_price is not None else prices[-1]
    high = max(prices + [closing])
    low = min(prices + [closing])
    change = closing - opening
    change_percent = money(change / opening * 100)
    return WeeklySummary(
        week_start=week_start,
        week_end=week_end,
        opening_price=money(opening),
        closing_price=money(closing),
        week_high=money(high),
        week_low=money(low),
        average=money(sum(prices, Decimal("0")) / len(prices)),
        change=money(change),
        change_percent=change_percent,
        daily_prices=tuple(week),
        outlook=_outlook(change_percent, money(low), money(opening), closing),
    )
