# src/silverrate/adapters/formatting/formatter.py
"""
Message Formatter - Text Formatting and Presentation

This module handles all text formatting for Telegram messages: the live
price card, the Shanghai comparison, the city table, weekly statistics,
price drivers, the item and investment calculators and the health report.

Numbers in rupees use Indian digit grouping (1,23,456.78). Stale values are
shown with an "as of ... (Xm ago)" line; a missing value is never rendered
as a number.

Files that USE this module:
- silverrate.adapters.telegram.handlers (all commands)
- silverrate.adapters.telegram.jobs (morning post, weekly summary)
- tests.test_formatter (unit tests)

Files that this module USES:
- silverrate.application.refresh_loop (DisplayState)
- silverrate.domain.models (price and summary models)
- silverrate.domain.market_hours (SGE_OFFICIAL_URL)
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

from silverrate.application.refresh_loop import ERROR_MESSAGE, DisplayState
from silverrate.domain.market_hours import SGE_OFFICIAL_URL
from silverrate.domain.models import (
    BreakEven,
    CapitalGainsTax,
    CityPrice,
    DerivedPrice,
    InvestmentReturns,
    ItemValuation,
    PriceDriver,
    RealReturn,
    ShanghaiPrice,
    TaxRegime,
    WeeklySummary,
    WindowStats,
)
from silverrate.shared.clock import IST

RETRY_HINT = "Please try again in a moment with /price."
LOADING_TEXT = "⏳ Fetching live prices…"

_IMPACT_EMOJI = {"positive": "🟢", "negative": "🔴", "neutral": "⚪"}


def format_inr(value: Decimal, decimals: int = 2) -> str:
    """
    Format a rupee amount with Indian digit grouping.

    Examples:
        1234567.891 -> '12,34,567.89'
        950 -> '950.00'
    """
    quant = Decimal(1).scaleb(-decimals)
    rounded = Decimal(value).quantize(quant, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):.{decimals}f}"
    whole, _, frac = text.partition(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}{whole}.{frac}" if frac else f"{sign}{whole}"


def _fmt_pct(change_percent: Optional[Decimal]) -> str:
    """
    Format a signed percentage with a trend arrow.

    Returns:
        '+1.25% 📈', '-0.40% 📉', '0.00% ⏸', or '—' when unknown
    """
    if change_percent is None:
        return "—"
    arrow = "📈" if change_percent > 0 else ("📉" if change_percent < 0 else "⏸")
    return f"{change_percent:+.2f}% {arrow}"


def format_time_ago(ts: datetime, now: Optional[datetime] = None) -> str:
    """
    Format how long ago ``ts`` was.

    Returns:
        'just now', '45s ago', '12m ago' or '3h ago'
    """
    now = now or datetime.now(timezone.utc)
    seconds = int((now - ts).total_seconds())
    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    return f"{minutes // 60}h ago"


def _as_of_line(as_of: Optional[datetime], stale: bool, now: Optional[datetime] = None) -> str:
    if as_of is None:
        return ""
    local = as_of.astimezone(IST)
    line = f"🕐 As of {local:%d %b %H:%M} IST ({format_time_ago(as_of, now)})"
    if stale:
        line += "\n⚠️ Showing last known price; live update failed."
    return line


def format_unavailable() -> str:
    return f"⚠️ {ERROR_MESSAGE}.\n{RETRY_HINT}"


def format_price_card(view: DisplayState, now: Optional[datetime] = None) -> str:
    """
    Format the domestic price card from the refresh loop's current view.

    Args:
        view: DisplayState holding a DerivedPrice (or nothing yet)
        now: Reference time for the "ago" text (defaults to now)

    Returns:
        The card, a loading notice, or the unavailable message
    """
    if view.error:
        return format_unavailable()
    if view.is_loading:
        return LOADING_TEXT
    return format_price(view.value, view.as_of, view.is_stale, now)


def format_price(
    price: DerivedPrice,
    as_of: Optional[datetime] = None,
    stale: bool = False,
    now: Optional[datetime] = None,
) -> str:
    lines = [
        "🥈 Silver Rate in India",
        "",
        f"1 gram: ₹{format_inr(price.price_per_gram)}",
        f"10 gram: ₹{format_inr(price.price_per_10_gram)}",
        f"1 kg: ₹{format_inr(price.price_per_kg)}",
        f"1 tola: ₹{format_inr(price.price_per_tola)}",
    ]

    if price.change_24h is not None:
        lines.append(f"24h: ₹{price.change_24h:+.2f}/g ({_fmt_pct(price.change_percent_24h)})")

    if price.today_high is not None and price.today_low is not None:
        lines.append(f"Today: H ₹{format_inr(price.today_high)} · L ₹{format_inr(price.today_low)}")

    lines.append("")
    lines.append(f"COMEX ${price.spot_usd:.2f}/oz · USD/INR {price.exchange_rate:.2f}")
    as_of_text = _as_of_line(as_of or price.as_of, stale, now)
    if as_of_text:
        lines.append(as_of_text)
    return "\n".join(lines)


def format_shanghai_card(view: DisplayState, now: Optional[datetime] = None) -> str:
    if view.error:
        return f"⚠️ {ERROR_MESSAGE}.\nPlease try again in a moment with /shanghai."
    if view.is_loading:
        return LOADING_TEXT
    return format_shanghai(view.value, view.as_of, view.is_stale, now)


def format_shanghai(
    sh: ShanghaiPrice,
    as_of: Optional[datetime] = None,
    stale: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """Format the Shanghai vs COMEX comparison. Values are estimates, not SGE quotes."""
    lines = ["🇨🇳 Shanghai Silver (SGE estimate)", ""]
    if sh.market is not None:
        state = "🟢 Open" if sh.market.is_open else "🔴 Closed"
        lines.append(f"Market: {state} ({sh.market.session})")
        if sh.market.next_session:
            lines.append(f"Next: {sh.market.next_session} Beijing time")
        lines.append("")

    lines.extend([
        f"¥{sh.price_per_kg_cny:,.2f}/kg · ¥{sh.price_per_gram_cny:.2f}/g",
        f"${sh.price_per_oz_usd:.2f}/oz (COMEX ${sh.comex_usd:.2f} + {sh.premium_percent:.1f}%)",
        f"₹{format_inr(sh.price_per_gram_inr)}/g · ₹{format_inr(sh.price_per_kg_inr)}/kg",
        "",
        f"🇮🇳 India rate: ₹{format_inr(sh.india_rate_per_gram)}/g",
        f"USD/CNY {sh.usd_cny:.4f} · USD/INR {sh.usd_inr:.2f} · CNY/INR {sh.cny_inr:.4f}",
    ])
    as_of_text = _as_of_line(as_of or sh.as_of, stale, now)
    if as_of_text:
        lines.append(as_of_text)
    if sh.is_estimate:
        lines.append("")
        lines.append("ℹ️ Estimated from COMEX with a fixed Shanghai premium.")
        lines.append(f"Official benchmark: {SGE_OFFICIAL_URL}")
    return "\n".join(lines)


def format_cities(prices: Sequence[CityPrice]) -> str:
    if not prices:
        return format_unavailable()
    lines = ["🏙️ City-wise Silver Rates (per gram / per kg)", ""]
    for p in prices:
        lines.append(f"{p.city}: ₹{format_inr(p.price_per_gram)} / ₹{format_inr(p.price_per_kg, 0)}")
    lines.append("")
    lines.append("Jewellery: add making charges and 3% GST.")
    return "\n".join(lines)


def format_window_stats(stats: Optional[WindowStats], current: Optional[DerivedPrice] = None) -> str:
    if stats is None:
        return "📊 Not enough price history yet. Try again later."
    lines = [
        f"📊 Last {stats.days} days (per gram)",
        "",
        f"Low: ₹{format_inr(stats.low)}",
        f"Average: ₹{format_inr(stats.average)}",
        f"High: ₹{format_inr(stats.high)}",
    ]
    if current is not None:
        lines.append(f"Now: ₹{format_inr(current.price_per_gram)}")
    if stats.at_high:
        lines.append("🚀 Today set the high for the period.")
    return "\n".join(lines)


def format_weekly_summary(summary: Optional[WeeklySummary]) -> Optional[str]:
    """
    Format the weekly report posted on Sundays.

    Returns:
        The report text, or None if there is no data for the week
    """
    if summary is None:
        return None
    lines = [
        f"📅 Weekly Silver Report ({summary.week_start:%d %b} – {summary.week_end:%d %b})",
        "",
        f"Open: ₹{format_inr(summary.opening_price)}",
        f"Close: ₹{format_inr(summary.closing_price)}",
        f"Change: ₹{summary.change:+.2f} ({_fmt_pct(summary.change_percent)})",
        f"High: ₹{format_inr(summary.week_high)} · Low: ₹{format_inr(summary.week_low)}",
        f"Average: ₹{format_inr(summary.average)}",
        "",
    ]
    for point in summary.daily_prices:
        lines.append(f"{point.date:%a %d}: ₹{format_inr(point.price)}")
    lines.append("")
    lines.append(f"Outlook: {summary.outlook}")
    return "\n".join(lines)


def format_drivers(drivers: List[PriceDriver]) -> str:
    if not drivers:
        return "🤔 No clear drivers today."
    lines = ["🤔 Why is silver moving?", ""]
    for d in drivers:
        emoji = _IMPACT_EMOJI.get(d.impact, "⚪")
        head = f"{emoji} {d.factor}"
        if d.value:
            head += f" ({d.value})"
        lines.append(head)
        lines.append(f"   {d.description}")
    return "\n".join(lines)


def format_valuation(
    weight_g: float,
    purity: float,
    making_pct: float,
    price_per_gram: Decimal,
    valuation: ItemValuation,
) -> str:
    lines = [
        "🧮 Silver Item Value",
        "",
        f"Weight: {weight_g:g} g · Purity: {purity:g}",
        f"Rate: ₹{format_inr(price_per_gram)}/g (999)",
        "",
        f"Metal value: ₹{format_inr(valuation.metal_value)}",
    ]
    if valuation.making_charges:
        lines.append(f"Making ({making_pct:g}%): ₹{format_inr(valuation.making_charges)}")
    if valuation.gst:
        lines.append(f"GST (3%): ₹{format_inr(valuation.gst)}")
    lines.append(f"Total: ₹{format_inr(valuation.total)}")
    return "\n".join(lines)


def _signed_inr(value: Decimal) -> str:
    sign = "-" if value < 0 else "+"
    return f"{sign}₹{format_inr(abs(value))}"


def _verdict(above: bool) -> str:
    return "✅ above break-even" if above else "❌ below break-even"


def format_returns(weight_g: float, buy_price: Decimal, current_price: Decimal, result: InvestmentReturns) -> str:
    lines = [
        "📈 Silver Investment Returns",
        "",
        f"Weight: {weight_g:g} g · Bought at ₹{format_inr(buy_price)}/g",
        f"Now: ₹{format_inr(current_price)}/g",
        "",
        f"Invested: ₹{format_inr(result.invested)}",
        f"Current value: ₹{format_inr(result.current_value)}",
        f"{'Gain' if result.is_profit else 'Loss'}: {_signed_inr(result.gain)} ({_fmt_pct(result.gain_pct)})",
    ]
    if result.holding_days is not None:
        lines.append(f"Held: {result.holding_days} days")
        if result.annualized_pct is not None:
            lines.append(f"Annualized (simple): {_fmt_pct(result.annualized_pct)}")
        if result.cagr_pct is not None:
            lines.append(f"CAGR: {_fmt_pct(result.cagr_pct)}")
        else:
            lines.append("CAGR is shown for holdings of 1 year or more.")
    return "\n".join(lines)


def format_break_even(weight_g: float, making_pct: Optional[float], result: BreakEven, buyback_discount_pct: Decimal) -> str:
    kind = "Bullion (2% premium)" if making_pct is None else f"Jewellery, making {making_pct:g}%"
    lines = [
        "⚖️ Break-Even Price",
        "",
        f"Weight: {weight_g:g} g · {kind}",
        f"Silver: ₹{format_inr(result.metal_cost)}",
        f"Making: ₹{format_inr(result.making_charges)}",
        f"GST: ₹{format_inr(result.gst)}",
    ]
    if result.fees:
        lines.append(f"Fees: ₹{format_inr(result.fees)}")
    lines += [
        f"Total cost: ₹{format_inr(result.total_cost)}",
        "",
        f"Break-even: ₹{format_inr(result.break_even_per_gram)}/g",
        f"Market now: ₹{format_inr(result.current_per_gram)}/g ({_fmt_pct(result.difference_pct)}) "
        f"{_verdict(result.above_break_even)}",
        f"Jeweller buyback ({buyback_discount_pct:g}% less): ₹{format_inr(result.buyback_per_gram)}/g "
        f"{_verdict(result.buyback_above_break_even)}",
    ]
    return "\n".join(lines)


def format_capital_gains(result: CapitalGainsTax, regime: TaxRegime) -> str:
    term = "long term, 24+ months" if result.long_term else "short term, under 24 months"
    lines = [
        f"🧾 Capital Gains Tax ({result.tax_type})",
        "",
        f"Held: {result.holding_days} days ({term})",
        f"Purchase cost: ₹{format_inr(result.purchase_cost)}",
        f"Sale value: ₹{format_inr(result.sale_proceeds)}",
        f"Gain: {_signed_inr(result.gain)}",
        "",
    ]
    if result.gain <= 0:
        lines.append("No tax: there is no capital gain.")
        return "\n".join(lines)

    basis = "flat" if result.long_term else f"slab rate, {regime.value} regime"
    lines += [
        f"Tax @ {(result.tax_rate * 100).normalize():f}% ({basis}): ₹{format_inr(result.tax)}",
        f"Cess (4%): ₹{format_inr(result.cess)}",
        f"Total tax: ₹{format_inr(result.total_tax)} ({result.effective_rate_pct:.2f}% of gain)",
        f"Net proceeds: ₹{format_inr(result.net_proceeds)}",
    ]
    return "\n".join(lines)


def format_real_return(result: RealReturn) -> str:
    source = "CPI" if result.inflation_source == "CPI" else "estimated"
    return "\n".join([
        "🏦 Inflation-Adjusted Return",
        "",
        f"Invested: ₹{format_inr(result.invested)} · Now: ₹{format_inr(result.current_value)}",
        f"Held: {result.holding_days} days",
        f"Nominal return: {_fmt_pct(result.nominal_pct)}",
        f"Inflation: {result.inflation_pct:.2f}% ({source})",
        f"Real return: {_fmt_pct(result.real_pct)} ({_signed_inr(result.real_gain)})",
    ])


def format_health(report: Dict[str, Any]) -> str:
    status_emoji = "✅" if report["overall_healthy"] else "⚠️"
    lines = [f"{status_emoji} System Health Check", "", report["message"], ""]
    for name, check in report["checks"].items():
        check_emoji = "✅" if check["healthy"] else "❌"
        display_name = name.replace("_", " ").title()
        lines.append(f"{check_emoji} {display_name}: {check['message']}")
    lines.append("")
    lines.append(f"🕐 Checked at: {report['timestamp']}")
    return "\n".join(lines)
