# tests/test_formatter.py
"""
Formatter Tests - Unit Tests for Message Formatting Functions

Covers Indian digit grouping, elapsed-time text, the price card in its
loading / error / fresh / stale states, the Shanghai card disclaimer and
the summary, driver, calculator and health layouts.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- silverrate.adapters.formatting.formatter (all formatter functions for testing)
- silverrate.application.refresh_loop (DisplayState for card input)
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from silverrate.adapters.formatting.formatter import (
    LOADING_TEXT,
    _fmt_pct,
    format_cities,
    format_break_even,
    format_capital_gains,
    format_drivers,
    format_health,
    format_inr,
    format_price_card,
    format_real_return,
    format_returns,
    format_shanghai_card,
    format_time_ago,
    format_valuation,
    format_weekly_summary,
    format_window_stats,
)
from silverrate.application.refresh_loop import DisplayState, LoopState
from silverrate.domain.calculator import break_even, capital_gains_tax, investment_returns, real_return
from silverrate.domain.market_hours import SGE_OFFICIAL_URL
from silverrate.domain.models import (
    CityPrice,
    DerivedPrice,
    HistoricalPricePoint,
    ItemValuation,
    MarketStatus,
    PriceDriver,
    ShanghaiPrice,
    TaxRegime,
    WeeklySummary,
    WindowStats,
)


def _view(value=None, as_of=None, stale=False, error=None):
    return DisplayState(
        value=value,
        as_of=as_of,
        is_stale=stale,
        error=error,
        last_error=None if error is None else "timeout",
        state=LoopState.IDLE,
    )


@pytest.fixture
def price(now):
    return DerivedPrice(
        price_per_gram=Decimal("93.88"),
        price_per_kg=Decimal("93880"),
        currency="INR",
        spot_usd=Decimal("30.50"),
        exchange_rate=Decimal("84.50"),
        as_of=now,
        source="yahoo+frankfurter",
        change_24h=Decimal("1.25"),
        change_percent_24h=Decimal("1.35"),
        today_high=Decimal("94.10"),
        today_low=Decimal("92.75"),
        today_open=Decimal("93.00"),
    )


@pytest.fixture
def shanghai(now):
    return ShanghaiPrice(
        price_per_kg_cny=Decimal("7341.50"),
        price_per_gram_cny=Decimal("7.34"),
        price_per_oz_cny=Decimal("228.38"),
        price_per_oz_usd=Decimal("31.72"),
        price_per_gram_usd=Decimal("1.02"),
        price_per_kg_usd=Decimal("1019.70"),
        price_per_gram_inr=Decimal("86.17"),
        price_per_kg_inr=Decimal("86166.00"),
        india_rate_per_gram=Decimal("93.18"),
        comex_usd=Decimal("30.50"),
        premium_percent=Decimal("4"),
        premium_usd=Decimal("1.22"),
        usd_cny=Decimal("7.20"),
        usd_inr=Decimal("84.50"),
        cny_inr=Decimal("11.7361"),
        as_of=now,
        market=MarketStatus(is_open=False, session="closed", next_session="night session 21:00"),
    )


class TestFormatInr:
    @pytest.mark.parametrize("value,expected", [
        (Decimal("1234567.891"), "12,34,567.89"),
        (Decimal("93880"), "93,880.00"),
        (Decimal("950"), "950.00"),
        (Decimal("100000"), "1,00,000.00"),
        (Decimal("-1500.5"), "-1,500.50"),
        (Decimal("0.005"), "0.01"),
    ])
    def test_grouping(self, value, expected):
        assert format_inr(value) == expected

    def test_zero_decimals(self):
        assert format_inr(Decimal("93880.4"), 0) == "93,880"


class TestSmallHelpers:
    @pytest.mark.parametrize("seconds,expected", [
        (2, "just now"),
        (45, "45s ago"),
        (12 * 60 + 5, "12m ago"),
        (3 * 3600 + 60, "3h ago"),
    ])
    def test_time_ago(self, now, seconds, expected):
        assert format_time_ago(now - timedelta(seconds=seconds), now) == expected

    def test_fmt_pct(self):
        assert _fmt_pct(Decimal("1.25")) == "+1.25% 📈"
        assert _fmt_pct(Decimal("-0.4")) == "-0.40% 📉"
        assert _fmt_pct(Decimal("0")) == "+0.00% ⏸"
        assert _fmt_pct(None) == "—"


class TestPriceCard:
    def test_fresh_card(self, price, now):
        text = format_price_card(_view(price, as_of=now), now=now + timedelta(minutes=2))
        lines = text.split("\n")

        assert lines[0] == "🥈 Silver Rate in India"
        assert "1 gram: ₹93.88" in lines
        assert "10 gram: ₹938.80" in lines
        assert "1 kg: ₹93,880.00" in lines
        assert "1 tola: ₹1,095.00" in lines
        assert "24h: ₹+1.25/g (+1.35% 📈)" in lines
        assert "Today: H ₹94.10 · L ₹92.75" in lines
        assert "COMEX $30.50/oz · USD/INR 84.50" in lines
        assert "🕐 As of 10 Jan 17:30 IST (2m ago)" in lines
        assert "live update failed" not in text

    def test_stale_card_keeps_value_and_warns(self, price, now):
        text = format_price_card(_view(price, as_of=now, stale=True), now=now + timedelta(hours=1))
        assert "1 gram: ₹93.88" in text
        assert "(1h ago)" in text
        assert "⚠️ Showing last known price; live update failed." in text

    def test_optional_lines_omitted(self, price, now):
        bare = DerivedPrice(
            price_per_gram=price.price_per_gram,
            price_per_kg=price.price_per_kg,
            currency="INR",
            spot_usd=price.spot_usd,
            exchange_rate=price.exchange_rate,
            as_of=now,
        )
        text = format_price_card(_view(bare, as_of=now), now=now)
        assert "24h:" not in text
        assert "Today:" not in text

    def test_loading(self):
        assert format_price_card(_view()) == LOADING_TEXT

    def test_error_shows_no_number(self):
        text = format_price_card(_view(error="Unable to fetch live prices"))
        assert text.startswith("⚠️ Unable to fetch live prices.")
        assert "/price" in text
        assert "₹" not in text


class TestShanghaiCard:
    def test_estimate_disclaimer(self, shanghai, now):
        text = format_shanghai_card(_view(shanghai, as_of=now), now=now)

        assert "Market: 🔴 Closed (closed)" in text
        assert "Next: night session 21:00 Beijing time" in text
        assert "¥7,341.50/kg · ¥7.34/g" in text
        assert "$31.72/oz (COMEX $30.50 + 4.0%)" in text
        assert "🇮🇳 India rate: ₹93.18/g" in text
        assert "ℹ️ Estimated from COMEX with a fixed Shanghai premium." in text
        assert f"Official benchmark: {SGE_OFFICIAL_URL}" in text

    def test_error(self):
        text = format_shanghai_card(_view(error="Unable to fetch live prices"))
        assert "/shanghai" in text
        assert "¥" not in text


class TestOtherLayouts:
    def test_cities(self):
        text = format_cities([
            CityPrice("Mumbai", "Maharashtra", Decimal("94.38"), Decimal("94380"), Decimal("8"), Decimal("3")),
            CityPrice("Delhi", "Delhi", Decimal("94.18"), Decimal("94180"), Decimal("8"), Decimal("3")),
        ])
        assert "Mumbai: ₹94.38 / ₹94,380" in text
        assert "Delhi: ₹94.18 / ₹94,180" in text

    def test_cities_empty_is_unavailable(self):
        assert "Unable to fetch live prices" in format_cities([])

    def test_window_stats(self, price):
        stats = WindowStats(low=Decimal("90"), average=Decimal("92.5"), high=Decimal("94.10"), days=7, at_high=True)
        text = format_window_stats(stats, price)

        assert "📊 Last 7 days (per gram)" in text
        assert "Average: ₹92.50" in text
        assert "Now: ₹93.88" in text
        assert "🚀" in text

    def test_window_stats_without_history(self):
        assert format_window_stats(None) == "📊 Not enough price history yet. Try again later."

    def test_weekly_summary(self):
        points = tuple(
            HistoricalPricePoint(date=date(2025, 1, 4 + i), price=Decimal(90 + i)) for i in range(7)
        )
        summary = WeeklySummary(
            week_start=date(2025, 1, 4),
            week_end=date(2025, 1, 10),
            opening_price=Decimal("90.00"),
            closing_price=Decimal("96.00"),
            week_high=Decimal("96.00"),
            week_low=Decimal("90.00"),
            average=Decimal("93.00"),
            change=Decimal("6.00"),
            change_percent=Decimal("6.67"),
            daily_prices=points,
            outlook="Strong bullish week.",
        )
        text = format_weekly_summary(summary)

        assert text.startswith("📅 Weekly Silver Report (04 Jan – 10 Jan)")
        assert "Change: ₹+6.00 (+6.67% 📈)" in text
        assert "Sat 04: ₹90.00" in text
        assert text.endswith("Outlook: Strong bullish week.")

    def test_weekly_summary_none(self):
        assert format_weekly_summary(None) is None

    def test_drivers(self):
        text = format_drivers([
            PriceDriver("USD/INR Exchange Rate", "positive", "Rupee weakness lifts prices.", "₹84.50"),
            PriceDriver("Industrial Demand", "neutral", "Solar demand is steady."),
        ])
        assert text.startswith("🤔 Why is silver moving?")
        assert "🟢 USD/INR Exchange Rate (₹84.50)" in text
        assert "⚪ Industrial Demand" in text

    def test_valuation(self):
        valuation = ItemValuation(
            metal_value=Decimal("9490.50"),
            making_charges=Decimal("949.05"),
            gst=Decimal("313.19"),
            total=Decimal("10752.74"),
        )
        text = format_valuation(100, 999, 10, Decimal("95"), valuation)

        assert "Weight: 100 g · Purity: 999" in text
        assert "Making (10%): ₹949.05" in text
        assert "Total: ₹10,752.74" in text

    def test_health(self):
        report = {
            "overall_healthy": False,
            "status": "degraded",
            "message": "Some components are unhealthy: usd_inr",
            "failed_components": ["usd_inr"],
            "timestamp": "2025-01-10T12:00:00+00:00",
            "checks": {
                "spot_feed": {"healthy": True, "message": "COMEX $30.50/oz", "last_check": None, "details": {}},
                "usd_inr": {"healthy": False, "message": "all providers failed", "last_check": None, "details": {}},
            },
        }
        text = format_health(report)

        assert text.startswith("⚠️ System Health Check")
        assert "✅ Spot Feed: COMEX $30.50/oz" in text
        assert "❌ Usd Inr: all providers failed" in text


class TestCalculatorLayouts:
    def test_returns_with_cagr(self):
        result = investment_returns(100, Decimal("100"), Decimal("121"), date(2022, 1, 10), date(2024, 1, 10))
        text = format_returns(100, Decimal("100"), Decimal("121"), result)

        assert text.startswith("📈 Silver Investment Returns")
        assert "Invested: ₹10,000.00" in text
        assert "Gain: +₹2,100.00 (+21.00% 📈)" in text
        assert "Held: 730 days" in text
        assert "CAGR: +10.00% 📈" in text

    def test_returns_loss_without_date(self):
        text = format_returns(10, Decimal("100"), Decimal("90"), investment_returns(10, Decimal("100"), Decimal("90")))

        assert "Loss: -₹100.00 (-10.00% 📉)" in text
        assert "Held" not in text
        assert "CAGR" not in text

    def test_returns_short_holding_explains_cagr(self):
        result = investment_returns(10, Decimal("100"), Decimal("102"), date(2024, 1, 1), date(2024, 4, 10))
        text = format_returns(10, Decimal("100"), Decimal("102"), result)

        assert "Annualized (simple): +7.30% 📈" in text
        assert "CAGR is shown for holdings of 1 year or more." in text

    def test_break_even_jewellery(self):
        result = break_even(50, Decimal("90"), Decimal("100"), making_pct=Decimal("10"))
        text = format_break_even(50, 10, result, Decimal("5"))

        assert "Weight: 50 g · Jewellery, making 10%" in text
        assert "Fees: ₹45.00" in text
        assert "Total cost: ₹5,152.50" in text
        assert "Break-even: ₹103.05/g" in text
        assert "Market now: ₹100.00/g (-2.96% 📉) ❌ below break-even" in text
        assert "Jeweller buyback (5% less): ₹95.00/g ❌ below break-even" in text

    def test_break_even_bullion(self):
        text = format_break_even(100, None, break_even(100, Decimal("90"), Decimal("100")), Decimal("5"))

        assert "Bullion (2% premium)" in text
        assert "Fees" not in text
        assert "✅ above break-even" in text

    def test_capital_gains_long_term(self):
        result = capital_gains_tax(1000, Decimal("70"), Decimal("95"), date(2022, 1, 1), date(2025, 1, 1))
        text = format_capital_gains(result, TaxRegime.NEW)

        assert text.startswith("🧾 Capital Gains Tax (LTCG)")
        assert "Held: 1096 days (long term, 24+ months)" in text
        assert "Tax @ 12.5% (flat): ₹3,125.00" in text
        assert "Cess (4%): ₹125.00" in text
        assert "Total tax: ₹3,250.00 (13.00% of gain)" in text
        assert "Net proceeds: ₹91,750.00" in text

    def test_capital_gains_short_term_slab(self):
        result = capital_gains_tax(
            1000, Decimal("70"), Decimal("95"), date(2024, 6, 1), date(2025, 1, 1), regime=TaxRegime.OLD,
        )
        text = format_capital_gains(result, TaxRegime.OLD)

        assert text.startswith("🧾 Capital Gains Tax (STCG)")
        assert "Tax @ 30% (slab rate, old regime): ₹7,500.00" in text

    def test_capital_gains_loss(self):
        result = capital_gains_tax(1000, Decimal("70"), Decimal("60"), date(2024, 6, 1), date(2025, 1, 1))
        text = format_capital_gains(result, TaxRegime.NEW)

        assert "Gain: -₹10,000.00" in text
        assert "No tax: there is no capital gain." in text
        assert "Tax @" not in text

    def test_real_return(self):
        result = real_return(Decimal("10000"), Decimal("15000"), date(2019, 6, 1), date(2024, 6, 1))
        text = format_real_return(result)

        assert text.startswith("🏦 Inflation-Adjusted Return")
        assert "Nominal return: +50.00% 📈" in text
        assert "Inflation: 32.45% (CPI)" in text
        assert "Real return: +13.25% 📈" in text
