# tests/test_calculator.py
"""
Calculator Tests - Item Valuation, Returns, Break-Even, Capital Gains, Real Return

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- silverrate.domain.calculator (all calculators)
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from silverrate.domain.calculator import (
    break_even,
    capital_gains_tax,
    inflation_over,
    investment_returns,
    is_long_term,
    marginal_slab_rate,
    real_return,
    value_item,
)
from silverrate.domain.errors import InvalidPriceError
from silverrate.domain.models import TaxRegime


class TestValueItem:
    def test_fine_silver_with_making_and_gst(self):
        result = value_item(Decimal("100"), Decimal("999"), Decimal("95.00"), Decimal("10"))

        assert result.metal_value == Decimal("9490.50")
        assert result.making_charges == Decimal("949.05")
        assert result.gst == Decimal("313.19")
        assert result.total == Decimal("10752.74")

    def test_sterling_without_gst(self):
        result = value_item(50, 925, Decimal("100"), include_gst=False)

        assert result.metal_value == Decimal("4625.00")
        assert result.making_charges == Decimal("0.00")
        assert result.gst == Decimal("0.00")
        assert result.total == Decimal("4625.00")

    @pytest.mark.parametrize("weight", [0, -5, None, "abc"])
    def test_rejects_bad_weight(self, weight):
        with pytest.raises(InvalidPriceError, match="weight"):
            value_item(weight, 999, Decimal("95"))

    @pytest.mark.parametrize("purity", [0, 1000.5, -1])
    def test_rejects_bad_purity(self, purity):
        with pytest.raises(InvalidPriceError, match="purity"):
            value_item(10, purity, Decimal("95"))

    def test_accepts_pure_silver(self):
        assert value_item(1, 1000, Decimal("100"), include_gst=False).total == Decimal("100.00")

    def test_rejects_negative_making(self):
        with pytest.raises(InvalidPriceError, match="making"):
            value_item(10, 999, Decimal("95"), Decimal("-1"))

    def test_rejects_bad_price(self):
        with pytest.raises(InvalidPriceError, match="price"):
            value_item(10, 999, Decimal("0"))


class TestInvestmentReturns:
    def test_without_date(self):
        result = investment_returns(100, Decimal("80"), Decimal("95"))

        assert result.invested == Decimal("8000.00")
        assert result.current_value == Decimal("9500.00")
        assert result.gain == Decimal("1500.00")
        assert result.gain_pct == Decimal("18.75")
        assert result.is_profit
        assert result.holding_days is None
        assert result.annualized_pct is None
        assert result.cagr_pct is None

    def test_one_year_cagr_equals_return(self):
        result = investment_returns(100, Decimal("80"), Decimal("95"), date(2023, 1, 10), date(2024, 1, 10))

        assert result.holding_days == 365
        assert result.annualized_pct == Decimal("18.75")
        assert result.cagr_pct == Decimal("18.75")

    def test_two_year_cagr_compounds(self):
        result = investment_returns(100, Decimal("100"), Decimal("121"), date(2022, 1, 10), date(2024, 1, 10))

        assert result.holding_days == 730
        assert result.gain_pct == Decimal("21.00")
        assert result.annualized_pct == Decimal("10.50")
        assert result.cagr_pct == Decimal("10.00")

    def test_short_holding_has_no_cagr(self):
        result = investment_returns(10, Decimal("100"), Decimal("102"), date(2024, 1, 1), date(2024, 4, 10))

        assert result.holding_days == 100
        assert result.annualized_pct == Decimal("7.30")
        assert result.cagr_pct is None

    def test_loss(self):
        result = investment_returns(10, Decimal("100"), Decimal("90"))
        assert result.gain == Decimal("-100.00")
        assert result.gain_pct == Decimal("-10.00")
        assert not result.is_profit

    def test_bought_today(self):
        day = date(2025, 1, 10)
        result = investment_returns(10, Decimal("100"), Decimal("90"), day, day)
        assert result.holding_days == 0
        assert result.annualized_pct is None

    def test_future_purchase_date(self):
        with pytest.raises(InvalidPriceError, match="purchase date"):
            investment_returns(10, Decimal("100"), Decimal("90"), date(2025, 2, 1), date(2025, 1, 10))

    def test_rejects_bad_price(self):
        with pytest.raises(InvalidPriceError, match="purchase price"):
            investment_returns(10, Decimal("0"), Decimal("90"))


class TestBreakEven:
    def test_jewellery(self):
        result = break_even(50, Decimal("90"), Decimal("100"), making_pct=Decimal("10"))

        assert result.metal_cost == Decimal("4500.00")
        assert result.making_charges == Decimal("450.00")
        assert result.gst == Decimal("157.50")
        assert result.fees == Decimal("45.00")
        assert result.total_cost == Decimal("5152.50")
        assert result.break_even_per_gram == Decimal("103.05")
        assert result.difference_pct == Decimal("-2.96")
        assert result.buyback_per_gram == Decimal("95.00")
        assert not result.above_break_even
        assert not result.buyback_above_break_even

    def test_bullion_uses_flat_premium_and_no_hallmarking(self):
        result = break_even(100, Decimal("90"), Decimal("100"))

        assert result.making_charges == Decimal("180.00")
        assert result.gst == Decimal("279.00")
        assert result.fees == Decimal("0.00")
        assert result.break_even_per_gram == Decimal("94.59")
        assert result.difference_pct == Decimal("5.72")
        assert result.above_break_even
        assert result.buyback_above_break_even

    def test_buyback_discount_can_flip_verdict(self):
        result = break_even(100, Decimal("90"), Decimal("97"), buyback_discount_pct=Decimal("5"))

        assert result.above_break_even
        assert result.buyback_per_gram == Decimal("92.15")
        assert not result.buyback_above_break_even

    def test_zero_making_jewellery(self):
        result = break_even(10, Decimal("100"), Decimal("100"), making_pct=0, hallmarking_fee=0)
        assert result.break_even_per_gram == Decimal("103.00")

    def test_rejects_full_discount(self):
        with pytest.raises(InvalidPriceError, match="buyback"):
            break_even(10, Decimal("100"), Decimal("100"), buyback_discount_pct=100)

    def test_rejects_negative_making(self):
        with pytest.raises(InvalidPriceError, match="making"):
            break_even(10, Decimal("100"), Decimal("100"), making_pct=-1)


class TestTaxSlabs:
    @pytest.mark.parametrize("income, rate", [
        ("0", "0"),
        ("300000", "0"),
        ("300001", "0.05"),
        ("800000", "0.10"),
        ("1025000", "0.15"),
        ("1500000", "0.20"),
        ("1500001", "0.30"),
    ])
    def test_new_regime(self, income, rate):
        assert marginal_slab_rate(Decimal(income)) == Decimal(rate)

    @pytest.mark.parametrize("income, rate", [
        ("250000", "0"),
        ("400000", "0.05"),
        ("600000", "0.20"),
        ("1025000", "0.30"),
    ])
    def test_old_regime(self, income, rate):
        assert marginal_slab_rate(Decimal(income), TaxRegime.OLD) == Decimal(rate)

    def test_long_term_threshold_is_24_months(self):
        assert not is_long_term(730)
        assert is_long_term(731)


class TestCapitalGainsTax:
    def test_long_term_flat_rate(self):
        result = capital_gains_tax(1000, Decimal("70"), Decimal("95"), date(2022, 1, 1), date(2025, 1, 1))

        assert result.long_term
        assert result.tax_type == "LTCG"
        assert result.gain == Decimal("25000.00")
        assert result.tax_rate == Decimal("0.125")
        assert result.tax == Decimal("3125.00")
        assert result.cess == Decimal("125.00")
        assert result.total_tax == Decimal("3250.00")
        assert result.net_proceeds == Decimal("91750.00")
        assert result.effective_rate_pct == Decimal("13.00")

    def test_short_term_new_regime_slab(self):
        result = capital_gains_tax(1000, Decimal("70"), Decimal("95"), date(2024, 6, 1), date(2025, 1, 1))

        assert not result.long_term
        assert result.tax_type == "STCG"
        assert result.holding_days == 214
        assert result.tax_rate == Decimal("0.15")
        assert result.total_tax == Decimal("3900.00")
        assert result.net_proceeds == Decimal("91100.00")
        assert result.effective_rate_pct == Decimal("15.60")

    def test_short_term_old_regime_slab(self):
        result = capital_gains_tax(
            1000, Decimal("70"), Decimal("95"), date(2024, 6, 1), date(2025, 1, 1), regime=TaxRegime.OLD,
        )
        assert result.tax_rate == Decimal("0.30")
        assert result.total_tax == Decimal("7800.00")

    def test_boundary_day_changes_treatment(self):
        bought = date(2022, 3, 1)
        short = capital_gains_tax(10, Decimal("70"), Decimal("95"), bought, bought + timedelta(days=730))
        long = capital_gains_tax(10, Decimal("70"), Decimal("95"), bought, bought + timedelta(days=731))
        assert short.tax_type == "STCG"
        assert long.tax_type == "LTCG"

    def test_loss_has_no_tax(self):
        result = capital_gains_tax(1000, Decimal("70"), Decimal("60"), date(2024, 6, 1), date(2025, 1, 1))

        assert result.gain == Decimal("-10000.00")
        assert result.total_tax == Decimal("0.00")
        assert result.net_proceeds == Decimal("60000.00")
        assert result.effective_rate_pct == Decimal("0.00")

    def test_sale_before_purchase(self):
        with pytest.raises(InvalidPriceError, match="purchase date"):
            capital_gains_tax(10, Decimal("70"), Decimal("95"), date(2025, 1, 2), date(2025, 1, 1))


class TestRealReturn:
    def test_cpi_based(self):
        result = real_return(Decimal("10000"), Decimal("15000"), date(2019, 6, 1), date(2024, 6, 1))

        assert result.inflation_source == "CPI"
        assert result.nominal_pct == Decimal("50.00")
        assert result.inflation_pct == Decimal("32.45")
        assert result.real_pct == Decimal("13.25")
        assert Decimal("1324") < result.real_gain < Decimal("1327")

    def test_custom_rate_estimate(self):
        result = real_return(
            Decimal("10000"), Decimal("11000"), date(2023, 1, 1), date(2024, 1, 1), annual_inflation=Decimal("0.10"),
        )

        assert result.inflation_source == "estimate"
        assert result.inflation_pct == Decimal("10.00")
        assert result.real_pct == Decimal("0.00")

    def test_default_rate_outside_cpi_years(self):
        inflation, source = inflation_over(date(2011, 1, 1), date(2012, 1, 1))
        assert source == "estimate"
        assert inflation == Decimal("0.06")

    def test_same_year_cpi_is_zero(self):
        inflation, source = inflation_over(date(2024, 1, 1), date(2024, 12, 31))
        assert source == "CPI"
        assert inflation == 0

    def test_same_day_rejected(self):
        with pytest.raises(InvalidPriceError, match="at least one day"):
            real_return(Decimal("100"), Decimal("110"), date(2024, 1, 1), date(2024, 1, 1))
