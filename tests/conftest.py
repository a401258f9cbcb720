# tests/conftest.py
"""
Shared test fixtures.

Files that USE this module:
- pytest (auto-loaded for every test module in tests/)

Files that this module USES:
- silverrate.adapters.providers (clear_caches)
- silverrate.adapters.persistence (HistoryStore, ExtremesStore)
- silverrate.shared.rate_limiter (rate_limiter reset)
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from silverrate.adapters.persistence import ExtremesStore, HistoryStore
from silverrate.adapters.providers import clear_caches
from silverrate.domain.models import (
    CurrencyPair,
    ExchangeRate,
    PricingConfig,
    SpotPrice,
)
from silverrate.shared.rate_limiter import rate_limiter

# 2025-01-10 17:30 IST
FIXED_NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_shared_state():
    clear_caches()
    rate_limiter.reset()
    yield
    clear_caches()
    rate_limiter.reset()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def history_store(tmp_path):
    return HistoryStore(tmp_path / "daily-prices.json")


@pytest.fixture
def extremes_store(tmp_path):
    return ExtremesStore(tmp_path / "daily-extremes.json")


@pytest.fixture
def india_config():
    return PricingConfig(import_duty=Decimal("0.06"), gst=Decimal("0.03"), premium=Decimal("0.03"))


@pytest.fixture
def shanghai_config():
    return PricingConfig(
        import_duty=Decimal("0"),
        gst=Decimal("0"),
        premium=Decimal("0.04"),
        currency=CurrencyPair.USD_CNY,
    )


@pytest.fixture
def spot():
    return SpotPrice(
        value_usd=Decimal("30.50"),
        as_of=FIXED_NOW,
        previous_close_usd=Decimal("30.00"),
    )


@pytest.fixture
def usd_inr():
    return ExchangeRate(pair=CurrencyPair.USD_INR, rate=Decimal("84.50"), as_of=FIXED_NOW, source="frankfurter")


@pytest.fixture
def usd_cny():
    return ExchangeRate(pair=CurrencyPair.USD_CNY, rate=Decimal("7.20"), as_of=FIXED_NOW, source="yahoo")
