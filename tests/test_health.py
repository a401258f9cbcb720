# tests/test_health.py
"""
Health Checker Tests - Component Checks and Overall Report

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- silverrate.application.health (HealthChecker)
- unittest.mock (Mock providers and loops)
"""
import asyncio
from decimal import Decimal
from unittest.mock import Mock

import pytest

from silverrate.application.health import HealthChecker
from silverrate.application.price_service import FxChain
from silverrate.application.refresh_loop import RefreshLoop
from silverrate.domain.errors import ProviderUnavailableError
from silverrate.domain.models import Unavailable


def _fx(rate=None, error=None):
    provider = Mock()
    provider.name = "frankfurter"
    if error is not None:
        provider.rate.side_effect = error
    else:
        provider.rate.return_value = rate
    return FxChain([provider])


@pytest.fixture
def prices(spot, usd_inr, usd_cny, history_store):
    p = Mock()
    p.spot_provider.spot_price.return_value = spot
    p.inr_chain = _fx(usd_inr)
    p.cny_chain = _fx(usd_cny)
    p.history = history_store
    return p


class TestHealthChecker:
    def test_all_healthy(self, prices):
        report = HealthChecker(prices).get_overall_health()

        assert report["overall_healthy"] is True
        assert report["status"] == "healthy"
        assert report["failed_components"] == []
        assert set(report["checks"]) == {"spot_feed", "usd_inr", "usd_cny", "history", "commentary"}
        assert report["checks"]["spot_feed"]["message"] == "COMEX $30.50/oz via yahoo"
        assert report["checks"]["usd_inr"]["details"]["provider"] == "frankfurter"
        assert report["checks"]["history"]["details"]["records"] == 0

    def test_fx_failure_degrades(self, prices):
        prices.inr_chain = _fx(error=ProviderUnavailableError("frankfurter", "down"))
        report = HealthChecker(prices).get_overall_health()

        assert report["overall_healthy"] is False
        assert report["status"] == "degraded"
        assert report["failed_components"] == ["usd_inr"]
        assert "usd_inr" in report["message"]

    def test_spot_failure(self, prices):
        prices.spot_provider.spot_price.side_effect = ProviderUnavailableError("yahoo", "timeout after 8s")
        status = HealthChecker(prices).check_spot_feed()
        assert not status.is_healthy
        assert "timeout" in status.message

    def test_commentary_never_fails(self, prices):
        commentary = Mock()
        commentary.client = None
        status = HealthChecker(prices, commentary=commentary).check_commentary()
        assert status.is_healthy
        assert status.details == {"configured": False}


class TestLoopCheck:
    def test_not_running(self, prices):
        async def fetch():
            return Decimal("1")

        status = HealthChecker(prices).check_loop(RefreshLoop("domestic", fetch, 60))
        assert not status.is_healthy
        assert status.message == "not running"

    def test_running_states(self, prices):
        outcomes = iter([Decimal("1"), Unavailable("timeout")])

        async def fetch():
            return next(outcomes)

        async def scenario():
            loop = RefreshLoop("domestic", fetch, 60)
            loop.start()
            await asyncio.sleep(0.01)
            checker = HealthChecker(prices, loops={"domestic": loop})
            fresh = checker.check_loop(loop)
            await loop.refresh_once()
            stale = checker.check_loop(loop)
            report = checker.get_overall_health()
            await loop.stop()
            return fresh, stale, report

        fresh, stale, report = asyncio.run(scenario())
        assert fresh.is_healthy
        assert fresh.message.startswith("fresh")
        assert not stale.is_healthy
        assert "stale" in stale.message
        assert report["failed_components"] == ["loop_domestic"]

    def test_paused_loop_is_healthy(self, prices):
        outcomes = iter([Unavailable("timeout")])

        async def fetch():
            return next(outcomes)

        async def scenario():
            loop = RefreshLoop("shanghai", fetch, 60)
            loop.start()
            await asyncio.sleep(0.01)
            loop.pause()
            status = HealthChecker(prices).check_loop(loop)
            await loop.stop()
            return status

        status = asyncio.run(scenario())
        assert status.is_healthy
        assert status.message == "paused (no recent requests)"
