# tests/test_handlers.py
"""
Handler Tests - Telegram Command Replies

Telegram objects are mocked: the update carries an AsyncMock reply_text
and the context exposes ``application.bot_data`` holding the services.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- silverrate.adapters.telegram.handlers (command callbacks)
- silverrate.adapters.telegram.bot (Services, SERVICES_KEY)
- silverrate.application.refresh_loop (real loops with scripted fetches)
"""
import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest

from silverrate.adapters.telegram import handlers
from silverrate.adapters.telegram.bot import SERVICES_KEY, Services
from silverrate.application.refresh_loop import RefreshLoop
from silverrate.config import settings
from silverrate.domain.models import DerivedPrice, Unavailable


def _update(username="alice", user_id=42):
    update = Mock()
    update.effective_user.id = user_id
    update.effective_user.username = username
    update.message.reply_text = AsyncMock()
    return update


def _context(services, args=None):
    context = Mock()
    context.application.bot_data = {SERVICES_KEY: services}
    context.args = args
    return context


def _reply(update) -> str:
    return update.message.reply_text.call_args[0][0]


def _loop(result, name="test"):
    async def fetch():
        return result
    return RefreshLoop(name, fetch, interval=60)


@pytest.fixture
def price(now):
    return DerivedPrice(
        price_per_gram=Decimal("95"),
        price_per_kg=Decimal("95000"),
        currency="INR",
        spot_usd=Decimal("30.50"),
        exchange_rate=Decimal("84.50"),
        as_of=now,
        change_percent_24h=Decimal("0.2"),
        today_high=Decimal("95.40"),
        today_low=Decimal("94.60"),
    )


def _services(domestic_result, shanghai_result=None):
    return Services(
        prices=Mock(),
        history=Mock(),
        domestic=_loop(domestic_result, "domestic"),
        shanghai=_loop(shanghai_result or Unavailable("down"), "shanghai"),
        health=Mock(),
        commentary=Mock(),
    )


def _run(handler, update, context):
    asyncio.run(handler(update, context))


class TestPublicCommands:
    def test_start(self, price):
        update = _update()
        _run(handlers.start, update, _context(_services(price)))
        assert _reply(update) == handlers.HELP_TEXT

    def test_price_fetches_on_demand(self, price):
        update = _update()
        services = _services(price)
        _run(handlers.price, update, _context(services))

        assert "1 gram: ₹95.00" in _reply(update)
        assert services.domestic.value is price

    def test_price_unavailable_shows_error(self):
        update = _update()
        _run(handlers.price, update, _context(_services(Unavailable("timeout after 20s"))))

        text = _reply(update)
        assert "Unable to fetch live prices" in text
        assert "₹" not in text

    def test_shanghai_error(self, price):
        update = _update()
        _run(handlers.shanghai, update, _context(_services(price)))
        assert "/shanghai" in _reply(update)

    def test_shanghai_resumes_paused_loop(self, price):
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return Unavailable("down")

        update = _update()
        services = _services(price)
        services.shanghai = RefreshLoop("shanghai", fetch, interval=60)
        services.shanghai.pause()
        _run(handlers.shanghai, update, _context(services))

        assert not services.shanghai.paused
        assert services.shanghai_seen_at is not None
        assert calls == 1
        assert "/shanghai" in _reply(update)

    def test_cities(self, price):
        update = _update()
        _run(handlers.cities, update, _context(_services(price)))
        text = _reply(update)
        assert text.startswith("🏙️ City-wise Silver Rates")
        assert "Mumbai" in text

    def test_cities_unavailable(self):
        update = _update()
        _run(handlers.cities, update, _context(_services(Unavailable("down"))))
        assert "Unable to fetch live prices" in _reply(update)

    def test_week_without_history(self, price):
        update = _update()
        services = _services(price)
        services.history.window_stats = AsyncMock(return_value=None)
        _run(handlers.week, update, _context(services))
        assert _reply(update) == "📊 Not enough price history yet. Try again later."

    def test_week_failure_degrades(self, price):
        update = _update()
        services = _services(price)
        services.history.window_stats = AsyncMock(side_effect=RuntimeError("boom"))
        _run(handlers.week, update, _context(services))
        assert "Not enough price history" in _reply(update)

    def test_why(self, price):
        update = _update()
        _run(handlers.why, update, _context(_services(price)))
        assert _reply(update).startswith("🤔 Why is silver moving?")

    def test_rate_limit(self, price):
        services = _services(price)
        update = _update()
        for _ in range(20):
            _run(handlers.price, update, _context(services))
        _run(handlers.price, update, _context(services))
        assert _reply(update) == "⏰ Too many requests. Please try again shortly."

    def test_price_waits_for_running_tick(self, price):
        calls = 0
        update = _update(user_id=7)

        async def scenario():
            started = asyncio.Event()
            gate = asyncio.Event()

            async def fetch():
                nonlocal calls
                calls += 1
                started.set()
                await gate.wait()
                return price

            services = _services(price)
            services.domestic = RefreshLoop("domestic", fetch, interval=60)
            services.domestic.start()
            await started.wait()
            reply = asyncio.create_task(handlers.price(update, _context(services)))
            await asyncio.sleep(0.01)
            gate.set()
            await reply
            await services.domestic.stop()

        asyncio.run(scenario())
        assert calls == 1
        assert "1 gram: ₹95.00" in _reply(update)


class TestCalc:
    @pytest.mark.parametrize("args", [None, [], ["1", "2", "3", "4"], ["abc"], ["-5"], ["10", "1200"], ["10", "999", "150"]])
    def test_usage_on_bad_input(self, price, args):
        update = _update()
        _run(handlers.calc, update, _context(_services(price), args))
        assert _reply(update) == handlers.CALC_USAGE

    def test_valuation(self, price):
        update = _update()
        _run(handlers.calc, update, _context(_services(price), ["100", "999", "10"]))

        text = _reply(update)
        assert "Making (10%): ₹949.05" in text
        assert "Total: ₹10,752.74" in text

    def test_zero_making_allowed(self, price):
        update = _update()
        _run(handlers.calc, update, _context(_services(price), ["10", "925", "0"]))

        text = _reply(update)
        assert "Making" not in text
        assert "Total:" in text

    def test_default_purity(self, price):
        update = _update()
        _run(handlers.calc, update, _context(_services(price), ["10"]))
        assert "Purity: 999" in _reply(update)

    def test_unavailable_price(self):
        update = _update()
        _run(handlers.calc, update, _context(_services(Unavailable("down")), ["10"]))
        assert "Unable to fetch live prices" in _reply(update)


class TestInvestmentCalculators:
    @pytest.fixture(autouse=True)
    def today(self):
        with patch.object(handlers, "ist_today", return_value=date(2025, 1, 1)):
            yield

    def test_returns(self, price):
        update = _update()
        _run(handlers.returns, update, _context(_services(price), ["100", "80", "2024-01-01"]))

        text = _reply(update)
        assert text.startswith("📈 Silver Investment Returns")
        assert "Gain: +₹1,500.00 (+18.75% 📈)" in text
        assert "Held: 366 days" in text
        assert "CAGR:" in text

    @pytest.mark.parametrize("args", [None, ["100"], ["abc", "80"], ["100", "80", "01-01-2024"], ["100", "80", "2099-01-01"]])
    def test_returns_usage(self, price, args):
        update = _update()
        _run(handlers.returns, update, _context(_services(price), args))
        assert _reply(update) == handlers.RETURNS_USAGE

    def test_returns_unavailable_price(self):
        update = _update()
        _run(handlers.returns, update, _context(_services(Unavailable("down")), ["100", "80"]))
        assert "Unable to fetch live prices" in _reply(update)

    def test_breakeven_jewellery(self, price):
        update = _update()
        _run(handlers.breakeven, update, _context(_services(price), ["50", "90", "10"]))

        text = _reply(update)
        assert "Break-even: ₹103.05/g" in text
        assert "Market now: ₹95.00/g" in text
        assert "❌ below break-even" in text

    def test_breakeven_bullion(self, price):
        update = _update()
        _run(handlers.breakeven, update, _context(_services(price), ["100", "90"]))

        text = _reply(update)
        assert "Bullion (2% premium)" in text
        assert "Break-even: ₹94.59/g" in text

    @pytest.mark.parametrize("args", [["50"], ["50", "90", "150"], ["50", "-90"]])
    def test_breakeven_usage(self, price, args):
        update = _update()
        _run(handlers.breakeven, update, _context(_services(price), args))
        assert _reply(update) == handlers.BREAKEVEN_USAGE

    def test_cgtax_long_term(self, price):
        update = _update()
        _run(handlers.cgtax, update, _context(_services(price), ["1000", "70", "2022-01-01"]))

        text = _reply(update)
        assert text.startswith("🧾 Capital Gains Tax (LTCG)")
        assert "Total tax: ₹3,250.00" in text

    def test_cgtax_short_term_old_regime(self, price):
        update = _update()
        args = ["1000", "70", "2024-06-01", "10,00,000", "OLD"]
        _run(handlers.cgtax, update, _context(_services(price), args))

        text = _reply(update)
        assert text.startswith("🧾 Capital Gains Tax (STCG)")
        assert "Tax @ 30% (slab rate, old regime)" in text

    def test_cgtax_zero_income(self, price):
        update = _update()
        _run(handlers.cgtax, update, _context(_services(price), ["10", "94", "2024-12-01", "0"]))
        assert "Tax @ 0% (slab rate, new regime)" in _reply(update)

    @pytest.mark.parametrize("args", [["1000", "70"], ["1000", "70", "2024-06-01", "lots"], ["1000", "70", "2026-01-01"]])
    def test_cgtax_usage(self, price, args):
        update = _update()
        _run(handlers.cgtax, update, _context(_services(price), args))
        assert _reply(update) == handlers.CGTAX_USAGE

    def test_real(self, price):
        update = _update()
        _run(handlers.real, update, _context(_services(price), ["100", "50", "2020-01-01"]))

        text = _reply(update)
        assert text.startswith("🏦 Inflation-Adjusted Return")
        assert "Nominal return: +90.00% 📈" in text
        assert "(CPI)" in text

    @pytest.mark.parametrize("args", [["100", "50"], ["100", "50", "2025-01-01"]])
    def test_real_usage(self, price, args):
        update = _update()
        _run(handlers.real, update, _context(_services(price), args))
        assert _reply(update) == handlers.REAL_USAGE


class TestHealthCommand:
    def test_non_admin_rejected(self, price):
        update = _update(username="alice")
        services = _services(price)
        with patch.object(settings, "admin_username", "boss"):
            _run(handlers.health, update, _context(services))

        assert _reply(update) == "⚠️ This command is available to the admin only."
        services.health.get_overall_health.assert_not_called()

    def test_no_admin_configured(self, price):
        update = _update(username="")
        with patch.object(settings, "admin_username", ""):
            _run(handlers.health, update, _context(_services(price)))
        assert "admin only" in _reply(update)

    def test_admin_gets_report(self, price):
        update = _update(username="Boss")
        services = _services(price)
        services.health.get_overall_health.return_value = {
            "overall_healthy": True,
            "status": "healthy",
            "message": "All systems healthy",
            "failed_components": [],
            "timestamp": "2025-01-10T12:00:00+00:00",
            "checks": {"spot_feed": {"healthy": True, "message": "ok", "last_check": None, "details": None}},
        }
        with patch.object(settings, "admin_username", "@boss"):
            _run(handlers.health, update, _context(services))

        text = _reply(update)
        assert text.startswith("✅ System Health Check")
        assert "✅ Spot Feed: ok" in text



class TestRefreshCommand:
    def test_non_admin_rejected(self, price):
        update = _update(username="alice")
        with patch.object(settings, "admin_username", "boss"):
            _run(handlers.refresh, update, _context(_services(price)))
        assert _reply(update) == "⚠️ This command is available to the admin only."

    def test_wakes_running_loops(self, price):
        calls = 0
        update = _update(username="boss")

        async def fetch():
            nonlocal calls
            calls += 1
            return price

        async def scenario():
            services = _services(price)
            services.domestic = RefreshLoop("domestic", fetch, interval=60)
            services.domestic.start()
            services.shanghai.start()
            await asyncio.sleep(0.01)
            services.shanghai.pause()
            with patch.object(settings, "admin_username", "boss"):
                await handlers.refresh(update, _context(services))
            await asyncio.sleep(0.01)
            for loop in services.loops:
                await loop.stop()

        asyncio.run(scenario())
        text = _reply(update)
        assert text.startswith("🔄 Refresh requested")
        assert "• domestic: refreshing" in text
        assert "• shanghai: paused, resumes on next request" in text
        assert calls == 2

    def test_reports_stopped_loops(self, price):
        update = _update(username="boss")
        with patch.object(settings, "admin_username", "boss"):
            _run(handlers.refresh, update, _context(_services(price)))
        assert "• domestic: not running" in _reply(update)


def test_build_handlers():
    commands = set()
    for handler in handlers.build_handlers():
        commands |= set(handler.commands)
    assert commands == {
        "start", "help", "price", "shanghai", "cities", "week", "calc",
        "returns", "breakeven", "cgtax", "real", "why", "health", "refresh",
    }
