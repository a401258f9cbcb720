# src/silverrate/adapters/telegram/handlers.py
"""
Telegram Handlers - Command Processing and User Interaction

Public commands read the refresh loops' last known values, so replies are
instant and never show a made-up number. If nothing has been fetched yet a
single on-demand refresh is attempted before replying.

Commands:
    /start, /help       usage
    /price              domestic price card
    /shanghai           Shanghai vs COMEX comparison
    /cities             city-wise price table
    /week               7-day low / average / high
    /calc               item valuation calculator
    /returns            investment return and CAGR
    /breakeven          break-even selling price
    /cgtax              capital gains tax (LTCG/STCG)
    /real               inflation-adjusted return
    /why                what is moving the price today
    /health             component health (admin only)
    /refresh            wake the refresh loops now (admin only)

Files that USE this module:
- silverrate.app (build_handlers)
- tests.test_handlers (unit tests)

Files that this module USES:
- silverrate.adapters.telegram.bot (get_services)
- silverrate.adapters.formatting.formatter (all message layouts)
- silverrate.domain.* (city_prices, calculators, explain)
- silverrate.shared.rate_limiter (per-user throttling)
- silverrate.shared.validators (parse_positive_number, parse_iso_date)
- silverrate.config (settings.admin_username)
"""
from __future__ import annotations

import asyncio
import logging
import re
from decimal import Decimal
from typing import Optional

from telegram import Update
from telegram.ext import CommandHandler, ContextTypes

from silverrate.adapters.formatting.formatter import (
    format_break_even,
    format_capital_gains,
    format_cities,
    format_drivers,
    format_health,
    format_price_card,
    format_real_return,
    format_returns,
    format_shanghai_card,
    format_unavailable,
    format_valuation,
    format_window_stats,
)
from silverrate.adapters.telegram.bot import get_services
from silverrate.application.refresh_loop import DisplayState, RefreshLoop
from silverrate.config import settings
from silverrate.domain import market_drivers
from silverrate.domain.calculator import (
    DEFAULT_ANNUAL_INCOME,
    DEFAULT_BUYBACK_DISCOUNT_PCT,
    break_even,
    capital_gains_tax,
    investment_returns,
    real_return,
    value_item,
)
from silverrate.domain.errors import InvalidPriceError
from silverrate.domain.models import DerivedPrice, TaxRegime
from silverrate.domain.pricing import city_prices
from silverrate.shared.clock import ist_today, utcnow
from silverrate.shared.rate_limiter import RATE_LIMITS, rate_limiter
from silverrate.shared.validators import parse_iso_date, parse_positive_number

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "🥈 Silver Rate Bot\n\n"
    "Live silver prices for India, derived from COMEX spot and USD/INR "
    "with import duty, GST and local premium.\n\n"
    "/price - current price per gram, 10 g, kg and tola\n"
    "/shanghai - Shanghai (SGE) estimate vs COMEX\n"
    "/cities - city-wise rates\n"
    "/week - 7-day low, average and high\n"
    "/calc <grams> [purity] [making%] - value a silver item\n"
    "/returns <grams> <buy price/g> [YYYY-MM-DD] - profit, annualized return and CAGR\n"
    "/breakeven <grams> <buy price/g> [making%] - price needed to recover your cost\n"
    "/cgtax <grams> <buy price/g> <YYYY-MM-DD> [income] [new|old] - capital gains tax if sold today\n"
    "/real <grams> <buy price/g> <YYYY-MM-DD> - return after inflation\n"
    "/why - what is moving the price today\n"
    "/help - this message"
)

CALC_USAGE = (
    "Usage: /calc <grams> [purity] [making%]\n"
    "Example: /calc 50 925 12\n"
    "Purity is parts per 1000 (999 fine silver, 925 sterling)."
)

RETURNS_USAGE = (
    "Usage: /returns <grams> <buy price per gram> [purchase date YYYY-MM-DD]\n"
    "Example: /returns 500 72.50 2023-04-15"
)

BREAKEVEN_USAGE = (
    "Usage: /breakeven <grams> <buy price per gram> [making%]\n"
    "Example: /breakeven 50 90 12\n"
    "Leave out making charges for bars and coins (2% premium assumed)."
)

CGTAX_USAGE = (
    "Usage: /cgtax <grams> <buy price per gram> <purchase date YYYY-MM-DD> [annual income] [new|old]\n"
    "Example: /cgtax 1000 70 2022-05-01 1200000 new\n"
    "Held 24 months or more: 12.5% LTCG. Otherwise your income-tax slab applies."
)

REAL_USAGE = (
    "Usage: /real <grams> <buy price per gram> <purchase date YYYY-MM-DD>\n"
    "Example: /real 500 45 2019-06-01"
)

MAX_CALC_GRAMS = 1_000_000
DEFAULT_PURITY = 999.0


def _is_admin(update: Update) -> bool:
    """True if the sender's username matches ADMIN_USERNAME."""
    admin = (settings.admin_username or "").lstrip("@").lower()
    if not admin:
        return False
    user = update.effective_user
    uname = (user.username or "").lstrip("@") if user else ""
    return uname.lower() == admin


def _check_rate_limit(update: Update, command: str, limit_type: str) -> bool:
    user_id = update.effective_user.id if update.effective_user else 0
    key = f"{command}:user:{user_id}"
    if rate_limiter.is_allowed(key, RATE_LIMITS[limit_type]):
        return True
    logger.warning("Rate limit exceeded for %s", key)
    return False


def _parse_non_negative(raw: str, max_value: Optional[float] = None) -> Optional[float]:
    """Like parse_positive_number, but zero is allowed."""
    cleaned = raw.strip().rstrip("%")
    if re.fullmatch(r"0+(\.0+)?", cleaned):
        return 0.0
    return parse_positive_number(cleaned, max_value=max_value)


def _parse_making(raw: str) -> Optional[float]:
    """Making charges in percent; zero is allowed, unlike weight and purity."""
    return _parse_non_negative(raw, max_value=100)


async def _current_view(loop: RefreshLoop) -> DisplayState:
    """Return the loop's view, refreshing once on demand (or joining the running tick) if it holds no value."""
    view = loop.view()
    if view.value is None:
        await loop.refresh_once()
        view = loop.view()
    return view


async def _current_price(context: ContextTypes.DEFAULT_TYPE) -> Optional[DerivedPrice]:
    view = await _current_view(get_services(context).domestic)
    return view.value


# --- /start, /help ---
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(HELP_TEXT)


# --- /price ---
async def price(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "price", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return
    view = await _current_view(get_services(context).domestic)
    await update.message.reply_text(format_price_card(view))


# --- /shanghai ---
async def shanghai(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "shanghai", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return
    services = get_services(context)
    services.shanghai_seen_at = utcnow()
    loop = services.shanghai
    if loop.paused:
        logger.info("Resuming Shanghai refresh loop on request")
        loop.resume(refresh_now=False)
        await loop.refresh_once()
        view = loop.view()
    else:
        view = await _current_view(loop)
    await update.message.reply_text(format_shanghai_card(view))


# --- /cities ---
async def cities(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "cities", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return
    current = await _current_price(context)
    if current is None:
        await update.message.reply_text(format_unavailable())
        return
    await update.message.reply_text(format_cities(city_prices(current)))


# --- /week ---
async def week(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "week", "upstream"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return
    services = get_services(context)
    current = services.domestic.value
    try:
        stats = await services.history.window_stats(
            today_high=current.today_high if current else None,
            today_low=current.today_low if current else None,
        )
    except Exception:
        logger.exception("/week failed")
        stats = None
    await update.message.reply_text(format_window_stats(stats, current))


# --- /calc <grams> [purity] [making%] ---
async def calc(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "calc", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return

    args = context.args or []
    if not 1 <= len(args) <= 3:
        await update.message.reply_text(CALC_USAGE)
        return

    weight = parse_positive_number(args[0], max_value=MAX_CALC_GRAMS)
    purity = parse_positive_number(args[1], max_value=1000) if len(args) > 1 else DEFAULT_PURITY
    making = _parse_making(args[2]) if len(args) > 2 else 0.0
    if weight is None or purity is None or making is None:
        await update.message.reply_text(CALC_USAGE)
        return

    current = await _current_price(context)
    if current is None:
        await update.message.reply_text(format_unavailable())
        return

    try:
        valuation = value_item(
            Decimal(str(weight)), Decimal(str(purity)), current.price_per_gram, Decimal(str(making)),
        )
    except InvalidPriceError as e:
        logger.info("Rejected /calc input %s: %s", args, e)
        await update.message.reply_text(CALC_USAGE)
        return
    await update.message.reply_text(format_valuation(weight, purity, making, current.price_per_gram, valuation))


async def _calculator_price(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Optional[DerivedPrice]:
    """Live price for a calculator reply; replies with the error card when there is none."""
    current = await _current_price(context)
    if current is None:
        await update.message.reply_text(format_unavailable())
    return current


# --- /returns <grams> <buy price/g> [YYYY-MM-DD] ---
async def returns(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "returns", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return

    args = context.args or []
    if not 2 <= len(args) <= 3:
        await update.message.reply_text(RETURNS_USAGE)
        return
    weight = parse_positive_number(args[0], max_value=MAX_CALC_GRAMS)
    buy = parse_positive_number(args[1])
    bought_on = parse_iso_date(args[2]) if len(args) > 2 else None
    if weight is None or buy is None or (len(args) > 2 and bought_on is None):
        await update.message.reply_text(RETURNS_USAGE)
        return

    current = await _calculator_price(update, context)
    if current is None:
        return
    try:
        result = investment_returns(
            Decimal(str(weight)), Decimal(str(buy)), current.price_per_gram, bought_on, ist_today(),
        )
    except InvalidPriceError as e:
        logger.info("Rejected /returns input %s: %s", args, e)
        await update.message.reply_text(RETURNS_USAGE)
        return
    await update.message.reply_text(format_returns(weight, Decimal(str(buy)), current.price_per_gram, result))


# --- /breakeven <grams> <buy price/g> [making%] ---
async def breakeven(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "breakeven", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return

    args = context.args or []
    if not 2 <= len(args) <= 3:
        await update.message.reply_text(BREAKEVEN_USAGE)
        return
    weight = parse_positive_number(args[0], max_value=MAX_CALC_GRAMS)
    buy = parse_positive_number(args[1])
    making = _parse_making(args[2]) if len(args) > 2 else None
    if weight is None or buy is None or (len(args) > 2 and making is None):
        await update.message.reply_text(BREAKEVEN_USAGE)
        return

    current = await _calculator_price(update, context)
    if current is None:
        return
    try:
        result = break_even(
            Decimal(str(weight)),
            Decimal(str(buy)),
            current.price_per_gram,
            making_pct=None if making is None else Decimal(str(making)),
        )
    except InvalidPriceError as e:
        logger.info("Rejected /breakeven input %s: %s", args, e)
        await update.message.reply_text(BREAKEVEN_USAGE)
        return
    await update.message.reply_text(format_break_even(weight, making, result, DEFAULT_BUYBACK_DISCOUNT_PCT))


# --- /cgtax <grams> <buy price/g> <YYYY-MM-DD> [income] [new|old] ---
async def cgtax(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "cgtax", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return

    args = list(context.args or [])
    regime = TaxRegime.NEW
    if args and args[-1].lower() in ("new", "old"):
        regime = TaxRegime(args.pop().lower())
    if not 3 <= len(args) <= 4:
        await update.message.reply_text(CGTAX_USAGE)
        return
    weight = parse_positive_number(args[0], max_value=MAX_CALC_GRAMS)
    buy = parse_positive_number(args[1])
    bought_on = parse_iso_date(args[2])
    income = _parse_non_negative(args[3]) if len(args) > 3 else float(DEFAULT_ANNUAL_INCOME)
    if weight is None or buy is None or bought_on is None or income is None:
        await update.message.reply_text(CGTAX_USAGE)
        return

    current = await _calculator_price(update, context)
    if current is None:
        return
    try:
        result = capital_gains_tax(
            Decimal(str(weight)),
            Decimal(str(buy)),
            current.price_per_gram,
            bought_on,
            ist_today(),
            annual_income=Decimal(str(income)),
            regime=regime,
        )
    except InvalidPriceError as e:
        logger.info("Rejected /cgtax input %s: %s", context.args, e)
        await update.message.reply_text(CGTAX_USAGE)
        return
    await update.message.reply_text(format_capital_gains(result, regime))


# --- /real <grams> <buy price/g> <YYYY-MM-DD> ---
async def real(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "real", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return

    args = context.args or []
    if len(args) != 3:
        await update.message.reply_text(REAL_USAGE)
        return
    weight = parse_positive_number(args[0], max_value=MAX_CALC_GRAMS)
    buy = parse_positive_number(args[1])
    bought_on = parse_iso_date(args[2])
    if weight is None or buy is None or bought_on is None:
        await update.message.reply_text(REAL_USAGE)
        return

    current = await _calculator_price(update, context)
    if current is None:
        return
    grams = Decimal(str(weight))
    try:
        result = real_return(grams * Decimal(str(buy)), grams * current.price_per_gram, bought_on, ist_today())
    except InvalidPriceError as e:
        logger.info("Rejected /real input %s: %s", args, e)
        await update.message.reply_text(REAL_USAGE)
        return
    await update.message.reply_text(format_real_return(result))


# --- /why ---
async def why(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, "why", "cached"):
        await update.message.reply_text("⏰ Too many requests. Please try again shortly.")
        return
    current = await _current_price(context)
    if current is None:
        await update.message.reply_text(format_unavailable())
        return
    await update.message.reply_text(format_drivers(market_drivers.explain(current, ist_today())))


# --- /health: System health check (admin only) ---
async def health(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_admin(update):
        await update.message.reply_text("⚠️ This command is available to the admin only.")
        return
    if not _check_rate_limit(update, "health", "admin"):
        await update.message.reply_text("⏰ Rate limit exceeded. Please try again later.")
        return

    try:
        report = await asyncio.to_thread(get_services(context).health.get_overall_health)
        await update.message.reply_text(format_health(report))
    except Exception as e:
        logger.exception("Health check failed")
        await update.message.reply_text(f"Health check failed: {e}")


# --- /refresh: Wake the refresh loops now (admin only) ---
async def refresh(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_admin(update):
        await update.message.reply_text("⚠️ This command is available to the admin only.")
        return
    if not _check_rate_limit(update, "refresh", "admin"):
        await update.message.reply_text("⏰ Rate limit exceeded. Please try again later.")
        return

    lines = ["🔄 Refresh requested"]
    for loop in get_services(context).loops:
        if not loop.running:
            lines.append(f"• {loop.name}: not running")
        elif loop.paused:
            lines.append(f"• {loop.name}: paused, resumes on next request")
        else:
            loop.refresh_now()
            lines.append(f"• {loop.name}: refreshing")
    logger.info("Admin refresh: %s", "; ".join(lines[1:]))
    await update.message.reply_text("\n".join(lines))


def build_handlers():
    """
    Build and return list of Telegram bot handlers.

    Returns:
        List of handler instances for registration with bot
    """
    return [
        CommandHandler(["start", "help"], start),
        CommandHandler("price", price),
        CommandHandler("shanghai", shanghai),
        CommandHandler("cities", cities),
        CommandHandler("week", week),
        CommandHandler("calc", calc),
        CommandHandler("returns", returns),
        CommandHandler("breakeven", breakeven),
        CommandHandler("cgtax", cgtax),
        CommandHandler("real", real),
        CommandHandler("why", why),
        CommandHandler("health", health),  # Admin only
        CommandHandler("refresh", refresh),  # Admin only
    ]
