# src/silverrate/adapters/telegram/jobs.py
"""
Telegram Jobs - Scheduled Tasks

Daily and weekly tasks run by the python-telegram-bot JobQueue (IST):

- 23:45 daily: store today's closing price (skipped if already stored)
- 09:00 daily: post the price card, drivers and optional AI commentary
  to the channel
- Sunday 10:00: post the weekly summary
- every minute: pause the Shanghai refresh loop while /shanghai is idle

Files that USE this module:
- silverrate.app (registers the jobs)
- tests.test_jobs (unit tests)

Files that this module USES:
- silverrate.adapters.telegram.bot (get_services)
- silverrate.adapters.formatting.formatter (price card, drivers, weekly report)
- silverrate.domain.market_drivers (explain)
- silverrate.config (settings.channel_id)
"""
from __future__ import annotations  # Enable postponed evaluation of annotations

import asyncio  # Sleep on Telegram flood control
import logging  # Standard library for logging messages
from datetime import timedelta  # RetryAfter may carry a timedelta
from typing import Optional  # Type hints for optional values

from telegram.error import RetryAfter, TelegramError, TimedOut  # Telegram API errors
from telegram.ext import ContextTypes  # Telegram bot context type for job callbacks

from silverrate.adapters.formatting.formatter import (
    format_drivers,
    format_price,
    format_weekly_summary,
)
from silverrate.adapters.telegram.bot import get_services
from silverrate.config import settings
from silverrate.domain.market_drivers import explain
from silverrate.domain.models import DerivedPrice
from silverrate.shared.clock import ist_today, seconds_since

log = logging.getLogger(__name__)

# Re-entrancy protection: the channel post must not overlap itself
_post_lock = asyncio.Lock()


def _retry_seconds(e: RetryAfter) -> float:
    delay = e.retry_after
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


async def send_channel_message(context: ContextTypes.DEFAULT_TYPE, text: str, chat_id: Optional[str] = None) -> bool:
    """
    Send a message, waiting out Telegram flood control once.

    Returns:
        True if the message was delivered
    """
    chat_id = chat_id or settings.channel_id
    if not chat_id:
        log.error("CHANNEL_ID missing; cannot post to channel.")
        return False
    try:
        await context.bot.send_message(chat_id=chat_id, text=text)
        return True
    except RetryAfter as e:
        wait = _retry_seconds(e)
        log.warning("Telegram flood control, retrying in %.0fs", wait)
        await asyncio.sleep(wait)
        try:
            await context.bot.send_message(chat_id=chat_id, text=text)
            return True
        except TelegramError as e2:
            log.error("Failed to send message after flood wait: %s", e2)
            return False
    except TimedOut as e:
        log.error("Timed out sending message to %s: %s", chat_id, e)
        return False
    except TelegramError as e:
        log.error("Failed to send message to %s: %s", chat_id, e)
        return False


async def _fresh_price(context: ContextTypes.DEFAULT_TYPE) -> Optional[DerivedPrice]:
    """A freshly fetched price for scheduled work; falls back to a non-stale loop value."""
    services = get_services(context)
    result = await services.prices.fetch_domestic()
    if isinstance(result, DerivedPrice):
        return result
    log.warning("Scheduled fetch failed: %s", result.reason)
    view = services.domestic.view()
    if view.value is not None and not view.is_stale:
        return view.value
    return None


async def daily_close_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Store today's closing price once per IST day."""
    services = get_services(context)
    if services.history.store.has(ist_today()):
        log.info("Daily close already stored, skipping")
        return
    current = await _fresh_price(context)
    if current is None:
        log.error("No price available for the daily close")
        return
    if services.history.save_daily_close(current):
        log.info("Stored daily close: %s/g", current.price_per_gram)


async def morning_post_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Post the morning price card with drivers and optional commentary."""
    if _post_lock.locked():
        log.warning("Morning post already running, skipping")
        return
    async with _post_lock:
        current = await _fresh_price(context)
        if current is None:
            log.error("Skipping morning post: no live price")
            return

        card = format_price(current)
        parts = [card, format_drivers(explain(current, ist_today()))]
        commentary = await get_services(context).commentary.generate(card)
        if commentary:
            parts.append(f"💬 {commentary}")

        if await send_channel_message(context, "\n\n".join(parts)):
            log.info("Morning post sent to channel")


async def weekly_summary_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Post the 7-day summary (scheduled for Sundays)."""
    services = get_services(context)
    current = services.domestic.value
    try:
        summary = await services.history.weekly_summary(
            closing_price=current.price_per_gram if current else None,
        )
    except Exception:
        log.exception("Weekly summary failed")
        return

    text = format_weekly_summary(summary)
    if text is None:
        log.warning("No price data for the weekly summary")
        return
    if await send_channel_message(context, text):
        log.info("Weekly summary sent to channel")


async def shanghai_idle_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Pause the Shanghai loop when nobody has asked for /shanghai within SHANGHAI_IDLE_MINUTES."""
    services = get_services(context)
    loop = services.shanghai
    if loop.paused or not loop.running:
        return
    seen_at = services.shanghai_seen_at
    idle_seconds = settings.shanghai_idle_minutes * 60
    if seen_at is not None and seconds_since(seen_at) < idle_seconds:
        return
    log.info("No /shanghai requests for %.0f min, pausing the Shanghai loop", settings.shanghai_idle_minutes)
    loop.pause()
