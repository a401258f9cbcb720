"""
Shanghai Gold Exchange trading calendar (Beijing time, UTC+8).

Day session:   09:00-11:30 and 13:30-15:30
Night session: 21:00-02:30 (runs past midnight into the next day)
Pre-market:    30 minutes before the day and night sessions

A night session belongs to the weekday it starts on, so Saturday 01:00 is
still Friday's night session and Monday 01:00 is closed.
"""
from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from silverrate.domain.models import MarketStatus
from silverrate.shared.clock import beijing_now

SGE_OFFICIAL_URL = "https://en.sge.com.cn/data_SilverBenchmarkPrice"

MORNING = (time(9, 0), time(11, 30))
AFTERNOON = (time(13, 30), time(15, 30))
NIGHT_START = time(21, 0)
NIGHT_END = time(2, 30)
DAY_PREMARKET = time(8, 30)
NIGHT_PREMARKET = time(20, 30)


def sge_market_status(now: Optional[datetime] = None) -> MarketStatus:
    local = beijing_now(now)
    t = local.time()
    weekday = local.weekday()  # Monday == 0
    is_weekday = weekday < 5

    # After midnight: the night session that started the previous evening
    if t < NIGHT_END:
        if 1 <= weekday <= 5:
            return MarketStatus(True, "night", "day session 09:00")
        return MarketStatus(False, "closed", "day session 09:00 Monday")

    if not is_weekday:
        return MarketStatus(False, "closed", "day session 09:00 Monday")

    if MORNING[0] <= t < MORNING[1]:
        return MarketStatus(True, "day", "afternoon session 13:30")
    if AFTERNOON[0] <= t < AFTERNOON[1]:
        return MarketStatus(True, "day", "night session 21:00")
    if t >= NIGHT_START:
        return MarketStatus(True, "night", "day session 09:00")
    if DAY_PREMARKET <= t < MORNING[0]:
        return MarketStatus(False, "pre-market", "day session 09:00")
    if NIGHT_PREMARKET <= t < NIGHT_START:
        return MarketStatus(False, "pre-market", "night session 21:00")
    return MarketStatus(False, "closed", _next_after(t))


def _next_after(t: time) -> str:
    if t < MORNING[0]:
        return "day session 09:00"
    if t < AFTERNOON[0]:
        return "afternoon session 13:30"
    return "night session 21:00"
