"""
Clock helpers for the two market calendars the bot cares about.

"Today" for stored prices and daily extremes is the India (IST) calendar
day; SGE trading sessions run on Beijing time. Both are fixed offsets with
no daylight saving, so plain ``timezone`` objects are enough.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

IST = timezone(timedelta(hours=5, minutes=30), name="IST")
BEIJING = timezone(timedelta(hours=8), name="CST")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ist_now(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()).astimezone(IST)


def ist_today(now: Optional[datetime] = None) -> date:
    return ist_now(now).date()


def beijing_now(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()).astimezone(BEIJING)


def seconds_since(ts: datetime, now: Optional[datetime] = None) -> float:
    return max(0.0, ((now or utcnow()) - ts).total_seconds())
