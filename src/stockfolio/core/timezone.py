"""Timezone utilities for quote timestamps and market-local dates."""

from datetime import date, datetime

import pytz

UTC = pytz.utc
TAIPEI_TZ = pytz.timezone("Asia/Taipei")
EASTERN_TZ = pytz.timezone("US/Eastern")


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as already UTC."""
    if dt.tzinfo is None:
        return UTC.localize(dt)
    return dt.astimezone(UTC)


def market_date(dt: datetime, tz: pytz.BaseTzInfo) -> date:
    """Return the trading date of `dt` in the market's timezone."""
    return to_utc(dt).astimezone(tz).date()
