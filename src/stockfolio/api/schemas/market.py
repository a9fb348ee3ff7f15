"""Pydantic schemas for market data endpoints."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from stockfolio.domain.models import Currency, ExchangeRate


class ExchangeRateResponse(BaseModel):
    """USD/TWD rate and whether it is past its TTL."""

    base: Currency
    quote: Currency
    rate: Decimal
    fetched_at: dt.datetime
    is_stale: bool = False

    @classmethod
    def from_rate(cls, rate: ExchangeRate, is_stale: bool) -> "ExchangeRateResponse":
        return cls(
            base=rate.base,
            quote=rate.quote,
            rate=rate.rate,
            fetched_at=rate.fetched_at,
            is_stale=is_stale,
        )


class PricePointResponse(BaseModel):
    date: dt.date
    close: Decimal
