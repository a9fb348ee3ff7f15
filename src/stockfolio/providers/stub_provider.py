"""Stub market data provider for demo mode and offline use."""

import random
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from stockfolio.core.exceptions import MalformedResponse
from stockfolio.core.timezone import now_utc
from stockfolio.domain.models import Currency, HistoricalSeries, PricePoint, Quote
from stockfolio.providers.market_data_provider import QuoteOutcome


# Deterministic fake prices for common symbols: (last, previous close)
_STUB_PRICES: dict[str, tuple[Decimal, Decimal]] = {
    "2330.TW": (Decimal("1025.00"), Decimal("1010.00")),
    "2317.TW": (Decimal("178.50"), Decimal("180.00")),
    "2454.TW": (Decimal("1290.00"), Decimal("1275.00")),
    "0050.TW": (Decimal("186.35"), Decimal("185.10")),
    "AAPL": (Decimal("185.50"), Decimal("184.25")),
    "GOOGL": (Decimal("142.75"), Decimal("141.50")),
    "MSFT": (Decimal("378.25"), Decimal("376.80")),
    "NVDA": (Decimal("485.25"), Decimal("482.50")),
    "TSLA": (Decimal("248.75"), Decimal("250.10")),
    "VOO": (Decimal("445.60"), Decimal("444.90")),
}

_STUB_USD_TWD = Decimal("32.00")


class StubMarketDataProvider:
    """
    Stub provider with deterministic fake data for offline operation.

    Uses predefined prices for common symbols; generates prices for unknown symbols.
    """

    def __init__(self, seed: int = 42):
        """Initialize with optional random seed for reproducibility."""
        self._seed = seed

    def _prices_for(self, symbol: str) -> tuple[Decimal, Decimal]:
        if symbol in _STUB_PRICES:
            return _STUB_PRICES[symbol]
        # Generate a stable price per symbol
        rng = random.Random(f"{self._seed}:{symbol}")
        last_price = Decimal(str(50 + rng.random() * 200)).quantize(Decimal("0.01"))
        change_pct = Decimal(str((rng.random() - 0.5) * 0.04))
        prev_close = (last_price / (1 + change_pct)).quantize(Decimal("0.01"))
        return last_price, prev_close

    def get_quotes(self, symbols: list[str], timeout: Optional[float] = None) -> dict[str, QuoteOutcome]:
        """Return stub quotes for requested symbols. Answers at once, so `timeout` is unused."""
        as_of = now_utc()
        result: dict[str, QuoteOutcome] = {}
        for symbol in symbols:
            last_price, prev_close = self._prices_for(symbol.upper())
            result[symbol] = Quote(
                symbol=symbol,
                price=last_price,
                previous_close=prev_close,
                fetched_at=as_of,
            )
        return result

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        """Random walk ending at the stub's current price, weekends skipped."""
        last_price, _ = self._prices_for(symbol.upper())
        rng = random.Random(f"{self._seed}:{symbol}:history")
        today = now_utc().date()

        closes = []
        price = last_price
        for offset in range(days):
            day = today - timedelta(days=offset)
            if day.weekday() >= 5:
                continue
            closes.append((day, price))
            step = Decimal(str((rng.random() - 0.5) * 0.03))
            price = (price / (1 + step)).quantize(Decimal("0.01"))

        points = tuple(PricePoint(date=d, close=c) for d, c in reversed(closes))
        return HistoricalSeries(symbol=symbol, points=points, fetched_at=now_utc())

    def get_exchange_rate(self, base: Currency, quote: Currency) -> Decimal:
        """Fixed USD/TWD rate."""
        if (base, quote) == (Currency.USD, Currency.TWD):
            return _STUB_USD_TWD
        if (base, quote) == (Currency.TWD, Currency.USD):
            return Decimal("1") / _STUB_USD_TWD
        raise MalformedResponse(f"Unsupported currency pair {base.value}/{quote.value}")
