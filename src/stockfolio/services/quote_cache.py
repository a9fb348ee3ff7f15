"""
In-memory cache for quotes, historical series and the USD/TWD rate.

Every entry carries its own `fetched_at`. Reads through `get_*` only return
entries younger than the TTL; stale entries stay stored so `peek_*` can offer
them as a fallback. Writes follow last-writer-by-timestamp-wins: a put older
than the stored entry is ignored.
"""

import threading
from datetime import datetime
from typing import Callable, Optional

from stockfolio.core.timezone import now_utc
from stockfolio.domain.models import ExchangeRate, HistoricalSeries, Quote

Clock = Callable[[], datetime]

DEFAULT_QUOTE_TTL_SECONDS = 60
DEFAULT_HISTORY_TTL_SECONDS = 6 * 60 * 60


def is_fresh(fetched_at: datetime, now: datetime, ttl_seconds: float) -> bool:
    """True when an entry fetched at `fetched_at` is still within its TTL at `now`."""
    return (now - fetched_at).total_seconds() < ttl_seconds


def _should_replace(current, incoming) -> bool:
    return current is None or incoming.fetched_at >= current.fetched_at


class QuoteCache:
    """
    Shared cache owned by the application context.

    Passed by reference to the market data service (writer) and the
    valuation engine (reader). No size-based eviction: the working set is
    the distinct symbols across all portfolios.
    """

    def __init__(
        self,
        quote_ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS,
        history_ttl_seconds: float = DEFAULT_HISTORY_TTL_SECONDS,
        clock: Clock = now_utc,
    ):
        self._quote_ttl = quote_ttl_seconds
        self._history_ttl = history_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._quotes: dict[str, Quote] = {}
        self._histories: dict[str, HistoricalSeries] = {}
        self._rate: Optional[ExchangeRate] = None

    @property
    def quote_ttl_seconds(self) -> float:
        return self._quote_ttl

    @property
    def history_ttl_seconds(self) -> float:
        return self._history_ttl

    def now(self) -> datetime:
        return self._clock()

    # Live quotes

    def get_quote(self, symbol: str) -> Optional[Quote]:
        """Return the cached quote only if it is within the quote TTL."""
        with self._lock:
            quote = self._quotes.get(symbol)
        if quote is not None and is_fresh(quote.fetched_at, self.now(), self._quote_ttl):
            return quote
        return None

    def peek_quote(self, symbol: str) -> Optional[Quote]:
        """Return the stored quote regardless of age."""
        with self._lock:
            return self._quotes.get(symbol)

    def put_quote(self, quote: Quote) -> bool:
        """Store a quote unless a newer one is already cached. Returns True if stored."""
        with self._lock:
            if not _should_replace(self._quotes.get(quote.symbol), quote):
                return False
            self._quotes[quote.symbol] = quote
            return True

    def stale_symbols(self, symbols: list[str]) -> list[str]:
        """Subset of `symbols` with no fresh quote, in input order."""
        return [s for s in symbols if self.get_quote(s) is None]

    # Exchange rate

    def get_rate(self) -> Optional[ExchangeRate]:
        with self._lock:
            rate = self._rate
        if rate is not None and is_fresh(rate.fetched_at, self.now(), self._quote_ttl):
            return rate
        return None

    def peek_rate(self) -> Optional[ExchangeRate]:
        with self._lock:
            return self._rate

    def put_rate(self, rate: ExchangeRate) -> bool:
        with self._lock:
            if not _should_replace(self._rate, rate):
                return False
            self._rate = rate
            return True

    # Historical series

    def get_history(self, symbol: str) -> Optional[HistoricalSeries]:
        with self._lock:
            series = self._histories.get(symbol)
        if series is not None and is_fresh(series.fetched_at, self.now(), self._history_ttl):
            return series
        return None

    def peek_history(self, symbol: str) -> Optional[HistoricalSeries]:
        with self._lock:
            return self._histories.get(symbol)

    def put_history(self, series: HistoricalSeries) -> bool:
        with self._lock:
            if not _should_replace(self._histories.get(series.symbol), series):
                return False
            self._histories[series.symbol] = series
            return True

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._quotes.clear()
            self._histories.clear()
            self._rate = None
