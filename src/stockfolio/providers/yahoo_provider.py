"""
Yahoo Finance provider: live quotes, daily history and FX rates via yfinance.

Per-symbol failures are reported in the result mapping instead of raising,
so one bad ticker never hides the rest of a batch.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional

import pandas as pd

from stockfolio.core.exceptions import (
    FetchError,
    FetchTimeout,
    FetchUnavailable,
    MalformedResponse,
    SymbolNotFound,
)
from stockfolio.core.timezone import EASTERN_TZ, TAIPEI_TZ, market_date, now_utc
from stockfolio.domain.models import Currency, HistoricalSeries, MarketSegment, PricePoint, Quote
from stockfolio.providers.market_data_provider import QuoteOutcome

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_WORKERS = 16


# Lazy import so tests can patch before import
def _get_yf():
    import yfinance as yf
    return yf


def _to_price(value: Any, symbol: str, field_name: str) -> Decimal:
    """Validate a provider number and convert it to a positive Decimal."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedResponse(f"{field_name} is not numeric: {value!r}", symbol=symbol) from None
    if not math.isfinite(number) or number <= 0:
        raise MalformedResponse(f"{field_name} out of range: {number}", symbol=symbol)
    return Decimal(str(round(number, 4)))


def fx_symbol(base: Currency, quote: Currency) -> str:
    """Yahoo ticker for a currency pair, e.g. USDTWD=X."""
    return f"{base.value}{quote.value}=X"


class YahooFinanceProvider:
    """
    Fetches market data from Yahoo Finance via yfinance.

    Live quotes are batched through one `yf.Tickers` object per call. Each
    symbol's lookup runs on its own worker with its own deadline, so a
    symbol that hangs costs only its own quote.
    """

    def __init__(self, max_workers: int = DEFAULT_LOOKUP_WORKERS):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="yahoo-quote")

    def get_quotes(self, symbols: list[str], timeout: Optional[float] = None) -> dict[str, QuoteOutcome]:
        if not symbols:
            return {}
        yf = _get_yf()
        try:
            tickers = yf.Tickers(" ".join(symbols))
        except Exception as exc:
            raise FetchUnavailable(f"Could not reach Yahoo Finance: {exc}") from exc

        as_of = now_utc()
        futures = {
            symbol: self._executor.submit(self._quote_for_symbol, symbol, tickers, as_of)
            for symbol in symbols
        }
        _, not_done = wait(futures.values(), timeout=timeout)

        result: dict[str, QuoteOutcome] = {}
        for symbol, future in futures.items():
            if future in not_done:
                # A lookup already running cannot be cancelled; it finishes unobserved
                future.cancel()
                result[symbol] = FetchTimeout(f"Timed out after {timeout}s", symbol=symbol)
                continue
            try:
                result[symbol] = future.result()
            except FetchError as exc:
                logger.debug("Quote failed for %s: %s", symbol, exc.message)
                result[symbol] = exc

        if not_done:
            logger.warning(
                "Quote lookup timed out after %.1fs: %s",
                timeout,
                ", ".join(s for s, f in futures.items() if f in not_done),
            )
        return result

    def _quote_for_symbol(self, symbol: str, tickers, as_of) -> Quote:
        ticker = tickers.tickers.get(symbol) or tickers.tickers.get(symbol.upper())
        if ticker is None:
            raise SymbolNotFound(symbol)
        try:
            info = ticker.info
        except Exception as exc:
            raise FetchUnavailable(f"Quote lookup failed: {exc}", symbol=symbol) from exc
        if not isinstance(info, dict) or not info:
            raise SymbolNotFound(symbol)

        # Price: currentPrice preferred, then regularMarketPrice, then previous close
        prev_close = info.get("previousClose") or info.get("regularMarketPreviousClose")
        price = info.get("currentPrice") or info.get("regularMarketPrice") or prev_close
        if price is None or prev_close is None:
            raise SymbolNotFound(symbol)

        return Quote(
            symbol=symbol,
            price=_to_price(price, symbol, "price"),
            previous_close=_to_price(prev_close, symbol, "previous close"),
            fetched_at=as_of,
        )

    def get_history(self, symbol: str, days: int) -> HistoricalSeries:
        yf = _get_yf()
        end = now_utc().date() + timedelta(days=1)
        start = end - timedelta(days=days + 1)
        try:
            frame = yf.Ticker(symbol).history(start=start, end=end, interval="1d")
        except Exception as exc:
            raise FetchUnavailable(f"History lookup failed: {exc}", symbol=symbol) from exc

        if frame is None or frame.empty or "Close" not in frame.columns:
            raise SymbolNotFound(symbol)

        tz = TAIPEI_TZ if MarketSegment.for_symbol(symbol) is MarketSegment.TW else EASTERN_TZ
        points = []
        for timestamp, close in frame["Close"].items():
            if pd.isna(close):
                continue
            points.append(
                PricePoint(
                    date=market_date(timestamp.to_pydatetime(), tz),
                    close=_to_price(close, symbol, "close"),
                )
            )
        if not points:
            raise SymbolNotFound(symbol)

        return HistoricalSeries(symbol=symbol, points=tuple(points), fetched_at=now_utc())

    def get_exchange_rate(self, base: Currency, quote: Currency) -> Decimal:
        pair = fx_symbol(base, quote)
        outcome = self.get_quotes([pair]).get(pair)
        if outcome is None:
            raise SymbolNotFound(pair)
        if isinstance(outcome, FetchError):
            raise outcome
        return outcome.price

    def shutdown(self) -> None:
        """Stop accepting lookups; running ones are left to finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)
