"""
Quote fetcher: the only component that calls the market data provider.

Live quotes are fetched in provider-sized batches on a bounded thread pool.
The fetch timeout is handed to the provider and applies per symbol, so one
slow symbol never costs the rest of its batch; a broken batch fails on its
own without blocking the others. Results are stamped with the time the
request was issued.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

from stockfolio.core.exceptions import (
    FetchError,
    FetchTimeout,
    FetchUnavailable,
    MalformedResponse,
    SymbolNotFound,
)
from stockfolio.core.timezone import now_utc
from stockfolio.domain.models import Currency, ExchangeRate, HistoricalSeries, Quote
from stockfolio.providers.market_data_provider import MarketDataProvider, QuoteOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
DEFAULT_HISTORY_TIMEOUT_SECONDS = 10.0
DEFAULT_BATCH_SIZE = 50
DEFAULT_HISTORY_DAYS = 30
BATCH_GRACE_SECONDS = 1.0


@dataclass
class LiveFetchResult:
    """Per-symbol outcome of one live fetch: every symbol is in exactly one dict."""

    requested_at: datetime
    quotes: dict[str, Quote] = field(default_factory=dict)
    errors: dict[str, FetchError] = field(default_factory=dict)


def _error_for_symbol(exc: FetchError, symbol: str) -> FetchError:
    """Copy a batch-wide failure into a per-symbol error."""
    if isinstance(exc, SymbolNotFound):
        return SymbolNotFound(symbol)
    return type(exc)(exc.message, symbol=symbol)


class QuoteFetcher:
    """Fetches live quotes, historical series and the USD/TWD rate."""

    def __init__(
        self,
        provider: MarketDataProvider,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        history_timeout_seconds: float = DEFAULT_HISTORY_TIMEOUT_SECONDS,
        max_workers: int = 4,
        batch_size: int = DEFAULT_BATCH_SIZE,
        history_days: int = DEFAULT_HISTORY_DAYS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._provider = provider
        self._fetch_timeout = fetch_timeout_seconds
        self._history_timeout = history_timeout_seconds
        self._batch_size = batch_size
        self._history_days = history_days
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="quote-fetch")

    def fetch_live(self, symbols: Iterable[str]) -> LiveFetchResult:
        """
        Fetch quotes for `symbols`, batched.

        Never raises for per-symbol or per-batch failures: they are returned
        in `errors` while the other symbols proceed.
        """
        unique = list(dict.fromkeys(s for s in symbols if s))
        result = LiveFetchResult(requested_at=self._clock())
        if not unique:
            return result

        batches = [unique[i:i + self._batch_size] for i in range(0, len(unique), self._batch_size)]
        # Providers time out slow symbols themselves; the batch deadline only
        # catches a provider that ignores its timeout
        deadline = time.monotonic() + self._fetch_timeout + BATCH_GRACE_SECONDS
        pending = [
            (batch, self._executor.submit(self._provider.get_quotes, batch, timeout=self._fetch_timeout))
            for batch in batches
        ]

        for batch, future in pending:
            outcomes = self._await_batch(batch, future, deadline)
            for symbol in batch:
                outcome = outcomes.get(symbol)
                if outcome is None:
                    result.errors[symbol] = SymbolNotFound(symbol)
                elif isinstance(outcome, FetchError):
                    result.errors[symbol] = outcome if outcome.symbol == symbol else _error_for_symbol(outcome, symbol)
                elif isinstance(outcome, Quote):
                    result.quotes[symbol] = replace(outcome, symbol=symbol, fetched_at=result.requested_at)
                else:
                    result.errors[symbol] = MalformedResponse(
                        f"Unexpected quote payload: {type(outcome).__name__}", symbol=symbol
                    )

        if result.errors:
            logger.info(
                "Live fetch: %d ok, %d failed (%s)",
                len(result.quotes),
                len(result.errors),
                ", ".join(sorted(result.errors)),
            )
        return result

    def _await_batch(
        self,
        batch: list[str],
        future: "Future[dict[str, QuoteOutcome]]",
        deadline: float,
    ) -> dict[str, QuoteOutcome]:
        try:
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeoutError:
            future.cancel()
            logger.warning(
                "Quote batch ignored its %.1fs timeout: %s",
                self._fetch_timeout,
                ", ".join(batch),
            )
            return {s: FetchTimeout(f"Timed out after {self._fetch_timeout}s", symbol=s) for s in batch}
        except FetchError as exc:
            logger.warning("Quote batch failed: %s", exc.message)
            return {s: _error_for_symbol(exc, s) for s in batch}
        except Exception as exc:
            logger.exception("Unexpected provider failure for batch %s", ", ".join(batch))
            return {s: FetchUnavailable(str(exc), symbol=s) for s in batch}

    def fetch_history(self, symbol: str) -> HistoricalSeries:
        """Fetch the trailing daily series for one symbol. Raises FetchError."""
        requested_at = self._clock()
        series = self._call(
            self._provider.get_history,
            symbol,
            self._history_days,
            timeout=self._history_timeout,
            symbol=symbol,
        )
        if not series.points:
            raise SymbolNotFound(symbol)
        return replace(series, symbol=symbol, fetched_at=requested_at)

    def fetch_exchange_rate(self) -> ExchangeRate:
        """Fetch the USD->TWD rate. Raises FetchError."""
        requested_at = self._clock()
        rate = self._call(
            self._provider.get_exchange_rate,
            Currency.USD,
            Currency.TWD,
            timeout=self._fetch_timeout,
        )
        if rate is None or rate <= 0:
            raise MalformedResponse(f"Invalid USD/TWD rate: {rate}")
        return ExchangeRate(rate=rate, fetched_at=requested_at)

    def _call(self, fn: Callable[..., T], *args, timeout: float, symbol: Optional[str] = None) -> T:
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise FetchTimeout(f"Timed out after {timeout}s", symbol=symbol) from None
        except FetchError:
            raise
        except Exception as exc:
            logger.exception("Unexpected provider failure (%s)", symbol or "exchange rate")
            raise FetchUnavailable(str(exc), symbol=symbol) from exc

    def shutdown(self) -> None:
        """Stop accepting work; in-flight provider calls are left to finish."""
        self._executor.shutdown(wait=False)
