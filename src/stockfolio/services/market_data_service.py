"""
Market data service: background refreshes feeding the shared quote cache.

Fetch jobs run on a small thread pool and never touch the cache themselves.
Each completed fetch is published as an event on a queue; `process_events`
is the single routine that applies them, using the cache's timestamp rule so
that a superseded refresh can never overwrite newer data.
"""

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Union

from stockfolio.core.exceptions import FetchError
from stockfolio.domain.models import ExchangeRate, HistoricalSeries, Quote
from stockfolio.services.quote_cache import QuoteCache
from stockfolio.services.quote_fetcher import QuoteFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteFetched:
    quote: Quote


@dataclass(frozen=True)
class QuoteFailed:
    symbol: str
    error: FetchError
    requested_at: datetime


@dataclass(frozen=True)
class RateFetched:
    rate: ExchangeRate


@dataclass(frozen=True)
class RateFailed:
    error: FetchError
    requested_at: datetime


@dataclass(frozen=True)
class HistoryFetched:
    series: HistoricalSeries


@dataclass(frozen=True)
class HistoryFailed:
    symbol: str
    error: FetchError
    requested_at: datetime


@dataclass(frozen=True)
class RefreshCompleted:
    generation: int
    completed_at: datetime


FetchEvent = Union[
    QuoteFetched,
    QuoteFailed,
    RateFetched,
    RateFailed,
    HistoryFetched,
    HistoryFailed,
    RefreshCompleted,
]


class MarketDataService:
    """
    Non-blocking front door to market data.

    `start_refresh` and `request_history` return immediately; call
    `process_events` from the foreground loop to apply finished fetches.
    `refresh` is the blocking convenience used by request/response callers.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        cache: QuoteCache,
        max_workers: int = 2,
    ):
        self._fetcher = fetcher
        self._cache = cache
        self._events: "queue.Queue[FetchEvent]" = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="refresh")
        self._apply_lock = threading.Lock()
        self._state_lock = threading.Lock()

        self._generation = 0
        self._pending_refreshes = 0
        self._last_refresh_at: Optional[datetime] = None
        self._errors: dict[str, FetchError] = {}
        self._rate_error: Optional[FetchError] = None
        self._history_errors: dict[str, FetchError] = {}
        self._history_in_flight: dict[str, Future] = {}

    @property
    def cache(self) -> QuoteCache:
        return self._cache

    @property
    def is_refreshing(self) -> bool:
        with self._state_lock:
            return self._pending_refreshes > 0

    @property
    def last_refresh_at(self) -> Optional[datetime]:
        return self._last_refresh_at

    @property
    def errors(self) -> dict[str, FetchError]:
        """Last fetch error per symbol, cleared once a newer quote lands."""
        with self._state_lock:
            return dict(self._errors)

    @property
    def rate_error(self) -> Optional[FetchError]:
        return self._rate_error

    def exchange_rate(self) -> Optional[ExchangeRate]:
        """Last known USD/TWD rate of any age."""
        return self._cache.peek_rate()

    # Live quotes

    def start_refresh(self, symbols: Iterable[str], force: bool = False) -> Future:
        """
        Queue a background refresh of `symbols` and the exchange rate.

        Without `force` only stale entries are fetched; a user-initiated
        refresh passes force=True to refetch everything it shows.
        """
        symbols = list(dict.fromkeys(symbols))
        targets = symbols if force else self._cache.stale_symbols(symbols)
        include_rate = force or self._cache.get_rate() is None

        with self._state_lock:
            self._generation += 1
            generation = self._generation
            self._pending_refreshes += 1

        logger.debug(
            "Refresh #%d queued: %d symbols%s",
            generation,
            len(targets),
            " + exchange rate" if include_rate else "",
        )
        return self._executor.submit(self._run_refresh, generation, targets, include_rate)

    def _run_refresh(self, generation: int, symbols: list[str], include_rate: bool) -> None:
        try:
            if include_rate:
                requested_at = self._cache.now()
                try:
                    self._events.put(RateFetched(self._fetcher.fetch_exchange_rate()))
                except FetchError as exc:
                    logger.warning("Exchange rate fetch failed: %s", exc.message)
                    self._events.put(RateFailed(exc, requested_at))

            if symbols:
                result = self._fetcher.fetch_live(symbols)
                for quote in result.quotes.values():
                    self._events.put(QuoteFetched(quote))
                for symbol, error in result.errors.items():
                    self._events.put(QuoteFailed(symbol, error, result.requested_at))
        finally:
            self._events.put(RefreshCompleted(generation, self._cache.now()))

    def refresh(self, symbols: Iterable[str], force: bool = True, timeout: Optional[float] = None) -> bool:
        """Run a refresh to completion and apply its results. Returns True if anything changed."""
        self.start_refresh(symbols, force=force).result(timeout=timeout)
        return self.process_events()

    def validate_symbol(self, symbol: str) -> Quote:
        """
        Fetch one symbol right now. Raises the symbol's FetchError on failure.

        A successful quote goes through the normal event path into the cache.
        """
        result = self._fetcher.fetch_live([symbol])
        if symbol in result.errors:
            raise result.errors[symbol]
        quote = result.quotes[symbol]
        self._events.put(QuoteFetched(quote))
        self.process_events()
        return quote

    # Historical series

    def request_history(self, symbol: str, force: bool = False) -> Optional[Future]:
        """
        Start a background history fetch unless a fresh series is cached.

        Returns the in-flight future, or None when the cache already answers.
        Callers that stop waiting leave the fetch running; it still fills the cache.
        """
        if not force and self._cache.get_history(symbol) is not None:
            return None
        with self._state_lock:
            existing = self._history_in_flight.get(symbol)
            if existing is not None and not existing.done():
                return existing
            future = self._executor.submit(self._run_history, symbol)
            self._history_in_flight[symbol] = future
        return future

    def _run_history(self, symbol: str) -> None:
        requested_at = self._cache.now()
        try:
            self._events.put(HistoryFetched(self._fetcher.fetch_history(symbol)))
        except FetchError as exc:
            logger.warning("History fetch failed for %s: %s", symbol, exc.message)
            self._events.put(HistoryFailed(symbol, exc, requested_at))

    def history(self, symbol: str, wait: Optional[float] = None) -> Optional[HistoricalSeries]:
        """
        Best available series for `symbol`, fetching in the background if needed.

        With `wait`, blocks up to that many seconds for an in-flight fetch.
        Returns the cached series of any age, or None.
        """
        future = self.request_history(symbol)
        if future is not None and wait:
            try:
                future.result(timeout=wait)
            except FuturesTimeoutError:
                logger.debug("History for %s still loading after %.1fs", symbol, wait)
        self.process_events()
        return self._cache.peek_history(symbol)

    def is_history_loading(self, symbol: str) -> bool:
        with self._state_lock:
            future = self._history_in_flight.get(symbol)
        return future is not None and not future.done()

    def history_error(self, symbol: str) -> Optional[FetchError]:
        with self._state_lock:
            return self._history_errors.get(symbol)

    # Event application

    def process_events(self) -> bool:
        """Drain the event queue into the cache. Returns True if any event was applied."""
        changed = False
        with self._apply_lock:
            while True:
                try:
                    event = self._events.get_nowait()
                except queue.Empty:
                    break
                changed = self._apply(event) or changed
        return changed

    def _apply(self, event: FetchEvent) -> bool:
        if isinstance(event, QuoteFetched):
            stored = self._cache.put_quote(event.quote)
            if stored:
                with self._state_lock:
                    self._errors.pop(event.quote.symbol, None)
            return stored

        if isinstance(event, QuoteFailed):
            # A failure older than the cached quote was superseded by a success
            current = self._cache.peek_quote(event.symbol)
            if current is not None and current.fetched_at >= event.requested_at:
                return False
            with self._state_lock:
                self._errors[event.symbol] = event.error
            return True

        if isinstance(event, RateFetched):
            stored = self._cache.put_rate(event.rate)
            if stored:
                self._rate_error = None
            return stored

        if isinstance(event, RateFailed):
            current = self._cache.peek_rate()
            if current is not None and current.fetched_at >= event.requested_at:
                return False
            self._rate_error = event.error
            return True

        if isinstance(event, HistoryFetched):
            stored = self._cache.put_history(event.series)
            if stored:
                with self._state_lock:
                    self._history_errors.pop(event.series.symbol, None)
            return stored

        if isinstance(event, HistoryFailed):
            current = self._cache.peek_history(event.symbol)
            if current is not None and current.fetched_at >= event.requested_at:
                return False
            with self._state_lock:
                self._history_errors[event.symbol] = event.error
            return True

        if isinstance(event, RefreshCompleted):
            with self._state_lock:
                self._pending_refreshes = max(0, self._pending_refreshes - 1)
                if self._last_refresh_at is None or event.completed_at > self._last_refresh_at:
                    self._last_refresh_at = event.completed_at
            return True

        raise TypeError(f"Unknown fetch event: {event!r}")

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
        self._fetcher.shutdown()
