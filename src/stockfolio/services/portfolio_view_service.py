"""
Portfolio view service: what the presentation layer talks to.

Reads are non-blocking: `get_view` applies whatever fetches have finished and
values holdings against the cache. `refresh` and `open_detail` start
background fetches and only wait when asked to. Live mode refreshes one view
on a fixed interval and never stacks a refresh on one still in flight.
"""

import logging
import threading
from concurrent.futures import Future
from datetime import datetime
from typing import Optional

from stockfolio.core.exceptions import AppError, NotFoundError
from stockfolio.domain.models import COMBINED_INDEX, MarketSegment, Portfolio, SortKey
from stockfolio.domain.views import DetailView, PortfolioView, PositionRow
from stockfolio.services.holding_service import HoldingService
from stockfolio.services.market_data_service import MarketDataService
from stockfolio.services.valuation_engine import ValuationEngine, merge_positions
from stockfolio.services.view_sorter import sort_rows

logger = logging.getLogger(__name__)

COMBINED_NAME = "combined"
DEFAULT_LIVE_REFRESH_SECONDS = 5.0


class PortfolioViewService:
    """Builds sorted, valued views of one portfolio or of all of them combined."""

    def __init__(
        self,
        holding_service: HoldingService,
        market_data: MarketDataService,
        valuation_engine: ValuationEngine,
        live_refresh_seconds: float = DEFAULT_LIVE_REFRESH_SECONDS,
    ):
        self._holdings = holding_service
        self._market = market_data
        self._engine = valuation_engine
        self._active_detail: Optional[tuple[int, str]] = None

        self._live_interval = live_refresh_seconds
        self._live_lock = threading.Lock()
        self._live_index: Optional[int] = None
        self._live_last_started: Optional[datetime] = None
        self._live_stop: Optional[threading.Event] = None

    def _portfolios_for(self, index: int) -> list[Portfolio]:
        if index == COMBINED_INDEX:
            return self._holdings.list_portfolios()
        return [self._holdings.get_portfolio(index)]

    def symbols_for(self, index: int) -> list[str]:
        """Distinct symbols shown by the view at `index`."""
        return [item.position.symbol for item in merge_positions(self._portfolios_for(index))]

    def get_view(
        self,
        index: int,
        sort_key: SortKey = SortKey.SYMBOL,
        reverse: bool = False,
    ) -> PortfolioView:
        """Value and sort one view (index 0 is the combined view)."""
        self._market.process_events()

        portfolios = self._portfolios_for(index)
        merged = merge_positions(portfolios)
        shown = {item.position.symbol for item in merged}
        errors = {
            symbol: error.message
            for symbol, error in self._market.errors.items()
            if symbol in shown
        }

        rows = self._engine.build_rows(merged, errors)
        sorted_rows = {segment: sort_rows(rows[segment], sort_key, reverse) for segment in MarketSegment}

        combined = index == COMBINED_INDEX
        return PortfolioView(
            index=index,
            name=COMBINED_NAME if combined else portfolios[0].name,
            combined=combined,
            sort_key=SortKey(sort_key),
            reverse=reverse,
            rows=sorted_rows,
            segments=self._engine.segment_summaries(rows),
            summary=self._engine.summarize(rows),
            errors=errors,
            is_refreshing=self._market.is_refreshing,
            last_refresh_at=self._market.last_refresh_at,
        )

    def refresh(
        self,
        index: int,
        force: bool = True,
        wait: bool = False,
        timeout: Optional[float] = None,
    ) -> Future:
        """
        Refresh every symbol in the view plus the exchange rate.

        With `wait`, blocks until the fetch completes and its results are applied.
        """
        symbols = self.symbols_for(index)
        logger.info("Refreshing view %d (%d symbols, force=%s)", index, len(symbols), force)
        future = self._market.start_refresh(symbols, force=force)
        if wait:
            future.result(timeout=timeout)
            self._market.process_events()
        return future

    # Live mode

    @property
    def live_index(self) -> Optional[int]:
        """View refreshed periodically, or None when live mode is off."""
        return self._live_index

    @property
    def live_refresh_seconds(self) -> float:
        return self._live_interval

    def start_live(self, index: int, background: bool = True) -> None:
        """
        Refresh the view at `index` every `live_refresh_seconds`.

        Replaces any live view already running. With `background`, a daemon
        thread drives `live_tick`; otherwise the caller does.
        """
        self.symbols_for(index)
        self.stop_live()
        stop = threading.Event()
        with self._live_lock:
            self._live_index = index
            self._live_last_started = None
            self._live_stop = stop
        logger.info("Live refresh on for view %d every %.1fs", index, self._live_interval)
        if background:
            threading.Thread(
                target=self._live_loop,
                args=(stop,),
                name=f"live-refresh-{index}",
                daemon=True,
            ).start()

    def stop_live(self) -> None:
        with self._live_lock:
            if self._live_stop is not None:
                self._live_stop.set()
                logger.info("Live refresh off for view %d", self._live_index)
            self._live_index = None
            self._live_last_started = None
            self._live_stop = None

    def live_tick(self) -> Optional[Future]:
        """
        Start a forced refresh of the live view once its interval has passed.

        Skipped while any refresh is still in flight. Returns the refresh
        future, or None when nothing was started.
        """
        self._market.process_events()
        with self._live_lock:
            index = self._live_index
            if index is None:
                return None
            now = self._market.cache.now()
            last = self._live_last_started
            if last is not None and (now - last).total_seconds() < self._live_interval:
                return None
            if self._market.is_refreshing:
                logger.debug("Live tick skipped: refresh still in flight")
                return None
            self._live_last_started = now
        return self.refresh(index, force=True)

    def _live_loop(self, stop: threading.Event) -> None:
        poll = min(1.0, self._live_interval)
        while not stop.is_set():
            try:
                self.live_tick()
            except AppError as exc:
                logger.warning("Live refresh stopped: %s", exc.message)
                with self._live_lock:
                    owns_session = self._live_stop is stop
                if owns_session:
                    self.stop_live()
                return
            stop.wait(poll)

    def _row_for(self, index: int, symbol: str) -> PositionRow:
        for row in self.get_view(index).all_rows:
            if row.symbol == symbol:
                return row
        raise NotFoundError("Position", symbol)

    def open_detail(self, index: int, symbol: str, wait: Optional[float] = None) -> DetailView:
        """
        Enter the detail view for `symbol`: its row plus 30-day history.

        Starts a history fetch when no fresh series is cached. With `wait`,
        waits up to that many seconds for it; otherwise the view comes back
        with `loading` set and the best cached series, if any.
        """
        row = self._row_for(index, symbol)
        self._active_detail = (index, symbol)
        self._market.history(symbol, wait=wait)
        return self._detail(row)

    def current_detail(self) -> Optional[DetailView]:
        """Detail view currently open, refreshed from the cache; None after close."""
        if self._active_detail is None:
            return None
        index, symbol = self._active_detail
        self._market.process_events()
        return self._detail(self._row_for(index, symbol))

    def close_detail(self) -> None:
        """
        Leave the detail view.

        A pending history fetch keeps running and still fills the cache;
        its result is just no longer shown.
        """
        self._active_detail = None

    @property
    def active_detail(self) -> Optional[tuple[int, str]]:
        return self._active_detail

    def _detail(self, row: PositionRow) -> DetailView:
        cache = self._market.cache
        series = cache.peek_history(row.symbol)
        error = self._market.history_error(row.symbol)
        detail = DetailView(
            row=row,
            history=series,
            history_is_stale=series is not None and cache.get_history(row.symbol) is None,
            loading=self._market.is_history_loading(row.symbol),
            error=error.message if error is not None else None,
        )
        if series is not None and series.points:
            detail.high = series.high
            detail.low = series.low
            detail.average = series.average
            detail.period_change_pct = series.period_change_pct
            detail.trend = series.trend()
        return detail
